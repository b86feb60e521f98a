"""nuget-depscan: find registry packages that depend on a given library."""

__version__ = "0.1.0"

"""NuGet version parsing and normalization."""

from __future__ import annotations

import re
from dataclasses import dataclass

from depscan.exceptions import DecodeError

# 1 to 4 numeric parts, optional SemVer 2.0 release labels and build metadata.
_VERSION_RE = re.compile(
    r"""
    ^\s*
    (?P<numbers>\d+(?:\.\d+){0,3})
    (?:-(?P<release>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?
    (?:\+(?P<metadata>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?
    \s*$
    """,
    re.VERBOSE,
)


@dataclass(frozen=True)
class PackageVersion:
    """A parsed NuGet package version."""

    major: int
    minor: int
    patch: int = 0
    revision: int = 0
    release: str | None = None
    metadata: str | None = None

    @classmethod
    def parse(cls, text: str) -> PackageVersion:
        """Parse *text*, raising :class:`DecodeError` if it is not a valid version."""
        match = _VERSION_RE.match(text or "")
        if match is None:
            raise DecodeError(f"invalid package version: {text!r}")
        parts = [int(p) for p in match.group("numbers").split(".")]
        parts += [0] * (4 - len(parts))
        return cls(
            major=parts[0],
            minor=parts[1],
            patch=parts[2],
            revision=parts[3],
            release=match.group("release"),
            metadata=match.group("metadata"),
        )

    @property
    def is_prerelease(self) -> bool:
        return self.release is not None

    @property
    def normalized(self) -> str:
        """Normalized string: leading zeros dropped, 4th part only when non-zero, no metadata."""
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.revision:
            text += f".{self.revision}"
        if self.release:
            text += f"-{self.release}"
        return text

    def __str__(self) -> str:
        if self.metadata:
            return f"{self.normalized}+{self.metadata}"
        return self.normalized

"""Custom exceptions for the package scanning pipeline."""

from __future__ import annotations


class DepScanError(Exception):
    """Base exception for all scanner errors."""


class NetworkError(DepScanError):
    """Raised when a registry request fails (connection, timeout or non-2xx status)."""

    def __init__(self, message: str, *, url: str | None = None, status_code: int | None = None):
        self.url = url
        self.status_code = status_code
        super().__init__(message)


class DecodeError(DepScanError):
    """Raised for malformed search pages, manifests, archives or version strings."""


class EntryNotFound(DepScanError):
    """Raised when an archive entry name is no longer present in the archive."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"archive entry not found: {name!r}")

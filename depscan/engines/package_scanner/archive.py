"""ArchiveInspector — enumerate and read entries of a ``.nupkg`` (zip) archive."""

from __future__ import annotations

import zipfile
import zlib
from collections.abc import Iterator
from contextlib import contextmanager
from typing import IO

from depscan.exceptions import DecodeError, EntryNotFound


class ArchiveInspector:
    """Read-only view over a package archive.

    Only the zip central directory is parsed up front; entry contents are
    decompressed on demand.
    """

    def __init__(self, stream: IO[bytes]) -> None:
        try:
            self._zip = zipfile.ZipFile(stream)
        except (zipfile.BadZipFile, OSError) as exc:
            raise DecodeError(f"not a readable package archive: {exc}") from exc

    def close(self) -> None:
        self._zip.close()

    def __enter__(self) -> ArchiveInspector:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def list_entries(self, suffix: str | None = None) -> Iterator[str]:
        """Yield entry names, optionally only those ending with *suffix* (case-insensitive)."""
        wanted = suffix.casefold() if suffix else None
        for info in self._zip.infolist():
            if info.is_dir():
                continue
            if wanted is None or info.filename.casefold().endswith(wanted):
                yield info.filename

    @contextmanager
    def open_entry(self, name: str) -> Iterator[IO[bytes]]:
        try:
            handle = self._zip.open(name)
        except KeyError as exc:
            raise EntryNotFound(name) from exc
        except zipfile.BadZipFile as exc:
            raise DecodeError(f"corrupt archive entry {name!r}: {exc}") from exc
        with handle:
            yield handle

    def read_entry(self, name: str) -> bytes:
        with self.open_entry(name) as handle:
            try:
                return handle.read()
            except (zipfile.BadZipFile, EOFError, zlib.error) as exc:
                raise DecodeError(f"corrupt archive entry {name!r}: {exc}") from exc

"""DependencyScanner — drains the work queue and inspects package manifests."""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import pydantic
import structlog

from depscan.core.config import StopPolicy
from depscan.engines.package_scanner.archive import ArchiveInspector
from depscan.engines.package_scanner.content_client import PackageContentClient
from depscan.engines.package_scanner.models import ManifestEntry, MatchReport, SearchResultItem
from depscan.engines.package_scanner.version import PackageVersion
from depscan.engines.package_scanner.work_queue import QueueClosed, WorkQueue
from depscan.exceptions import DecodeError

log = structlog.get_logger("depscan.engine")

MatchCallback = Callable[[MatchReport], None]


def decode_manifest(raw: bytes, name: str = "<manifest>") -> ManifestEntry:
    """Decode a ``*.deps.json`` payload; a leading BOM is tolerated."""
    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise DecodeError(f"manifest {name!r} is not valid UTF-8: {exc}") from exc
    try:
        return ManifestEntry.model_validate_json(text)
    except pydantic.ValidationError as exc:
        raise DecodeError(f"malformed manifest {name!r}: {exc}") from exc


class DependencyScanner:
    """One pool slot: pulls packages off the queue until end-of-stream or a stop."""

    def __init__(
        self,
        content_client: PackageContentClient,
        *,
        target_prefix: str = "System.CommandLine",
        manifest_suffix: str = ".deps.json",
        stop_policy: StopPolicy = StopPolicy.ALL,
        on_match: MatchCallback | None = None,
        stop_event: asyncio.Event | None = None,
        name: str = "scanner",
    ) -> None:
        self._content = content_client
        self._prefix = target_prefix
        self._suffix = manifest_suffix
        self._policy = stop_policy
        self._on_match = on_match
        self._stop_event = stop_event
        self.name = name
        self.scanned = 0
        self.matches: list[MatchReport] = []

    async def consume(self, queue: WorkQueue) -> None:
        """Scan queued packages until the queue is drained or a match stops this worker."""
        while True:
            try:
                item = await queue.get()
            except QueueClosed:
                log.debug("scanner.drained", worker=self.name, scanned=self.scanned)
                return

            report = await self.scan_package(item)
            self.scanned += 1
            if not report.matched:
                continue

            self.matches.append(report)
            log.info(
                "scanner.match",
                worker=self.name,
                package=report.package_id,
                version=report.version,
                manifest=report.manifest,
            )
            if self._on_match is not None:
                self._on_match(report)

            if self._policy is StopPolicy.WORKER:
                log.info("scanner.stopped", worker=self.name, scanned=self.scanned)
                return
            if self._policy is StopPolicy.ALL:
                if self._stop_event is not None:
                    self._stop_event.set()
                return

    async def scan_package(self, item: SearchResultItem) -> MatchReport:
        """Download one package and check its manifests for the target prefix."""
        version = PackageVersion.parse(item.version_text)

        async with self._content.open_package(item.package_id, version) as stream:
            inspector = await asyncio.to_thread(ArchiveInspector, stream)
            with inspector:
                for entry in inspector.list_entries(self._suffix):
                    raw = await asyncio.to_thread(inspector.read_entry, entry)
                    manifest = decode_manifest(raw, entry)
                    if manifest.has_library_prefix(self._prefix):
                        return MatchReport(
                            package_id=item.package_id,
                            version=str(version),
                            matched=True,
                            manifest=entry,
                        )

        log.debug("scanner.no_match", worker=self.name, package=item.package_id)
        return MatchReport(package_id=item.package_id, version=str(version), matched=False)

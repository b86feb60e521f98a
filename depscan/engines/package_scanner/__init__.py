"""Package scanner engine — find registry packages whose manifests reference a library."""

from depscan.engines.package_scanner.archive import ArchiveInspector
from depscan.engines.package_scanner.content_client import (
    PackageContentClient,
    ServiceIndex,
    resolve_service_index,
)
from depscan.engines.package_scanner.coordinator import Coordinator
from depscan.engines.package_scanner.ingestor import SearchIngestor
from depscan.engines.package_scanner.models import (
    ManifestEntry,
    MatchReport,
    ScanSummary,
    SearchPage,
    SearchResultItem,
)
from depscan.engines.package_scanner.scanner import DependencyScanner, decode_manifest
from depscan.engines.package_scanner.search_client import RegistrySearchClient
from depscan.engines.package_scanner.version import PackageVersion
from depscan.engines.package_scanner.work_queue import QueueClosed, WorkQueue

__all__ = [
    "ArchiveInspector",
    "Coordinator",
    "DependencyScanner",
    "ManifestEntry",
    "MatchReport",
    "PackageContentClient",
    "PackageVersion",
    "QueueClosed",
    "RegistrySearchClient",
    "ScanSummary",
    "SearchIngestor",
    "SearchPage",
    "SearchResultItem",
    "ServiceIndex",
    "WorkQueue",
    "decode_manifest",
    "resolve_service_index",
]

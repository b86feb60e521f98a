"""Data models for the package scanner engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SearchResultItem(BaseModel):
    """One package summary from a search page. Immutable once produced."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    package_id: str = Field(alias="id", min_length=1)
    version_text: str = Field(alias="version")


class SearchPage(BaseModel):
    """A decoded search response; only ``data`` drives the pipeline."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    total_hits: int | None = Field(default=None, alias="totalHits")
    data: list[SearchResultItem] = Field(default_factory=list)


class ManifestEntry(BaseModel):
    """A decoded ``*.deps.json`` document.

    Only the key names of ``libraries`` matter; their values are kept opaque.
    """

    model_config = ConfigDict(extra="ignore")

    libraries: dict[str, Any] = Field(default_factory=dict)

    def has_library_prefix(self, prefix: str) -> bool:
        """True if any library name starts with *prefix*, ignoring case."""
        wanted = prefix.casefold()
        return any(name.casefold().startswith(wanted) for name in self.libraries)


@dataclass(frozen=True)
class MatchReport:
    """Outcome of scanning one package."""

    package_id: str
    version: str
    matched: bool
    manifest: str | None = None  # archive entry that matched


@dataclass
class ScanSummary:
    """Aggregated result of a coordinator run."""

    target_prefix: str
    matches: list[MatchReport] = field(default_factory=list)
    pages_fetched: int = 0
    packages_enqueued: int = 0
    packages_scanned: int = 0
    cancelled: bool = False

    @property
    def matched_ids(self) -> list[str]:
        return [m.package_id for m in self.matches]

    def to_dict(self) -> dict[str, Any]:
        return {
            "target_prefix": self.target_prefix,
            "matches": [
                {"package_id": m.package_id, "version": m.version, "manifest": m.manifest}
                for m in self.matches
            ],
            "pages_fetched": self.pages_fetched,
            "packages_enqueued": self.packages_enqueued,
            "packages_scanned": self.packages_scanned,
            "cancelled": self.cancelled,
        }

"""Async client for package content (flat container) and service-index discovery."""

from __future__ import annotations

import tempfile
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import IO

import httpx
import pydantic
import structlog
from pydantic import BaseModel, ConfigDict, Field

from depscan.core.config import TransportConfig
from depscan.engines.package_scanner.version import PackageVersion
from depscan.exceptions import DecodeError, NetworkError

log = structlog.get_logger("depscan.engine")

SEARCH_RESOURCE_TYPE = "SearchQueryService"
CONTENT_RESOURCE_TYPE = "PackageBaseAddress/3.0.0"

_CHUNK_SIZE = 64 * 1024


class ServiceResource(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(alias="@id")
    type: str = Field(alias="@type")


class ServiceIndex(BaseModel):
    """The registry's ``index.json`` resource listing."""

    model_config = ConfigDict(extra="ignore")

    version: str
    resources: list[ServiceResource] = Field(default_factory=list)

    def find(self, resource_type: str) -> str | None:
        """Return the first URL whose ``@type`` is *resource_type* (or a versioned variant)."""
        for resource in self.resources:
            if resource.type == resource_type or resource.type.startswith(resource_type + "/"):
                return resource.id
        return None


async def resolve_service_index(
    index_url: str,
    transport: TransportConfig | None = None,
    *,
    client: httpx.AsyncClient | None = None,
) -> ServiceIndex:
    """Fetch and decode a service index."""
    owns_client = client is None
    http = client or httpx.AsyncClient(**(transport or TransportConfig()).client_kwargs())
    try:
        response = await http.get(index_url)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        raise NetworkError(f"service index request failed: {exc}", url=index_url) from exc
    finally:
        if owns_client:
            await http.aclose()

    try:
        index = ServiceIndex.model_validate_json(response.content)
    except pydantic.ValidationError as exc:
        raise DecodeError(f"malformed service index at {index_url}: {exc}") from exc
    log.debug("service_index.resolved", url=index_url, resources=len(index.resources))
    return index


class PackageContentClient:
    """Downloads ``.nupkg`` archives from a flat-container base address."""

    def __init__(
        self,
        base_url: str,
        transport: TransportConfig | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        spool_max_memory: int = 8 * 1024 * 1024,
    ) -> None:
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self._spool_max_memory = spool_max_memory
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(**(transport or TransportConfig()).client_kwargs())

    # ── lifecycle ──────────────────────────────────────────────────────────

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> PackageContentClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    # ── public ─────────────────────────────────────────────────────────────

    def package_url(self, package_id: str, version: PackageVersion) -> str:
        pid = package_id.lower()
        ver = version.normalized.lower()
        return f"{self.base_url}{pid}/{ver}/{pid}.{ver}.nupkg"

    @asynccontextmanager
    async def open_package(self, package_id: str, version: PackageVersion) -> AsyncIterator[IO[bytes]]:
        """Yield the package archive as a readable, seekable binary file.

        The response body is consumed forward-only and spooled (in memory up
        to ``spool_max_memory``, then on disk). Both the response and the
        spool are released when the context exits.
        """
        url = self.package_url(package_id, version)
        with tempfile.SpooledTemporaryFile(max_size=self._spool_max_memory) as spool:
            try:
                async with self._client.stream("GET", url) as response:
                    response.raise_for_status()
                    async for chunk in response.aiter_bytes(_CHUNK_SIZE):
                        spool.write(chunk)
            except httpx.HTTPStatusError as exc:
                raise NetworkError(
                    f"package download failed with status {exc.response.status_code}",
                    url=url,
                    status_code=exc.response.status_code,
                ) from exc
            except httpx.HTTPError as exc:
                raise NetworkError(f"package download failed: {exc}", url=url) from exc

            log.debug("content.downloaded", package=package_id, version=str(version), bytes=spool.tell())
            spool.seek(0)
            yield spool

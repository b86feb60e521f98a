"""Async client for the registry search service."""

from __future__ import annotations

from typing import Any

import httpx
import pydantic
import structlog

from depscan.core.config import TransportConfig
from depscan.engines.package_scanner.models import SearchPage
from depscan.exceptions import DecodeError, NetworkError

log = structlog.get_logger("depscan.engine")


class RegistrySearchClient:
    """Thin async wrapper around a NuGet ``SearchQueryService`` endpoint.

    No retries: a failed request surfaces as :class:`NetworkError` and a
    body that does not look like a search page as :class:`DecodeError`.
    """

    def __init__(
        self,
        search_url: str,
        transport: TransportConfig | None = None,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.search_url = search_url
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(**(transport or TransportConfig()).client_kwargs())

    # ── lifecycle ──────────────────────────────────────────────────────────

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> RegistrySearchClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    # ── public ─────────────────────────────────────────────────────────────

    async def search(
        self,
        *,
        skip: int,
        take: int,
        package_type: str | None = None,
        query: str | None = None,
        prerelease: bool = False,
    ) -> SearchPage:
        """Fetch one page of search results starting at *skip*."""
        params: dict[str, Any] = {"skip": skip, "take": take}
        if package_type:
            params["packageType"] = package_type
        if query:
            params["q"] = query
        if prerelease:
            params["prerelease"] = "true"

        try:
            response = await self._client.get(self.search_url, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise NetworkError(
                f"search request failed with status {exc.response.status_code}",
                url=str(exc.request.url),
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise NetworkError(f"search request failed: {exc}", url=self.search_url) from exc

        try:
            page = SearchPage.model_validate_json(response.content)
        except pydantic.ValidationError as exc:
            raise DecodeError(f"malformed search page at skip={skip}: {exc}") from exc

        log.debug("search.page", skip=skip, take=take, count=len(page.data), total=page.total_hits)
        return page

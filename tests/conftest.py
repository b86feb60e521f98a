"""Shared pytest fixtures: in-memory package archives and a fake registry."""

from __future__ import annotations

import asyncio
import io
import json
import zipfile
from collections.abc import Callable

import httpx
import pytest

SEARCH_URL = "https://registry.test/query"
CONTENT_URL = "https://registry.test/v3-flatcontainer/"


def build_nupkg(files: dict[str, str | bytes]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for name, content in files.items():
            zf.writestr(name, content)
    return buf.getvalue()


def build_deps_json(*libraries: str) -> str:
    return json.dumps(
        {
            "runtimeTarget": {"name": ".NETCoreApp,Version=v8.0"},
            "libraries": {
                name: {"type": "package", "serviceable": True, "sha512": "sha512-x"}
                for name in libraries
            },
        }
    )


class FakeRegistry:
    """Serves search pages and ``.nupkg`` downloads through ``httpx.MockTransport``."""

    search_url = SEARCH_URL
    content_url = CONTENT_URL

    def __init__(self) -> None:
        # (package_id, version, archive bytes | None for 404)
        self.packages: list[tuple[str, str, bytes | None]] = []
        self.delays: dict[str, float] = {}
        self.search_requests: list[dict[str, str]] = []
        self.downloads: list[str] = []
        self.search_status = 200

    def add(
        self,
        package_id: str,
        files: dict[str, str | bytes] | None = None,
        *,
        version: str = "1.0.0",
        delay: float = 0.0,
    ) -> None:
        archive = build_nupkg(files) if files is not None else None
        self.packages.append((package_id, version, archive))
        if delay:
            self.delays[package_id.lower()] = delay

    def add_match(self, package_id: str, **kwargs) -> None:
        self.add(
            package_id,
            {f"tools/net8.0/any/{package_id}.deps.json": build_deps_json("System.CommandLine/2.0.0")},
            **kwargs,
        )

    def add_plain(self, package_id: str, **kwargs) -> None:
        self.add(
            package_id,
            {f"tools/net8.0/any/{package_id}.deps.json": build_deps_json("Newtonsoft.Json/13.0.1")},
            **kwargs,
        )

    async def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if url.startswith(SEARCH_URL):
            params = dict(request.url.params)
            self.search_requests.append(params)
            if self.search_status != 200:
                return httpx.Response(self.search_status, text="unavailable")
            skip, take = int(params["skip"]), int(params["take"])
            page = self.packages[skip : skip + take]
            body = {
                "totalHits": len(self.packages),
                "data": [{"id": pid, "version": ver, "title": pid} for pid, ver, _ in page],
            }
            return httpx.Response(200, json=body)

        if url.startswith(CONTENT_URL):
            pid = request.url.path.split("/")[2]
            self.downloads.append(pid)
            delay = self.delays.get(pid)
            if delay:
                await asyncio.sleep(delay)
            for package_id, _, archive in self.packages:
                if package_id.lower() == pid and archive is not None:
                    return httpx.Response(200, content=archive)
            return httpx.Response(404, text="not found")

        return httpx.Response(404, text="not found")

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def registry() -> FakeRegistry:
    return FakeRegistry()


@pytest.fixture
def make_nupkg() -> Callable[[dict[str, str | bytes]], bytes]:
    return build_nupkg


@pytest.fixture
def deps_json() -> Callable[..., str]:
    return build_deps_json

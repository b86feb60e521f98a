"""Coordinator — wires one ingestor and a pool of scanners around a bounded queue."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from contextlib import AsyncExitStack
from typing import Any

import httpx
import structlog

from depscan.core.config import ScanConfig, StopPolicy
from depscan.engines.package_scanner.content_client import (
    CONTENT_RESOURCE_TYPE,
    SEARCH_RESOURCE_TYPE,
    PackageContentClient,
    resolve_service_index,
)
from depscan.engines.package_scanner.ingestor import SearchIngestor
from depscan.engines.package_scanner.models import MatchReport, ScanSummary
from depscan.engines.package_scanner.scanner import DependencyScanner, MatchCallback
from depscan.engines.package_scanner.search_client import RegistrySearchClient
from depscan.engines.package_scanner.work_queue import WorkQueue
from depscan.exceptions import DecodeError

log = structlog.get_logger("depscan.engine")


class Coordinator:
    """Runs a full scan and aggregates the match reports.

    Clients may be injected; anything not injected is built from *config*
    on a single shared ``httpx.AsyncClient`` that lives for one :meth:`run`.
    """

    def __init__(
        self,
        config: ScanConfig | None = None,
        *,
        search_client: RegistrySearchClient | None = None,
        content_client: PackageContentClient | None = None,
        on_match: MatchCallback | None = None,
    ) -> None:
        self.config = config or ScanConfig()
        self._search_client = search_client
        self._content_client = content_client
        self._on_match = on_match
        self._first_error: BaseException | None = None

    async def run(
        self,
        pool_size: int | None = None,
        queue_capacity: int | None = None,
    ) -> ScanSummary:
        """Scan until the ingestor and every scanner have finished.

        Raises the first error any task failed with, after all tasks are done.
        """
        cfg = self.config
        pool_size = cfg.pool_size if pool_size is None else pool_size
        queue_capacity = cfg.queue_capacity if queue_capacity is None else queue_capacity
        if pool_size < 1:
            raise ValueError(f"pool_size must be positive, got {pool_size}")
        if queue_capacity < 1:
            raise ValueError(f"queue_capacity must be positive, got {queue_capacity}")
        self._first_error = None

        summary = ScanSummary(target_prefix=cfg.target_prefix)

        def record(report: MatchReport) -> None:
            summary.matches.append(report)
            if self._on_match is not None:
                self._on_match(report)

        async with AsyncExitStack() as stack:
            search_client, content_client = await self._open_clients(stack)

            queue = WorkQueue(queue_capacity)
            stop_event = asyncio.Event()
            ingestor = SearchIngestor(
                search_client,
                package_type=cfg.package_type,
                page_size=cfg.page_size,
            )
            scanners = [
                DependencyScanner(
                    content_client,
                    target_prefix=cfg.target_prefix,
                    manifest_suffix=cfg.manifest_suffix,
                    stop_policy=cfg.stop_policy,
                    on_match=record,
                    stop_event=stop_event,
                    name=f"scanner-{i}",
                )
                for i in range(pool_size)
            ]

            log.info(
                "coordinator.start",
                workers=pool_size,
                queue_capacity=queue_capacity,
                stop_policy=cfg.stop_policy.value,
                prefix=cfg.target_prefix,
            )

            producer = asyncio.create_task(
                self._guard("ingestor", ingestor.produce(queue)), name="depscan-ingestor"
            )
            workers = [
                asyncio.create_task(self._guard(s.name, s.consume(queue)), name=f"depscan-{s.name}")
                for s in scanners
            ]

            watcher: asyncio.Task[None] | None = None
            if cfg.stop_policy is StopPolicy.ALL:
                watcher = asyncio.create_task(
                    self._cancel_on_stop(stop_event, [producer, *workers], summary),
                    name="depscan-stop-watcher",
                )

            try:
                await asyncio.gather(*workers, return_exceptions=True)
                if not producer.done() and not queue.closed:
                    # Nobody is left to drain the queue.
                    log.warning("coordinator.no_consumers", enqueued=queue.enqueued)
                    producer.cancel()
                await asyncio.gather(producer, return_exceptions=True)
            finally:
                for task in [producer, *workers]:
                    task.cancel()
                # Let cancelled tasks unwind before the shared client closes.
                await asyncio.gather(producer, *workers, return_exceptions=True)
                if watcher is not None:
                    watcher.cancel()
                    await asyncio.gather(watcher, return_exceptions=True)

            summary.pages_fetched = ingestor.pages_fetched
            summary.packages_enqueued = queue.enqueued
            summary.packages_scanned = sum(s.scanned for s in scanners)

        log.info(
            "coordinator.done",
            matches=len(summary.matches),
            pages=summary.pages_fetched,
            enqueued=summary.packages_enqueued,
            scanned=summary.packages_scanned,
            cancelled=summary.cancelled,
            failed=self._first_error is not None,
        )
        if self._first_error is not None:
            raise self._first_error
        return summary

    # ── internal ───────────────────────────────────────────────────────────

    async def _guard(self, name: str, coro: Coroutine[Any, Any, None]) -> None:
        """Await *coro*, remembering the first failure across all tasks."""
        try:
            await coro
        except Exception as exc:
            log.error(
                "coordinator.task_failed",
                task=name,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            if self._first_error is None:
                self._first_error = exc
            raise

    @staticmethod
    async def _cancel_on_stop(
        stop_event: asyncio.Event,
        tasks: list[asyncio.Task[None]],
        summary: ScanSummary,
    ) -> None:
        await stop_event.wait()
        pending = [t for t in tasks if not t.done()]
        summary.cancelled = bool(pending)
        log.info("coordinator.stopping", pending=len(pending))
        for task in pending:
            task.cancel()

    async def _open_clients(
        self, stack: AsyncExitStack
    ) -> tuple[RegistrySearchClient, PackageContentClient]:
        if self._search_client is not None and self._content_client is not None:
            return self._search_client, self._content_client

        cfg = self.config
        http = await stack.enter_async_context(httpx.AsyncClient(**cfg.transport.client_kwargs()))

        search_url = cfg.search_url
        content_url = cfg.content_url
        if (self._search_client is None and not search_url) or (
            self._content_client is None and not content_url
        ):
            index = await resolve_service_index(cfg.service_index_url, client=http)
            search_url = search_url or index.find(SEARCH_RESOURCE_TYPE)
            content_url = content_url or index.find(CONTENT_RESOURCE_TYPE)

        search_client = self._search_client
        if search_client is None:
            if not search_url:
                raise DecodeError(f"service index has no {SEARCH_RESOURCE_TYPE} resource")
            search_client = RegistrySearchClient(search_url, client=http)

        content_client = self._content_client
        if content_client is None:
            if not content_url:
                raise DecodeError(f"service index has no {CONTENT_RESOURCE_TYPE} resource")
            content_client = PackageContentClient(
                content_url, client=http, spool_max_memory=cfg.spool_max_memory
            )
        return search_client, content_client

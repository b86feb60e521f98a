"""SearchIngestor — pages through registry search and feeds the work queue."""

from __future__ import annotations

import structlog

from depscan.engines.package_scanner.search_client import RegistrySearchClient
from depscan.engines.package_scanner.work_queue import WorkQueue

log = structlog.get_logger("depscan.engine")


class SearchIngestor:
    """Single producer: one work item per package found by search."""

    def __init__(
        self,
        client: RegistrySearchClient,
        *,
        package_type: str | None = "DotnetTool",
        page_size: int = 1000,
    ) -> None:
        self._client = client
        self._package_type = package_type
        self._page_size = page_size
        self.pages_fetched = 0
        self.items_produced = 0

    async def produce(self, queue: WorkQueue) -> None:
        """Fetch pages until one comes back empty, enqueueing every item in page order.

        ``queue.put`` waits while the queue is full. The queue is closed on
        every exit path so the scanners always see end-of-stream.
        """
        skip = 0
        take = self._page_size
        try:
            while True:
                page = await self._client.search(
                    skip=skip, take=take, package_type=self._package_type
                )
                self.pages_fetched += 1
                if not page.data:
                    break

                for item in page.data:
                    await queue.put(item)
                    self.items_produced += 1

                log.info("ingest.page", skip=skip, count=len(page.data), total=page.total_hits)
                skip += take
        finally:
            queue.close()
            log.info(
                "ingest.done",
                pages=self.pages_fetched,
                items=self.items_produced,
            )

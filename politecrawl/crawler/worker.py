"""
Fetch worker: the loop each member of the worker pool runs.
"""

import logging
import time
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from .fetcher import FetchError, FetchResult
from ..utils.logger import get_crawler_logger

if TYPE_CHECKING:
    from .coordinator import CrawlCoordinator


class FetchWorker:
    """
    Repeatedly claims a URL, fetches it, enqueues its links and records
    the result, until the coordinator stops granting fetches or the
    frontier runs dry.
    """

    def __init__(self, worker_id: str, coordinator: 'CrawlCoordinator'):
        self.worker_id = worker_id
        self.coordinator = coordinator
        self.frontier = coordinator.frontier
        self.logger = get_crawler_logger(__name__, worker_id=worker_id)
        self.pages_processed = 0

    async def run(self):
        """Worker loop. Returns when there is no more work for this worker."""
        self.logger.debug("Worker started")

        while self.coordinator.acquire_fetch_permit():
            url = await self.frontier.next_url()
            if url is None:
                self.coordinator.release_fetch_permit()
                await self.coordinator.frontier_exhausted()
                break

            try:
                result = await self._process_url(url)
                self.pages_processed += 1
                self.coordinator.record_result(result)
                await self.coordinator.sinks.record(result)
            except Exception:
                self.coordinator.record_worker_error()
                self.logger.exception(f"Unexpected error processing {url}")
            finally:
                await self.frontier.task_done()

            await self.coordinator.throttle()

        self.logger.debug(f"Worker finished after {self.pages_processed} pages")

    async def _process_url(self, url: str) -> FetchResult:
        """Fetch one URL and push its links through the dedup gate."""
        started_at = datetime.now(timezone.utc)
        start = time.monotonic()

        try:
            page = await self.coordinator.fetcher.fetch(url)
        except FetchError as e:
            self.logger.log_url_event(logging.WARNING, url, f"Failed to fetch {url}: {e.message}")
            return self._failed_result(url, started_at, start, e.message, e.status_code)
        except Exception as e:
            self.logger.error(f"Unexpected error fetching {url}: {e!r}")
            return self._failed_result(url, started_at, start, f"Unexpected error: {e!r}")

        added = await self.frontier.add_urls(page.links)
        self.logger.info(f"{url} -> page scraped ({len(page.links)} links, {added} new)")

        return FetchResult(
            url=url,
            success=True,
            started_at=started_at,
            finished_at=datetime.now(timezone.utc),
            elapsed=time.monotonic() - start,
            status_code=page.status_code,
            size_bytes=len(page.content),
            links=list(page.links),
            content=page.content,
            content_type=page.content_type,
            worker_id=self.worker_id,
        )

    def _failed_result(self, url: str, started_at: datetime, start: float,
                       error: str, status_code: int = 0) -> FetchResult:
        return FetchResult(
            url=url,
            success=False,
            started_at=started_at,
            finished_at=datetime.now(timezone.utc),
            elapsed=time.monotonic() - start,
            status_code=status_code,
            error=error,
            worker_id=self.worker_id,
        )

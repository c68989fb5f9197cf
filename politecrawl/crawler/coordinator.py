"""
Crawl coordinator: owns the frontier and the worker pool, enforces the page
limit and the politeness delay, and decides when the crawl is over.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Union

from .url_frontier import URLFrontier
from .worker import FetchWorker
from ..storage.sinks import PersistenceSink, SinkDispatcher
from ..utils.config import ConfigError, CrawlerConfig


class CrawlPhase(Enum):
    """Lifecycle of a crawl."""
    IDLE = "idle"
    SEEDING = "seeding"
    RUNNING = "running"
    DRAINING = "draining"
    TERMINATED = "terminated"


@dataclass
class CrawlState:
    """Page budget shared by all workers."""
    max_pages: int
    pages_attempted: int = 0
    accepting: bool = True

    @property
    def limit_reached(self) -> bool:
        return self.pages_attempted >= self.max_pages


@dataclass
class CrawlStats:
    """Statistics for crawl operations."""
    start_time: float
    pages_fetched: int = 0
    pages_failed: int = 0
    total_bytes_downloaded: int = 0
    average_response_time: float = 0.0
    worker_errors: int = 0

    @property
    def pages_completed(self) -> int:
        return self.pages_fetched + self.pages_failed

    @property
    def elapsed_time(self) -> float:
        return time.time() - self.start_time

    @property
    def pages_per_minute(self) -> float:
        elapsed_minutes = self.elapsed_time / 60
        return self.pages_completed / elapsed_minutes if elapsed_minutes > 0 else 0


class CrawlCoordinator:
    """
    Runs one bounded breadth-first crawl.

    The fetcher is any object with an async ``fetch(url)`` returning a
    FetchedPage or raising FetchError.
    """

    def __init__(self, config: CrawlerConfig, fetcher,
                 sinks: Optional[Union[SinkDispatcher, Iterable[PersistenceSink]]] = None,
                 monitor=None):
        config.validate(require_seeds=False)

        self.config = config
        self.fetcher = fetcher
        self.monitor = monitor
        if isinstance(sinks, SinkDispatcher):
            self.sinks = sinks
        else:
            self.sinks = SinkDispatcher(sinks, monitor)
        self.logger = logging.getLogger(__name__)

        self.frontier = URLFrontier()
        self.state = CrawlState(max_pages=config.max_pages)
        self.stats = CrawlStats(start_time=time.time())
        self.phase = CrawlPhase.IDLE
        self.workers: List[asyncio.Task] = []

    async def run(self, seed_urls: Optional[Iterable[str]] = None) -> List[str]:
        """
        Crawl from ``seed_urls`` (default: the configured seeds).

        Returns every URL that was claimed for fetching, in claim order.
        Presence in the list means the page was attempted, not that it
        was fetched successfully.
        """
        seeds = list(seed_urls) if seed_urls is not None else list(self.config.seed_urls)
        if not seeds:
            raise ConfigError("At least one seed URL must be provided")
        if self.phase is not CrawlPhase.IDLE:
            raise RuntimeError("A CrawlCoordinator can only run once")

        await self.sinks.initialize()
        self.stats = CrawlStats(start_time=time.time())

        try:
            self.phase = CrawlPhase.SEEDING
            added_count = await self.frontier.add_urls(seeds)
            self.logger.info(f"Added {added_count} seed URLs to frontier")

            if self.state.accepting:
                self.phase = CrawlPhase.RUNNING
            await self._run_workers()
        finally:
            self.phase = CrawlPhase.TERMINATED
            await self.sinks.close()

        self._log_final_stats()
        return self.frontier.visited

    async def _run_workers(self):
        """Start the worker pool and wait for every worker to exit."""
        self.workers = [
            asyncio.create_task(FetchWorker(f"worker-{i}", self).run(), name=f"worker-{i}")
            for i in range(self.config.num_workers)
        ]
        stats_task = asyncio.create_task(self._stats_reporter())
        self.logger.info(f"Started crawling with {len(self.workers)} workers")

        try:
            results = await asyncio.gather(*self.workers, return_exceptions=True)
            for worker, result in zip(self.workers, results):
                if isinstance(result, Exception):
                    self.logger.error(f"{worker.get_name()} exited with error: {result!r}")
        finally:
            stats_task.cancel()
            await self._cleanup_workers(stats_task)

    def acquire_fetch_permit(self) -> bool:
        """
        Ask for permission to attempt one more fetch.

        The limit check and the increment happen in one step, so the number
        of granted fetches never exceeds ``max_pages``.
        """
        if not self.state.accepting:
            return False
        if self.state.limit_reached:
            self._begin_draining(f"Reached max pages limit: {self.state.max_pages}")
            return False
        self.state.pages_attempted += 1
        return True

    def release_fetch_permit(self):
        """Return a permit that was granted but never used for a fetch."""
        if self.state.pages_attempted > 0:
            self.state.pages_attempted -= 1

    async def frontier_exhausted(self):
        """Called by a worker that found no queued URL and nothing in flight."""
        self._begin_draining("Frontier exhausted")
        await self.frontier.close()

    async def stop(self):
        """
        Stop the crawl cooperatively. Fetches already running finish and
        their results are recorded; no new fetch is started.
        """
        self._begin_draining("Stop requested")
        await self.frontier.close()

    def _begin_draining(self, reason: str):
        if self.state.accepting:
            self.logger.info(f"{reason}, draining workers")
        self.state.accepting = False
        if self.phase in (CrawlPhase.SEEDING, CrawlPhase.RUNNING):
            self.phase = CrawlPhase.DRAINING

    async def throttle(self):
        """Politeness delay between two fetches of the same worker."""
        if self.config.politeness_delay > 0 and self.state.accepting:
            await asyncio.sleep(self.config.politeness_delay)

    def record_result(self, result):
        """Fold one FetchResult into the crawl statistics."""
        if result.success:
            self.stats.pages_fetched += 1
            self.stats.total_bytes_downloaded += result.size_bytes
        else:
            self.stats.pages_failed += 1

        completed = self.stats.pages_completed
        self.stats.average_response_time = (
            (self.stats.average_response_time * (completed - 1) + result.elapsed) / completed
        )

        if self.monitor:
            self.monitor.record_fetch(result)
            self.monitor.update_frontier(len(self.frontier), self.frontier.in_flight)

    def record_worker_error(self):
        """Count an unexpected error that interrupted one worker iteration."""
        self.stats.worker_errors += 1

    async def _stats_reporter(self):
        """Periodically log crawl statistics."""
        while True:
            await asyncio.sleep(self.config.stats_interval)
            self._log_current_stats()

    def _log_current_stats(self):
        frontier_stats = self.frontier.get_stats()
        self.logger.info(
            f"Crawl Progress: "
            f"Attempted={self.state.pages_attempted}/{self.state.max_pages}, "
            f"Fetched={self.stats.pages_fetched}, "
            f"Failed={self.stats.pages_failed}, "
            f"Queued={frontier_stats['total_queued']}, "
            f"InFlight={frontier_stats['in_flight']}, "
            f"Rate={self.stats.pages_per_minute:.1f} pages/min"
        )

    def _log_final_stats(self):
        frontier_stats = self.frontier.get_stats()

        self.logger.info("=== CRAWL COMPLETED ===")
        self.logger.info(f"Pages attempted: {self.state.pages_attempted}")
        self.logger.info(f"Pages fetched: {self.stats.pages_fetched}")
        self.logger.info(f"Fetch failures: {self.stats.pages_failed}")
        self.logger.info(f"Sink errors: {self.sinks.errors}")
        self.logger.info(f"Worker errors: {self.stats.worker_errors}")
        self.logger.info(f"Total time: {self.stats.elapsed_time:.2f} seconds")
        self.logger.info(f"Average response time: {self.stats.average_response_time:.2f}s")
        self.logger.info(f"Data downloaded: {self.stats.total_bytes_downloaded / 1024:.1f} KB")
        self.logger.info(f"URLs remaining in queue: {frontier_stats['total_queued']}")

    async def _cleanup_workers(self, *extra_tasks: asyncio.Task):
        """Cancel anything still running (only happens if run() itself is cancelled)."""
        tasks = [task for task in (*self.workers, *extra_tasks) if not task.done()]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*self.workers, *extra_tasks, return_exceptions=True)

    def get_stats(self) -> Dict:
        """Get current crawl statistics."""
        return {
            'phase': self.phase.value,
            'pages_attempted': self.state.pages_attempted,
            'max_pages': self.state.max_pages,
            'pages_fetched': self.stats.pages_fetched,
            'pages_failed': self.stats.pages_failed,
            'sink_errors': self.sinks.errors,
            'worker_errors': self.stats.worker_errors,
            'elapsed_time': self.stats.elapsed_time,
            'pages_per_minute': self.stats.pages_per_minute,
            'average_response_time': self.stats.average_response_time,
            'total_bytes_downloaded': self.stats.total_bytes_downloaded,
            **self.frontier.get_stats(),
        }

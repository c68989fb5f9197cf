"""
Boundary between the crawl core and the persistence sinks.

Sinks are fire-and-forget from the crawler's point of view: whatever a sink
raises is logged here and never reaches the worker loop.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional


class SinkError(Exception):
    """A persistence sink failed to record a fetch result."""
    pass


class PersistenceSink:
    """Base class for anything that records fetch results."""

    name = "sink"

    async def initialize(self):
        """Prepare the sink (create directories, open connections)."""

    async def record(self, result) -> None:
        """Record one FetchResult."""
        raise NotImplementedError

    async def close(self):
        """Flush and release resources."""

    def get_stats(self) -> Dict[str, Any]:
        return {}


class SinkDispatcher:
    """Fans a FetchResult out to every configured sink."""

    def __init__(self, sinks: Optional[Iterable[PersistenceSink]] = None, monitor=None):
        self.sinks: List[PersistenceSink] = list(sinks or [])
        self.monitor = monitor
        self.logger = logging.getLogger(__name__)
        self.errors = 0

    async def initialize(self):
        """
        Initialize every sink. Failures here are fatal for the crawl; sinks
        that were already started are closed before the error propagates.
        """
        started: List[PersistenceSink] = []
        for sink in self.sinks:
            try:
                await sink.initialize()
            except Exception:
                self.logger.error(f"Sink {sink.name} failed to initialize")
                await self._close_sinks(reversed(started))
                raise
            started.append(sink)
            self.logger.info(f"Sink {sink.name} initialized")

    async def record(self, result):
        """Hand ``result`` to every sink, logging and counting failures."""
        for sink in self.sinks:
            try:
                await sink.record(result)
            except SinkError as e:
                self._sink_failed(sink, result)
                self.logger.error(f"Sink {sink.name} failed to record {result.url}: {e}")
            except Exception:
                self._sink_failed(sink, result)
                self.logger.exception(f"Unexpected error in sink {sink.name} recording {result.url}")

    def _sink_failed(self, sink: PersistenceSink, result):
        self.errors += 1
        if self.monitor:
            self.monitor.record_sink_error(sink.name)

    async def close(self):
        """Close every sink; a failing close does not stop the others."""
        await self._close_sinks(self.sinks)

    async def _close_sinks(self, sinks: Iterable[PersistenceSink]):
        for sink in sinks:
            try:
                await sink.close()
            except Exception as e:
                self.logger.error(f"Error closing sink {sink.name}: {e}")

    def get_stats(self) -> Dict[str, Any]:
        stats = {sink.name: sink.get_stats() for sink in self.sinks}
        stats['errors'] = self.errors
        return stats

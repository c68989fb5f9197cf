"""
URL Frontier implementation for managing URLs to crawl.

The frontier owns three pieces of shared state behind a single
``asyncio.Condition``:

* the FIFO queue of URLs waiting to be fetched,
* the seen set used by the dedup gate (everything ever queued or dequeued),
* the visited registry (everything ever dequeued, in dequeue order),

plus the count of fetches currently in flight, which is what lets workers
tell a momentarily empty queue from an exhausted crawl.
"""

import asyncio
import logging
from collections import deque
from typing import Deque, Dict, Iterable, List, Optional, Set


class URLFrontier:
    """
    Breadth-first URL frontier with an atomic claim operation.

    Every mutation happens without an ``await`` between reading and
    writing the shared containers, so it is indivisible with respect to
    other tasks on the same event loop.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)

        self._queue: Deque[str] = deque()
        self._seen: Set[str] = set()
        # dict keeps insertion order; values unused
        self._visited: Dict[str, None] = {}
        self._in_flight = 0
        self._closed = False
        self._condition = asyncio.Condition()

    def try_claim(self, url: str) -> bool:
        """
        Claim ``url`` for this crawl.

        Returns True exactly once per URL for the life of the frontier; the
        caller that receives True is responsible for pushing it.
        """
        # No await between the membership test and the insert.
        if url in self._seen:
            return False
        self._seen.add(url)
        return True

    async def push(self, url: str):
        """Append a claimed URL to the tail of the queue."""
        async with self._condition:
            self._queue.append(url)
            self._condition.notify()
        self.logger.debug(f"Added URL to frontier: {url}")

    async def add_url(self, url: str) -> bool:
        """
        Add a URL to the frontier through the dedup gate.
        Returns True if URL was added, False if it was already seen.
        """
        if not self.try_claim(url):
            return False
        await self.push(url)
        return True

    async def add_urls(self, urls: Iterable[str]) -> int:
        """Add multiple URLs in order. Returns count of added URLs."""
        added_count = 0
        for url in urls:
            if await self.add_url(url):
                added_count += 1
        return added_count

    def pop_front(self) -> Optional[str]:
        """
        Remove the head of the queue and register it as visited.
        Returns None if the queue is empty.
        """
        if not self._queue:
            return None
        url = self._queue.popleft()
        self._visited[url] = None
        return url

    async def next_url(self) -> Optional[str]:
        """
        Wait for the next URL to fetch.

        Blocks while the queue is empty but another fetch is still running
        and may enqueue more links. Returns None once the crawl is exhausted
        (empty queue, nothing in flight) or the frontier has been closed.
        A returned URL counts as in flight until ``task_done`` is called.
        """
        async with self._condition:
            while not self._queue and self._in_flight > 0 and not self._closed:
                await self._condition.wait()

            if self._closed:
                return None

            url = self.pop_front()
            if url is None:
                return None

            self._in_flight += 1
            self.logger.debug(f"Retrieved URL from frontier: {url}")
            return url

    async def task_done(self):
        """Mark one in-flight fetch as finished."""
        async with self._condition:
            if self._in_flight <= 0:
                raise ValueError("task_done() called more times than URLs were handed out")
            self._in_flight -= 1
            # Waiters re-check for exhaustion as well as for new work.
            self._condition.notify_all()

    async def close(self):
        """Stop handing out URLs and release every waiting worker."""
        async with self._condition:
            self._closed = True
            self._condition.notify_all()

    @property
    def visited(self) -> List[str]:
        """URLs dequeued for fetching, in dequeue order."""
        return list(self._visited)

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def seen_count(self) -> int:
        return len(self._seen)

    @property
    def closed(self) -> bool:
        return self._closed

    def is_exhausted(self) -> bool:
        """True when no URL is queued and no fetch can add one."""
        return not self._queue and self._in_flight == 0

    def __len__(self) -> int:
        return len(self._queue)

    def __contains__(self, url: str) -> bool:
        return url in self._seen

    def get_stats(self) -> Dict[str, int]:
        """Get frontier statistics."""
        return {
            'total_queued': len(self._queue),
            'total_seen': len(self._seen),
            'total_visited': len(self._visited),
            'in_flight': self._in_flight,
        }

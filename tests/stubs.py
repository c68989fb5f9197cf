"""Test doubles for the fetcher and the persistence sinks."""

import asyncio

from politecrawl.crawler.fetcher import FetchError, FetchedPage
from politecrawl.storage.sinks import PersistenceSink, SinkError


class StubFetcher:
    """Serves a fixed link graph; URLs in ``failures`` raise FetchError."""

    def __init__(self, pages=None, failures=(), delay=0.0):
        self.pages = pages or {}
        self.failures = set(failures)
        self.delay = delay
        self.calls = []

    async def fetch(self, url):
        self.calls.append(url)
        await asyncio.sleep(self.delay)
        if url in self.failures:
            raise FetchError(url, "HTTP 500", 500)
        links = self.pages.get(url, [])
        return FetchedPage(
            url=url,
            status_code=200,
            content=f"<html><body>{url}</body></html>".encode(),
            links=list(links),
            content_type="text/html",
        )


class EndlessFetcher(StubFetcher):
    """Every page links to ``fan_out`` brand new pages."""

    def __init__(self, fan_out=10, delay=0.0):
        super().__init__(delay=delay)
        self.fan_out = fan_out

    async def fetch(self, url):
        self.calls.append(url)
        await asyncio.sleep(self.delay)
        links = [f"{url.rstrip('/')}/{i}" for i in range(self.fan_out)]
        return FetchedPage(url=url, status_code=200, content=b"<html></html>", links=links)


class RecordingSink(PersistenceSink):
    name = "recording"

    def __init__(self):
        self.results = []
        self.initialized = False
        self.closed = False

    async def initialize(self):
        self.initialized = True

    async def record(self, result):
        self.results.append(result)

    async def close(self):
        self.closed = True


class FailingSink(PersistenceSink):
    name = "failing"

    def __init__(self, exc=None):
        self.exc = exc or SinkError("disk full")
        self.calls = 0

    async def record(self, result):
        self.calls += 1
        raise self.exc


class UnavailableSink(PersistenceSink):
    """A sink whose backing store cannot be opened."""
    name = "unavailable"

    def __init__(self):
        self.closed = False

    async def initialize(self):
        raise SinkError("cannot open store")

    async def record(self, result):
        pass

    async def close(self):
        self.closed = True

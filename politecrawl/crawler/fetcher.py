"""
Web page fetcher and the result types exchanged with the crawl core.
"""

import asyncio
import aiohttp
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict, List

from aiohttp import ClientSession, ClientTimeout, ClientError

from .parser import LinkExtractor
from ..utils.config import DEFAULT_USER_AGENT
from ..utils.urls import extract_domain


TEXT_CONTENT_TYPES = (
    'text/html',
    'text/plain',
    'text/xml',
    'application/xml',
    'application/xhtml+xml',
)


class FetchError(Exception):
    """A single page could not be fetched. Terminal for that URL."""

    def __init__(self, url: str, message: str, status_code: int = 0):
        super().__init__(f"{url}: {message}")
        self.url = url
        self.message = message
        self.status_code = status_code


@dataclass
class FetchedPage:
    """Successful response from the fetcher."""
    url: str
    status_code: int
    content: bytes
    links: List[str] = field(default_factory=list)
    content_type: Optional[str] = None


@dataclass
class FetchResult:
    """Outcome of one fetch attempt, handed to the persistence sinks."""
    url: str
    success: bool
    started_at: datetime
    finished_at: datetime
    elapsed: float = 0.0
    status_code: int = 0
    size_bytes: int = 0
    links: List[str] = field(default_factory=list)
    content: Optional[bytes] = None
    content_type: Optional[str] = None
    error: Optional[str] = None
    worker_id: Optional[str] = None

    @property
    def domain(self) -> str:
        return extract_domain(self.url)

    @property
    def size_kb(self) -> float:
        return self.size_bytes / 1024.0

    @property
    def elapsed_ms(self) -> int:
        return int(round(self.elapsed * 1000))


class WebFetcher:
    """
    Fetches web pages over HTTP and extracts their outbound links.

    No retries: every failure is reported once as a FetchError.
    """

    def __init__(self, user_agent: str = DEFAULT_USER_AGENT, request_timeout: float = 30,
                 max_concurrent_requests: int = 10, max_content_size: int = 10 * 1024 * 1024,
                 link_extractor: Optional[LinkExtractor] = None):
        self.user_agent = user_agent
        self.request_timeout = request_timeout
        self.max_concurrent_requests = max_concurrent_requests
        self.max_content_size = max_content_size
        self.link_extractor = link_extractor or LinkExtractor()

        self.logger = logging.getLogger(__name__)

        self.session: Optional[ClientSession] = None

        self.stats = {
            'total_requests': 0,
            'successful_requests': 0,
            'failed_requests': 0,
            'total_bytes_downloaded': 0
        }

    async def __aenter__(self):
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def start(self):
        """Initialize the fetcher session."""
        if self.session is None:
            timeout = ClientTimeout(total=self.request_timeout)
            headers = {'User-Agent': self.user_agent}

            self.session = aiohttp.ClientSession(
                timeout=timeout,
                headers=headers,
                connector=aiohttp.TCPConnector(
                    limit=self.max_concurrent_requests * 2,
                    ttl_dns_cache=300,
                    use_dns_cache=True
                )
            )
            self.logger.info("WebFetcher session started")

    async def close(self):
        """Close the fetcher session."""
        if self.session:
            await self.session.close()
            self.session = None
            self.logger.info("WebFetcher session closed")

    async def fetch(self, url: str) -> FetchedPage:
        """
        Fetch a single URL.

        Args:
            url: The URL to fetch

        Returns:
            FetchedPage with the body and the links found in it

        Raises:
            FetchError: on network errors, timeouts, non-2xx responses,
                non-text content or bodies above ``max_content_size``
        """
        if self.session is None:
            await self.start()

        start_time = time.monotonic()
        self.stats['total_requests'] += 1

        try:
            async with self.session.get(url) as response:
                if not 200 <= response.status < 300:
                    raise FetchError(url, f"HTTP {response.status}", response.status)

                content_type = response.headers.get('content-type', '').lower()
                if not self._is_text_content(content_type):
                    raise FetchError(url, f"Non-text content type {content_type or 'unknown'}",
                                     response.status)

                content = await self._read_content(url, response)
                status = response.status

        except FetchError:
            self.stats['failed_requests'] += 1
            raise
        except asyncio.TimeoutError as e:
            self.stats['failed_requests'] += 1
            self.logger.warning(f"Timeout fetching {url}")
            raise FetchError(url, "Request timeout") from e
        except (ClientError, ValueError) as e:
            self.stats['failed_requests'] += 1
            self.logger.warning(f"Client error fetching {url}: {e}")
            raise FetchError(url, f"Client error: {e}") from e

        self.stats['successful_requests'] += 1
        self.stats['total_bytes_downloaded'] += len(content)

        links = self.link_extractor.extract_links(url, content)
        self.logger.debug(f"Fetched {url}: {status} ({len(content)} bytes) "
                          f"in {time.monotonic() - start_time:.2f}s")

        return FetchedPage(
            url=url,
            status_code=status,
            content=content,
            links=links,
            content_type=content_type,
        )

    def _is_text_content(self, content_type: str) -> bool:
        """Check if content type is text-based."""
        return any(text_type in content_type for text_type in TEXT_CONTENT_TYPES)

    async def _read_content(self, url: str, response) -> bytes:
        """Read the response body, enforcing the size limit."""
        content_length = response.headers.get('content-length')
        if content_length and content_length.isdigit() and int(content_length) > self.max_content_size:
            raise FetchError(url, f"Content too large ({content_length} bytes)", response.status)

        chunks = []
        total = 0
        async for chunk in response.content.iter_chunked(8192):
            total += len(chunk)
            if total > self.max_content_size:
                raise FetchError(url, "Content exceeded size limit during reading", response.status)
            chunks.append(chunk)

        return b''.join(chunks)

    def get_stats(self) -> Dict[str, int]:
        """Get fetcher statistics."""
        return self.stats.copy()

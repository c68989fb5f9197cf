"""
Web crawler core components.
"""

from .url_frontier import URLFrontier
from .fetcher import WebFetcher, FetchError, FetchedPage, FetchResult
from .parser import LinkExtractor
from .worker import FetchWorker
from .coordinator import CrawlCoordinator, CrawlPhase, CrawlState

__all__ = [
    'URLFrontier',
    'WebFetcher', 'FetchError', 'FetchedPage', 'FetchResult',
    'LinkExtractor',
    'FetchWorker',
    'CrawlCoordinator', 'CrawlPhase', 'CrawlState',
]

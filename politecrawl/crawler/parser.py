"""
Link extraction from fetched HTML pages.
"""

import logging
from typing import List, Union
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from ..utils.urls import is_crawlable


class LinkExtractor:
    """
    Extracts outbound links from HTML.

    Links are resolved against the page URL and returned in document order.
    Duplicates are kept and fragments are left in place; de-duplication is
    done by the frontier, not here.
    """

    def __init__(self, features: str = 'lxml'):
        self.features = features
        self.logger = logging.getLogger(__name__)

    def extract_links(self, base_url: str, html_content: Union[bytes, str]) -> List[str]:
        """
        Extract absolute http(s) links from ``<a href>`` elements.

        Args:
            base_url: The URL the page was fetched from
            html_content: Raw page body

        Returns:
            List of absolute URLs in the order they appear
        """
        if not html_content:
            return []

        try:
            soup = BeautifulSoup(html_content, self.features)
        except Exception as e:
            self.logger.warning(f"Could not parse HTML from {base_url}: {e}")
            return []

        links = []
        for anchor in soup.find_all('a', href=True):
            href = anchor['href'].strip()
            if not href or href.startswith('#'):
                continue

            try:
                absolute_url = urljoin(base_url, href)
            except ValueError:
                self.logger.debug(f"Skipping unresolvable link {href!r} on {base_url}")
                continue

            if is_crawlable(absolute_url):
                links.append(absolute_url)

        self.logger.debug(f"Extracted {len(links)} links from {base_url}")
        return links

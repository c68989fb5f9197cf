"""
File sink that saves the raw HTML of every fetched page.
"""

import logging
from pathlib import Path
from typing import Any, Dict

from .sinks import PersistenceSink, SinkError
from ..utils.urls import sanitize_filename


class PageFileSink(PersistenceSink):
    """
    Writes page bodies to ``<output_directory>/<domain>/<sanitized-url>.html``.

    Failed fetches have no body and are skipped.
    """

    name = "pages"

    def __init__(self, output_directory: str = "scraped_pages"):
        self.output_directory = Path(output_directory)
        self.logger = logging.getLogger(__name__)
        self.stats = {
            'pages_saved': 0,
            'bytes_written': 0,
        }

    async def initialize(self):
        try:
            self.output_directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise SinkError(f"Cannot create page directory {self.output_directory}: {e}") from e
        self.logger.info(f"Saving pages under {self.output_directory.resolve()}")

    def path_for(self, url: str, domain: str) -> Path:
        """Where the page for ``url`` is stored."""
        return self.output_directory / domain / f"{sanitize_filename(url)}.html"

    async def record(self, result) -> None:
        if not result.success or result.content is None:
            return

        file_path = self.path_for(result.url, result.domain)
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_path.write_bytes(result.content)
        except OSError as e:
            raise SinkError(f"Could not write {file_path}: {e}") from e

        self.stats['pages_saved'] += 1
        self.stats['bytes_written'] += len(result.content)
        self.logger.debug(f"Saved to file: {file_path}")

    def get_stats(self) -> Dict[str, Any]:
        return self.stats.copy()

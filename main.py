#!/usr/bin/env python3
"""
Main entry point for the web crawler.
"""

import asyncio
import argparse
import logging
import signal
import sys
from pathlib import Path
from typing import List, Optional

from politecrawl import __version__
from politecrawl.crawler.coordinator import CrawlCoordinator
from politecrawl.crawler.fetcher import FetchError, WebFetcher
from politecrawl.storage.database import DatabaseManager
from politecrawl.storage.page_store import PageFileSink
from politecrawl.storage.sinks import SinkDispatcher, SinkError
from politecrawl.utils.config import Config, ConfigError, load_config
from politecrawl.utils.logger import setup_logging, log_system_info
from politecrawl.utils.monitoring import initialize_monitoring
from politecrawl.utils.urls import ensure_scheme, is_valid_seed


class CrawlerApp:
    """Main application class for the web crawler."""

    def __init__(self):
        self.coordinator: Optional[CrawlCoordinator] = None
        self.stop_task: Optional[asyncio.Task] = None
        self.logger = logging.getLogger(__name__)

    def handle_signal(self, signum):
        """Schedule a cooperative stop; the task is awaited once the crawl returns."""
        self.logger.info(f"Received signal {signum}, initiating shutdown...")
        if self.coordinator and self.stop_task is None:
            self.stop_task = asyncio.ensure_future(self.coordinator.stop())

    def setup_signal_handlers(self):
        """Stop the crawl cooperatively on SIGINT/SIGTERM."""
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(signum, self.handle_signal, signum)
            except NotImplementedError:
                # add_signal_handler is unavailable on Windows event loops
                pass

    def build_sinks(self, config: Config, monitor) -> SinkDispatcher:
        sinks = []
        if config.storage.save_pages:
            sinks.append(PageFileSink(config.storage.pages_directory))
        sinks.append(DatabaseManager(config.database))
        return SinkDispatcher(sinks, monitor)

    async def run(self, config: Config, dry_run: bool = False) -> int:
        """Run the web crawler."""
        setup_logging(config.logging)
        log_system_info()

        crawler_config = config.crawler
        self.logger.info("=== WEB CRAWLER STARTING ===")
        self.logger.info(f"Seed URLs: {crawler_config.seed_urls}")
        self.logger.info(f"Max pages: {crawler_config.max_pages}")
        self.logger.info(f"Workers: {crawler_config.num_workers}")
        self.logger.info(f"Politeness delay: {crawler_config.politeness_delay}s")
        self.logger.info(f"Database type: {config.database.type}")

        monitor = initialize_monitoring(config.monitoring.metrics_enabled,
                                        config.monitoring.prometheus_port)

        async with WebFetcher(
            user_agent=crawler_config.user_agent,
            request_timeout=crawler_config.request_timeout,
            max_concurrent_requests=crawler_config.num_workers,
            max_content_size=crawler_config.max_content_size,
        ) as fetcher:
            if dry_run:
                self.logger.info("DRY RUN MODE: No actual crawling will be performed")
                return await self._dry_run(config, fetcher)

            try:
                self.coordinator = CrawlCoordinator(
                    crawler_config, fetcher, self.build_sinks(config, monitor), monitor
                )
                self.setup_signal_handlers()
                discovered = await self.coordinator.run()
                if self.stop_task:
                    await self.stop_task
            except (ConfigError, SinkError) as e:
                self.logger.error(f"Crawl could not start: {e}")
                return 1
            finally:
                self.logger.info("=== WEB CRAWLER FINISHED ===")

        print("Discovered pages:")
        for url in discovered:
            print(url)
        return 0

    async def _dry_run(self, config: Config, fetcher: WebFetcher) -> int:
        """Check storage and fetch the first seed without crawling."""
        self.logger.info("Testing database configuration...")
        database = DatabaseManager(config.database)
        try:
            await database.initialize()
            await database.close()
            self.logger.info("Database initialization successful")
        except SinkError as e:
            self.logger.error(f"Database initialization failed: {e}")
            return 1

        self.logger.info("Testing fetcher configuration...")
        test_url = config.crawler.seed_urls[0]
        try:
            page = await fetcher.fetch(test_url)
            self.logger.info(f"Test fetch successful: {page.status_code} ({len(page.links)} links)")
        except FetchError as e:
            self.logger.warning(f"Test fetch failed: {e}")

        self.logger.info("Dry run completed")
        return 0


def parse_seeds(raw_seeds: List[str]) -> List[str]:
    """Validate command-line seeds and default them to http://."""
    seeds = []
    for raw in raw_seeds:
        if not is_valid_seed(raw):
            raise ConfigError(f"Invalid URL: {raw!r}. Please provide a valid URL.")
        seeds.append(ensure_scheme(raw))
    return seeds


def build_config(args) -> Config:
    """Load the YAML config (if any) and apply command-line overrides."""
    if Path(args.config).exists():
        config = load_config(args.config, require_seeds=False)
    elif args.config_given:
        raise ConfigError(f"Configuration file '{args.config}' not found.")
    else:
        config = Config()

    if args.seed:
        config.crawler.seed_urls = parse_seeds(args.seed)
    if args.max_pages is not None:
        config.crawler.max_pages = args.max_pages
    if args.workers is not None:
        config.crawler.num_workers = args.workers
    if args.delay is not None:
        config.crawler.politeness_delay = args.delay

    config.crawler.validate()
    return config


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Bounded, polite, concurrent web crawler",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py                                # Run with config.yaml
  python main.py --config my_config.yaml       # Run with custom config
  python main.py --seed example.com             # Crawl from a single seed
  python main.py --seed https://a.example/ --max-pages 50 --workers 8
  python main.py --dry-run                     # Test configuration only
        """
    )

    parser.add_argument(
        '--config',
        default=None,
        help='Path to configuration file (default: config.yaml)'
    )
    parser.add_argument(
        '--seed',
        action='append',
        help='Seed URL; may be given several times (overrides config seeds)'
    )
    parser.add_argument(
        '--max-pages',
        type=int,
        help='Maximum number of pages to fetch'
    )
    parser.add_argument(
        '--workers',
        type=int,
        help='Number of concurrent fetch workers'
    )
    parser.add_argument(
        '--delay',
        type=float,
        help='Politeness delay between fetches, in seconds'
    )
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Test configuration without actually crawling'
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f'politecrawl {__version__}'
    )

    args = parser.parse_args(argv)
    args.config_given = args.config is not None
    if args.config is None:
        args.config = 'config.yaml'

    try:
        config = build_config(args)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    app = CrawlerApp()
    try:
        return asyncio.run(app.run(config, dry_run=args.dry_run))
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())

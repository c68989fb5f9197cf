"""
Database storage layer for per-fetch metadata.
Supports both Cassandra and file-based storage.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional, Dict, Any

try:
    from cassandra.cluster import Cluster
    from cassandra.policies import DCAwareRoundRobinPolicy
    CASSANDRA_AVAILABLE = True
except ImportError:
    CASSANDRA_AVAILABLE = False

from .sinks import PersistenceSink, SinkError
from ..utils.config import DatabaseConfig


class DatabaseError(SinkError):
    """Custom exception for database operations."""
    pass


def result_to_row(result) -> Dict[str, Any]:
    """Flatten a FetchResult into the columns of the scraped_links table."""
    return {
        'website_name': result.domain,
        'link_name': result.url,
        'download_start_time': result.started_at.isoformat(),
        'download_end_time': result.finished_at.isoformat(),
        'elapsed_time_ms': result.elapsed_ms,
        'size_kb': round(result.size_kb, 3),
        'success': result.success,
        'status_code': result.status_code,
        'error': result.error,
    }


class StorageBackend:
    """Abstract base class for storage backends."""

    async def initialize(self):
        """Initialize the storage backend."""
        raise NotImplementedError

    async def store_result(self, result):
        """Store the metadata of one fetch."""
        raise NotImplementedError

    def get_stats(self) -> Dict[str, Any]:
        """Get storage statistics."""
        raise NotImplementedError

    async def close(self):
        """Close storage connections."""
        raise NotImplementedError


class FileStorageBackend(StorageBackend):
    """JSON-lines backend for development and small crawls."""

    def __init__(self, data_directory: str):
        self.data_directory = Path(data_directory)
        self.log_file = self.data_directory / 'scraped_links.jsonl'
        self.logger = logging.getLogger(__name__)
        self.stats = {
            'total_stored': 0,
            'storage_errors': 0,
        }

    async def initialize(self):
        """Create the data directory."""
        try:
            self.data_directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DatabaseError(f"Failed to initialize file storage: {e}") from e
        self.logger.info(f"File storage initialized at {self.data_directory}")

    async def store_result(self, result):
        """Append one JSON line per fetch."""
        line = json.dumps(result_to_row(result), ensure_ascii=False)
        try:
            with open(self.log_file, 'a', encoding='utf-8') as f:
                f.write(line + '\n')
        except OSError as e:
            self.stats['storage_errors'] += 1
            raise DatabaseError(f"Error storing metadata for {result.url}: {e}") from e

        self.stats['total_stored'] += 1

    def get_stats(self) -> Dict[str, Any]:
        return self.stats.copy()

    async def close(self):
        """Save statistics."""
        stats_file = self.data_directory / 'stats.json'
        try:
            with open(stats_file, 'w') as f:
                json.dump(self.stats, f, indent=2)
        except OSError as e:
            self.logger.error(f"Error saving statistics: {e}")


class CassandraStorageBackend(StorageBackend):
    """Cassandra storage backend for production deployments."""

    INSERT_CQL = """
        INSERT INTO scraped_links (
            link_name, download_start_time, website_name, download_end_time,
            elapsed_time_ms, size_kb, success, status_code, error
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
    """

    def __init__(self, config: Dict[str, Any]):
        if not CASSANDRA_AVAILABLE:
            raise DatabaseError("Cassandra driver not available. Install cassandra-driver package.")

        self.config = config
        self.cluster = None
        self.session = None
        self.insert_statement = None
        self.logger = logging.getLogger(__name__)
        self.stats = {
            'total_stored': 0,
            'storage_errors': 0,
        }

    async def initialize(self):
        """Initialize Cassandra connection, keyspace and table."""
        try:
            hosts = self.config.get('hosts', ['localhost'])
            port = self.config.get('port', 9042)

            self.cluster = Cluster(
                hosts,
                port=port,
                load_balancing_policy=DCAwareRoundRobinPolicy()
            )
            self.session = self.cluster.connect()

            keyspace = self.config.get('keyspace', 'web_scraper')
            replication_factor = self.config.get('replication_factor', 1)

            self.session.execute(f"""
                CREATE KEYSPACE IF NOT EXISTS {keyspace}
                WITH replication = {{
                    'class': 'SimpleStrategy',
                    'replication_factor': {replication_factor}
                }}
            """)
            self.session.set_keyspace(keyspace)

            self.session.execute("""
                CREATE TABLE IF NOT EXISTS scraped_links (
                    link_name text,
                    download_start_time timestamp,
                    website_name text,
                    download_end_time timestamp,
                    elapsed_time_ms bigint,
                    size_kb double,
                    success boolean,
                    status_code int,
                    error text,
                    PRIMARY KEY (link_name, download_start_time)
                )
            """)
            self.insert_statement = self.session.prepare(self.INSERT_CQL)

            self.logger.info(f"Cassandra storage initialized with keyspace: {keyspace}")

        except Exception as e:
            if self.cluster:
                self.cluster.shutdown()
                self.cluster = None
                self.session = None
            raise DatabaseError(f"Failed to initialize Cassandra: {e}") from e

    async def store_result(self, result):
        """Insert one row per fetch."""
        params = (
            result.url,
            result.started_at,
            result.domain,
            result.finished_at,
            result.elapsed_ms,
            result.size_kb,
            result.success,
            result.status_code,
            result.error,
        )
        try:
            await asyncio.to_thread(self.session.execute, self.insert_statement, params)
        except Exception as e:
            self.stats['storage_errors'] += 1
            raise DatabaseError(f"Error storing metadata for {result.url}: {e}") from e

        self.stats['total_stored'] += 1
        self.logger.debug(f"Saved to database: {result.url}")

    def get_stats(self) -> Dict[str, Any]:
        return self.stats.copy()

    async def close(self):
        """Close Cassandra connections."""
        if self.cluster:
            self.cluster.shutdown()
            self.logger.info("Cassandra connections closed")


class DatabaseManager(PersistenceSink):
    """Metadata sink that delegates to the configured storage backend."""

    name = "database"

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self.backend: Optional[StorageBackend] = None
        self.logger = logging.getLogger(__name__)

    async def initialize(self):
        """Initialize the appropriate storage backend."""
        backend_type = self.config.type.lower()

        if backend_type == 'cassandra':
            self.backend = CassandraStorageBackend(self.config.cassandra)
        elif backend_type == 'file':
            self.backend = FileStorageBackend(self.config.file.get('data_directory', 'data'))
        elif backend_type == 'none':
            self.logger.info("Fetch metadata storage disabled")
            return
        else:
            raise DatabaseError(f"Unknown database type: {backend_type}")

        await self.backend.initialize()
        self.logger.info(f"Database manager initialized with {backend_type} backend")

    async def record(self, result) -> None:
        """Store the metadata of one fetch."""
        if self.config.type.lower() == 'none':
            return
        if not self.backend:
            raise DatabaseError("Database not initialized")
        await self.backend.store_result(result)

    def get_stats(self) -> Dict[str, Any]:
        if not self.backend:
            return {}
        return self.backend.get_stats()

    async def close(self):
        """Close database connections."""
        if self.backend:
            await self.backend.close()

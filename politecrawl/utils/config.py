"""
Configuration management for the web crawler system.
"""

import yaml
import logging
from pathlib import Path
from typing import Dict, List, Any, Optional
from dataclasses import dataclass, field, fields


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)

DATABASE_TYPES = ('cassandra', 'file', 'none')


class ConfigError(ValueError):
    """Raised when the crawl configuration is missing or invalid."""
    pass


@dataclass
class CrawlerConfig:
    """Configuration for crawler behavior."""
    seed_urls: List[str] = field(default_factory=list)
    max_pages: int = 20
    num_workers: int = 4
    politeness_delay: float = 0.2
    request_timeout: float = 30
    user_agent: str = DEFAULT_USER_AGENT
    max_content_size: int = 10 * 1024 * 1024
    stats_interval: float = 30

    def validate(self, require_seeds: bool = True):
        """Raise ConfigError if any value is out of range."""
        if require_seeds and not self.seed_urls:
            raise ConfigError("At least one seed URL must be provided")

        if not _is_int(self.max_pages) or self.max_pages < 1:
            raise ConfigError(f"max_pages must be a positive integer, got {self.max_pages!r}")

        if not _is_int(self.num_workers) or self.num_workers < 1:
            raise ConfigError(f"num_workers must be a positive integer, got {self.num_workers!r}")

        if self.politeness_delay is None or self.politeness_delay < 0:
            raise ConfigError("politeness_delay must be non-negative")

        if self.request_timeout is None or self.request_timeout <= 0:
            raise ConfigError("request_timeout must be positive")

        if not _is_int(self.max_content_size) or self.max_content_size < 1:
            raise ConfigError("max_content_size must be a positive integer")

        if self.stats_interval is None or self.stats_interval <= 0:
            raise ConfigError("stats_interval must be positive")


@dataclass
class StorageConfig:
    """Configuration for raw page storage."""
    pages_directory: str = "scraped_pages"
    save_pages: bool = True


@dataclass
class DatabaseConfig:
    """Configuration for fetch metadata storage."""
    type: str = "file"
    cassandra: Dict[str, Any] = field(default_factory=dict)
    file: Dict[str, Any] = field(default_factory=lambda: {'data_directory': 'data'})


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = "INFO"
    file: str = "logs/crawler.log"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    json: bool = False


@dataclass
class MonitoringConfig:
    """Configuration for monitoring."""
    prometheus_port: int = 8000
    metrics_enabled: bool = False


@dataclass
class Config:
    """Main configuration class."""
    crawler: CrawlerConfig = field(default_factory=CrawlerConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'Config':
        """Build a Config from the parsed YAML mapping."""
        data = data or {}
        if not isinstance(data, dict):
            raise ConfigError("Configuration root must be a mapping")

        unknown = set(data) - {f.name for f in fields(cls)}
        if unknown:
            raise ConfigError(f"Unknown configuration sections: {sorted(unknown)}")

        return cls(
            crawler=_build_section(CrawlerConfig, data.get('crawler')),
            storage=_build_section(StorageConfig, data.get('storage')),
            database=_build_section(DatabaseConfig, data.get('database')),
            logging=_build_section(LoggingConfig, data.get('logging')),
            monitoring=_build_section(MonitoringConfig, data.get('monitoring')),
        )


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _build_section(section_cls, values: Optional[Dict[str, Any]]):
    if values is None:
        return section_cls()
    if not isinstance(values, dict):
        raise ConfigError(f"Section for {section_cls.__name__} must be a mapping")
    try:
        return section_cls(**values)
    except TypeError as e:
        raise ConfigError(f"Invalid {section_cls.__name__}: {e}") from e


class ConfigManager:
    """Manages configuration loading and validation."""

    def __init__(self, config_path: str = "config.yaml"):
        self.config_path = Path(config_path)
        self._config: Optional[Config] = None

    def load_config(self, require_seeds: bool = True) -> Config:
        """Load configuration from YAML file."""
        if not self.config_path.exists():
            raise ConfigError(f"Configuration file not found: {self.config_path}")

        try:
            with open(self.config_path, 'r') as file:
                config_data = yaml.safe_load(file)
        except yaml.YAMLError as e:
            raise ConfigError(f"Could not parse {self.config_path}: {e}") from e

        self._config = Config.from_dict(config_data)
        self._validate_config(require_seeds)
        return self._config

    def _validate_config(self, require_seeds: bool = True):
        """Validate configuration values."""
        if not self._config:
            raise ConfigError("Configuration not loaded")

        self._config.crawler.validate(require_seeds=require_seeds)

        database = self._config.database
        if not isinstance(database.type, str) or database.type.lower() not in DATABASE_TYPES:
            raise ConfigError(f"Database type must be one of {', '.join(DATABASE_TYPES)}")
        database.type = database.type.lower()

        logging.getLogger(__name__).info("Configuration validation passed")

    @property
    def config(self) -> Config:
        """Get the loaded configuration."""
        if not self._config:
            raise ConfigError("Configuration not loaded. Call load_config() first.")
        return self._config


def load_config(config_path: str = "config.yaml", require_seeds: bool = True) -> Config:
    """Load configuration from file."""
    return ConfigManager(config_path).load_config(require_seeds=require_seeds)

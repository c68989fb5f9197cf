import pytest

from politecrawl.utils.config import Config, ConfigError, CrawlerConfig, load_config

FULL_CONFIG = """
crawler:
  seed_urls:
    - "https://a.example/"
  max_pages: 3
  num_workers: 2
  politeness_delay: 0.5
storage:
  pages_directory: "out"
database:
  type: "none"
logging:
  level: "DEBUG"
"""


def write(tmp_path, text):
    path = tmp_path / "config.yaml"
    path.write_text(text)
    return str(path)


def test_load_config_reads_sections_and_keeps_defaults(tmp_path):
    config = load_config(write(tmp_path, FULL_CONFIG))

    assert config.crawler.seed_urls == ["https://a.example/"]
    assert config.crawler.max_pages == 3
    assert config.crawler.num_workers == 2
    assert config.crawler.politeness_delay == 0.5
    assert config.crawler.request_timeout == 30
    assert "Mozilla/5.0" in config.crawler.user_agent
    assert config.storage.pages_directory == "out"
    assert config.storage.save_pages is True
    assert config.database.type == "none"
    assert config.logging.level == "DEBUG"
    assert config.monitoring.metrics_enabled is False


def test_missing_file_is_a_config_error(tmp_path):
    with pytest.raises(ConfigError):
        load_config(str(tmp_path / "absent.yaml"))


@pytest.mark.parametrize("text", [
    "crawler:\n  seed_urls: []\n",
    "crawler:\n  seed_urls: [x]\n  max_pages: 0\n",
    "crawler:\n  seed_urls: [x]\n  num_workers: -2\n",
    "crawler:\n  seed_urls: [x]\n  max_pages: 2.5\n",
    "crawler:\n  seed_urls: [x]\n  politeness_delay: -1\n",
    "crawler:\n  seed_urls: [x]\n  unknown_option: 1\n",
    "crawler:\n  seed_urls: [x]\ndatabase:\n  type: sqlite\n",
    "crawler:\n  seed_urls: [x]\nredis:\n  host: localhost\n",
    "crawler: [1, 2]\n",
    "crawler: {seed_urls: [x]\n",
])
def test_invalid_config_is_rejected(tmp_path, text):
    with pytest.raises(ConfigError):
        load_config(write(tmp_path, text))


def test_seeds_may_come_from_elsewhere(tmp_path):
    config = load_config(write(tmp_path, "crawler:\n  max_pages: 5\n"), require_seeds=False)

    assert config.crawler.seed_urls == []
    with pytest.raises(ConfigError):
        config.crawler.validate()


def test_config_error_is_a_value_error():
    with pytest.raises(ValueError):
        CrawlerConfig(seed_urls=["x"], num_workers=True).validate()


def test_empty_file_gives_defaults():
    config = Config.from_dict(None)

    assert config.crawler.max_pages == 20
    assert config.crawler.num_workers == 4
    assert config.crawler.politeness_delay == 0.2


def test_database_type_is_case_insensitive(tmp_path):
    config = load_config(write(tmp_path, "crawler:\n  seed_urls: [x]\ndatabase:\n  type: File\n"))

    assert config.database.type == "file"

"""Tests for configuration loading functionality."""
from pathlib import Path
import os
from unittest.mock import patch

import pytest

from jobboard.config import Config, Settings, load_settings


def test_load_settings_reads_yaml(tmp_path: Path) -> None:
    """Test that jobboard.yml is properly loaded into Settings.

    Args:
        tmp_path: pytest fixture providing temporary directory
    """
    # Arrange
    settings_content = """
    recently_viewed:
      max_items: 10
    search_history:
      max_items: 25
    saved_jobs:
      milestones: [1, 3, 7]
    browse:
      page_size: 12
    search:
      stale_minutes: 5
      cache_minutes: 15
      debounce_ms: 250
    """
    settings_file = tmp_path / "jobboard.yml"
    settings_file.write_text(settings_content)

    # Act
    settings = load_settings(settings_file)

    # Assert
    assert settings.recently_viewed_max == 10
    assert settings.history_max == 25
    assert settings.milestones == (1, 3, 7)
    assert settings.page_size == 12
    assert settings.stale_minutes == 5.0
    assert settings.cache_minutes == 15.0
    assert settings.debounce_ms == 250


def test_partial_settings_keep_defaults(tmp_path: Path) -> None:
    settings_file = tmp_path / "jobboard.yml"
    settings_file.write_text("browse:\n  page_size: 50\n")

    settings = load_settings(settings_file)

    assert settings.page_size == 50
    assert settings.recently_viewed_max == 20
    assert settings.milestones == (1, 5, 10, 25, 50, 100)


def test_missing_explicit_file_raises() -> None:
    with pytest.raises(FileNotFoundError):
        load_settings(Path("nonexistent.yml"))


def test_no_default_file_means_defaults(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    assert load_settings() == Settings()


def test_default_file_is_discovered(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    (tmp_path / "jobboard.yaml").write_text("recently_viewed:\n  max_items: 5\n")

    assert load_settings().recently_viewed_max == 5


@pytest.mark.parametrize("content,match", [
    ("browse:\n  page_size: 0\n", "page_size"),
    ("search:\n  stale_minutes: 40\n  cache_minutes: 30\n", "cache_minutes"),
    ("browse: fast\n", "Invalid settings section"),
    ("- just\n- a list\n", "mapping"),
    ("saved_jobs:\n  milestones: [0, 5]\n", "milestones"),
])
def test_invalid_settings_are_rejected(tmp_path: Path, content: str, match: str) -> None:
    settings_file = tmp_path / "jobboard.yml"
    settings_file.write_text(content)

    with pytest.raises(ValueError, match=match):
        load_settings(settings_file)


class TestConfig:
    """Environment-driven configuration."""

    def test_defaults(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with patch.dict(os.environ, {}, clear=True):
            config = Config()
            assert config.get_storage_config() == {
                'url': 'sqlite:///jobboard.db',
                'echo': False,
                'settings_file': None,
            }
            assert config.get_api_config() == {'base_url': 'http://localhost:5000/api', 'timeout': 15.0}
            assert config.get_web_config() == {'host': '127.0.0.1', 'port': 8000}
            assert config.get_log_level() == 'INFO'

    def test_environment_overrides(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        env = {
            'JOBBOARD_STORAGE_URL': 'sqlite:///other.db',
            'JOBBOARD_STORAGE_ECHO': 'yes',
            'JOBBOARD_API_URL': 'https://api.example.com/api',
            'JOBBOARD_API_TIMEOUT': '2.5',
            'WEB_PORT': '9000',
            'JOBBOARD_LOG_LEVEL': 'debug',
        }
        with patch.dict(os.environ, env, clear=True):
            config = Config()
            assert config.get_storage_config()['url'] == 'sqlite:///other.db'
            assert config.get_storage_config()['echo'] is True
            assert config.get_api_config() == {'base_url': 'https://api.example.com/api', 'timeout': 2.5}
            assert config.get_web_config()['port'] == 9000
            assert config.get_log_level() == 'DEBUG'

    def test_env_file_is_loaded(self, tmp_path: Path):
        env_file = tmp_path / "test.env"
        env_file.write_text("JOBBOARD_API_URL=https://env-file.example.com/api\n")
        with patch.dict(os.environ, {}, clear=True):
            config = Config(str(env_file))
            assert config.get_api_config()['base_url'] == 'https://env-file.example.com/api'

    def test_invalid_numbers_fall_back(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with patch.dict(os.environ, {'WEB_PORT': 'eighty', 'JOBBOARD_API_TIMEOUT': 'soon'}, clear=True):
            config = Config()
            assert config.get_web_config()['port'] == 8000
            assert config.get_api_config()['timeout'] == 15.0

    def test_required_key(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ValueError, match="MISSING_KEY"):
                Config().get('MISSING_KEY', required=True)

"""Configuration: environment / .env values and the YAML settings file."""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple
import logging
import os

import yaml
from dotenv import load_dotenv

from .domain.recently_viewed import DEFAULT_MAX_RECENT
from .domain.saved_jobs import DEFAULT_MILESTONES
from .domain.searches import DEFAULT_MAX_HISTORY
from .filters import PAGE_SIZE

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_FILES = ["jobboard.yml", "jobboard.yaml"]


@dataclass(frozen=True)
class Settings:
    """Tuning knobs for the stores, the browse view and the search cache."""
    recently_viewed_max: int = DEFAULT_MAX_RECENT
    history_max: int = DEFAULT_MAX_HISTORY
    milestones: Tuple[int, ...] = DEFAULT_MILESTONES
    page_size: int = PAGE_SIZE
    stale_minutes: float = 10.0
    cache_minutes: float = 30.0
    debounce_ms: int = 300

    def __post_init__(self):
        for name in ('recently_viewed_max', 'history_max', 'page_size'):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be at least 1")
        if any(m < 1 for m in self.milestones):
            raise ValueError("milestones must be positive")
        if self.stale_minutes < 0 or self.cache_minutes < self.stale_minutes:
            raise ValueError("cache_minutes must be at least stale_minutes")
        if self.debounce_ms < 0:
            raise ValueError("debounce_ms must not be negative")


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ValueError(f"Invalid settings section: {name}")
    return section


def load_settings(path: Optional[Path] = None) -> Settings:
    """Load settings from a YAML file.

    Args:
        path: Path to the settings file; the default locations are tried
            when omitted

    Returns:
        Settings: Loaded settings, defaults when no file is found

    Raises:
        FileNotFoundError: If an explicit path does not exist
        ValueError: If the file holds invalid values
    """
    if path is None:
        for fname in DEFAULT_SETTINGS_FILES:
            if Path(fname).exists():
                path = Path(fname)
                break
        else:
            logger.debug("No settings file found, using defaults")
            return Settings()
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Settings file not found: {path}")
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError("Settings file must contain a mapping")

    recent = _section(data, 'recently_viewed')
    history = _section(data, 'search_history')
    saved = _section(data, 'saved_jobs')
    browse = _section(data, 'browse')
    search = _section(data, 'search')
    defaults = Settings()
    try:
        return Settings(
            recently_viewed_max=int(recent.get('max_items', defaults.recently_viewed_max)),
            history_max=int(history.get('max_items', defaults.history_max)),
            milestones=tuple(int(m) for m in saved.get('milestones', defaults.milestones)),
            page_size=int(browse.get('page_size', defaults.page_size)),
            stale_minutes=float(search.get('stale_minutes', defaults.stale_minutes)),
            cache_minutes=float(search.get('cache_minutes', defaults.cache_minutes)),
            debounce_ms=int(search.get('debounce_ms', defaults.debounce_ms)),
        )
    except TypeError as e:
        raise ValueError(f"Invalid settings: {e}") from e


class Config:
    """Configuration manager with environment variable and .env file support."""

    def __init__(self, env_file: Optional[str] = None):
        """Initialize configuration.

        Args:
            env_file: Optional path to .env file
        """
        if env_file and os.path.exists(env_file):
            load_dotenv(env_file)
            logger.info(f"Loaded configuration from {env_file}")
        elif os.path.exists(".env"):
            load_dotenv(".env")
            logger.info("Loaded configuration from .env file")
        else:
            logger.debug("No .env file found, using environment variables only")

    def get(self, key: str, default: Any = None, required: bool = False) -> Any:
        """Get configuration value.

        Args:
            key: Configuration key
            default: Default value if key not found
            required: Whether the key is required

        Returns:
            Configuration value

        Raises:
            ValueError: If required key is missing
        """
        value = os.getenv(key, default)

        if required and value is None:
            raise ValueError(f"Required configuration key '{key}' is missing")

        return value

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self.get(key, str(default).lower())
        return str(value).lower() in ('true', '1', 'yes', 'on')

    def get_int(self, key: str, default: int = 0) -> int:
        value = self.get(key, str(default))
        try:
            return int(value)
        except (ValueError, TypeError):
            logger.warning(f"Invalid integer value for {key}: {value}, using default {default}")
            return default

    def get_float(self, key: str, default: float = 0.0) -> float:
        value = self.get(key, str(default))
        try:
            return float(value)
        except (ValueError, TypeError):
            logger.warning(f"Invalid float value for {key}: {value}, using default {default}")
            return default

    def get_storage_config(self) -> Dict[str, Any]:
        """Where client state lives (shared by every process using the same URL)."""
        return {
            'url': self.get('JOBBOARD_STORAGE_URL', 'sqlite:///jobboard.db'),
            'echo': self.get_bool('JOBBOARD_STORAGE_ECHO', False),
            'settings_file': self.get('JOBBOARD_SETTINGS_FILE'),
        }

    def get_api_config(self) -> Dict[str, Any]:
        return {
            'base_url': self.get('JOBBOARD_API_URL', 'http://localhost:5000/api'),
            'timeout': self.get_float('JOBBOARD_API_TIMEOUT', 15.0),
        }

    def get_web_config(self) -> Dict[str, Any]:
        return {
            'host': self.get('WEB_HOST', '127.0.0.1'),
            'port': self.get_int('WEB_PORT', 8000),
        }

    def get_log_level(self) -> str:
        return str(self.get('JOBBOARD_LOG_LEVEL', 'INFO')).upper()

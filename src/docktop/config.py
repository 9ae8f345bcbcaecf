"""
Configuration management for docktop.

Settings are dataclasses with sensible defaults, optionally overridden by a
YAML file. The file is only ever read; docktop keeps no persisted state.

Lookup order:
  - $DOCKTOP_CONFIG if set
  - ~/.config/docktop/config.yaml

Example:

    engine:
      base_url: unix:///var/run/docker.sock
      refresh_interval: 2.0
      command_timeout: 30.0
    logging:
      level: DEBUG

The keymap is fixed and intentionally absent from the configuration.
"""

import os
import yaml
import logging
from typing import Dict, Any, Optional
from dataclasses import dataclass, field, asdict
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class EngineConfig:
    """Container engine connection and timing."""
    base_url: Optional[str] = None  # None uses DOCKER_HOST / the local socket
    refresh_interval: float = 2.0  # seconds between refresh ticks
    command_timeout: float = 30.0  # upper bound for lifecycle calls, covers the stop grace period
    refresh_timeout: float = 5.0  # upper bound for list/inspect calls


@dataclass
class LogConfig:
    """Logging configuration."""
    level: str = "INFO"
    file_path: Optional[str] = None  # None for default


@dataclass
class AppConfig:
    """Main application configuration."""
    engine: EngineConfig = field(default_factory=EngineConfig)
    logging: LogConfig = field(default_factory=LogConfig)


def default_config_path() -> Path:
    env_path = os.environ.get("DOCKTOP_CONFIG")
    if env_path:
        return Path(env_path).expanduser()
    return Path.home() / ".config" / "docktop" / "config.yaml"


class ConfigManager:
    """Configuration manager with YAML file support."""

    def __init__(self, config_file: Optional[Path] = None):
        self.config_file = config_file or default_config_path()
        self._config: AppConfig = AppConfig()
        self.load_config()

    def load_config(self) -> None:
        """Load configuration from YAML file if present."""
        if not self.config_file.exists():
            logger.debug(f"No configuration at {self.config_file}, using defaults")
            self._config = AppConfig()
            return
        try:
            with open(self.config_file, 'r') as f:
                user_config = yaml.safe_load(f) or {}
            if not isinstance(user_config, dict):
                raise ValueError("top level must be a mapping")
            self._config = self._merge_configs(AppConfig(), user_config)
            logger.debug(f"Loaded configuration from {self.config_file}")
        except (OSError, ValueError, TypeError, yaml.YAMLError) as e:
            logger.error(f"Failed to load config: {e}, using defaults")
            self._config = AppConfig()

    def get_config(self) -> AppConfig:
        """Get current configuration."""
        return self._config

    def _merge_configs(self, default: AppConfig, user: Dict[str, Any]) -> AppConfig:
        """Merge user config with defaults."""
        if isinstance(user.get('engine'), dict):
            self._merge_dataclass(default.engine, user['engine'])
        if isinstance(user.get('logging'), dict):
            self._merge_dataclass(default.logging, user['logging'])
        for name in ("refresh_interval", "command_timeout", "refresh_timeout"):
            if getattr(default.engine, name) <= 0:
                raise ValueError(f"engine.{name} must be positive")
        return default

    def _merge_dataclass(self, obj: Any, updates: Dict[str, Any]) -> None:
        """Merge updates into dataclass object, coercing to the default's type."""
        for key, value in updates.items():
            if not hasattr(obj, key):
                logger.warning(f"Ignoring unknown config key: {key}")
                continue
            current = getattr(obj, key)
            if isinstance(current, float) and isinstance(value, (int, float)):
                value = float(value)
            elif isinstance(current, (int, float)) and not isinstance(value, (int, float)):
                raise ValueError(f"{key} must be a number")
            setattr(obj, key, value)

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self._config)

    def get_log_level(self) -> str:
        """Get configured log level."""
        return str(self._config.logging.level).upper()

    def get_custom_log_path(self) -> Optional[str]:
        """Get custom log file path if configured."""
        return self._config.logging.file_path

    def get_refresh_interval(self) -> float:
        """Get refresh interval in seconds."""
        return self._config.engine.refresh_interval

    def get_command_timeout(self) -> float:
        return self._config.engine.command_timeout

    def get_refresh_timeout(self) -> float:
        return self._config.engine.refresh_timeout

    def get_base_url(self) -> Optional[str]:
        return self._config.engine.base_url


# Global config instance
config_manager = ConfigManager()

"""
Configuration management for planboard.

Loads settings from config.ini with environment variable overrides.
Provides centralized configuration for storage backend selection and
planner defaults.
"""

import configparser
import os
from pathlib import Path
from typing import Optional, Dict, Any, List

from planboard.logging_config import get_logger

logger = get_logger(__name__)

_PLANBOARD_HOME = Path.home() / ".planboard"

STORAGE_BACKENDS = ("document", "local")


class Config:
    """Application configuration manager."""

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize configuration manager.

        Args:
            config_path: Path to config file, defaults to ~/.planboard/config.ini
        """
        self.config_path = config_path or self._default_config_path()
        self._config = configparser.ConfigParser()
        self._load()

    def _default_config_path(self) -> Path:
        """Get default config path."""
        return _PLANBOARD_HOME / "config.ini"

    def _load(self):
        """Load configuration from file."""
        if self.config_path.exists():
            try:
                self._config.read(self.config_path)
                logger.info(f"Loaded configuration from {self.config_path}")
            except configparser.Error as e:
                logger.warning(f"Failed to read config file: {e}. Using defaults.")
        else:
            logger.debug(f"Config file not found at {self.config_path}. Using defaults.")

    def get_storage_config(self) -> Dict[str, Any]:
        """
        Get storage configuration with environment overrides.

        Environment variables take precedence over config file:
        - PLANBOARD_STORAGE_BACKEND (document/local)
        - PLANBOARD_DATABASE_URL
        - PLANBOARD_LOCAL_STORE_PATH

        Returns:
            Dictionary with storage configuration
        """
        default_db_url = f"sqlite+aiosqlite:///{_PLANBOARD_HOME / 'planboard.db'}"
        default_local_path = str(_PLANBOARD_HOME / "local_storage.db")

        config = {
            'backend': (os.getenv('PLANBOARD_STORAGE_BACKEND') or
                        self._config.get('storage', 'backend', fallback='local')).strip().lower(),
            'database_url': os.getenv('PLANBOARD_DATABASE_URL') or
                            self._config.get('storage', 'database_url', fallback=default_db_url),
            'local_path': os.getenv('PLANBOARD_LOCAL_STORE_PATH') or
                          self._config.get('storage', 'local_path', fallback=default_local_path),
        }

        if config['backend'] not in STORAGE_BACKENDS:
            logger.warning(f"Unknown storage backend configured: '{config['backend']}'")

        logger.debug(f"Storage config: backend={config['backend']}, "
                     f"local_path={config['local_path']}")

        return config

    def get_planner_config(self) -> Dict[str, Any]:
        """
        Get planner defaults with environment overrides.

        Environment variables take precedence over config file:
        - PLANBOARD_DEFAULT_STAGE
        - PLANBOARD_NEW_STAGE_NAME
        - PLANBOARD_DEFAULT_LAYERS (comma separated)

        Returns:
            Dictionary with planner configuration
        """
        layers_raw = (os.getenv('PLANBOARD_DEFAULT_LAYERS') or
                      self._config.get('planner', 'default_layers',
                                       fallback='To Do, In Progress, Done'))

        config = {
            'default_stage': os.getenv('PLANBOARD_DEFAULT_STAGE') or
                             self._config.get('planner', 'default_stage', fallback='Production'),
            'new_stage_name': os.getenv('PLANBOARD_NEW_STAGE_NAME') or
                              self._config.get('planner', 'new_stage_name', fallback='New Stage'),
            'default_layers': _split_names(layers_raw),
        }

        logger.debug(f"Planner config: default_stage={config['default_stage']}, "
                     f"default_layers={config['default_layers']}")

        return config


def _split_names(raw: str) -> List[str]:
    """Split a comma separated list of names, dropping blanks."""
    return [name.strip() for name in raw.split(",") if name.strip()]

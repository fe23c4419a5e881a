"""
Configuration management for DocForge.

This module handles loading and accessing configuration values from config.yaml.
It provides a centralized way to manage storage locations, auto-save and
snapshot timing, and export settings without changing code.
"""

import yaml
from pathlib import Path
from typing import Any, Dict, Optional
import logging


class ConfigManager:
    """
    Manages configuration loading and access for DocForge.
    """

    def __init__(self, config_path: str = "config.yaml"):
        """
        Initialize the configuration manager.

        Args:
            config_path: Path to the configuration file
        """
        self.config_path = Path(config_path)
        self._config: Dict[str, Any] = {}
        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from YAML file."""
        try:
            if not self.config_path.exists():
                raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

            with open(self.config_path, 'r', encoding='utf-8') as f:
                self._config = yaml.safe_load(f) or {}

            logging.info(f"Configuration loaded from {self.config_path}")

        except (OSError, yaml.YAMLError) as e:
            logging.error(f"Failed to load configuration: {e}")
            # Fall back to default configuration
            self._config = self._get_default_config()

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default configuration values as fallback."""
        return {
            "database": {
                "filename": "docforge.db"
            },
            "paths": {
                "export_dir": "exports",
                "log_file": "docforge.log"
            },
            "editor": {
                "autosave_delay": 2.0,
                "description_length": 100
            },
            "snapshots": {
                "interval_minutes": 10,
                "retention": 5,
                "key_prefix": "auto_backup_"
            },
            "export": {
                "search_context_chars": 30,
                "stylesheet_cdn": "https://cdn.tailwindcss.com"
            },
            "remote": {
                "url": None,
                "api_key": None,
                "timeout": 30.0
            },
            "logging": {
                "level": "INFO",
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            }
        }

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get a configuration value using dot notation.

        Args:
            key_path: Dot-separated path to the configuration value (e.g., "snapshots.retention")
            default: Default value if key is not found

        Returns:
            The configuration value

        Examples:
            config.get("editor.autosave_delay")  # Returns 2.0
            config.get("snapshots.key_prefix")   # Returns "auto_backup_"
        """
        keys = key_path.split('.')
        value = self._config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def get_section(self, section: str) -> Dict[str, Any]:
        """
        Get an entire configuration section.

        Args:
            section: Name of the configuration section

        Returns:
            Dictionary containing the section configuration
        """
        return self._config.get(section, {})

    def reload(self) -> None:
        """Reload configuration from file."""
        self._load_config()

    # Convenience properties for commonly used values

    @property
    def database_filename(self) -> str:
        """Get database filename."""
        return self.get("database.filename", "docforge.db")

    @property
    def export_directory(self) -> str:
        """Get export output directory."""
        return self.get("paths.export_dir", "exports")

    @property
    def log_filename(self) -> str:
        """Get log file name."""
        return self.get("paths.log_file", "docforge.log")

    @property
    def autosave_delay(self) -> float:
        """Seconds of editing inactivity before the session saves."""
        return float(self.get("editor.autosave_delay", 2.0))

    @property
    def description_length(self) -> int:
        """Maximum length of the derived document description."""
        return int(self.get("editor.description_length", 100))

    @property
    def snapshot_interval_minutes(self) -> float:
        """Get the automatic snapshot period."""
        return float(self.get("snapshots.interval_minutes", 10))

    @property
    def snapshot_retention(self) -> int:
        """Get the number of automatic snapshots to keep."""
        return int(self.get("snapshots.retention", 5))

    @property
    def snapshot_key_prefix(self) -> str:
        """Get the key prefix of automatic snapshots."""
        return self.get("snapshots.key_prefix", "auto_backup_")

    @property
    def search_context_chars(self) -> int:
        """Characters of context around a search match in exported sites."""
        return int(self.get("export.search_context_chars", 30))

    @property
    def stylesheet_cdn(self) -> str:
        """Get the stylesheet script referenced by exported sites."""
        return self.get("export.stylesheet_cdn", "https://cdn.tailwindcss.com")

    @property
    def remote_store_url(self) -> Optional[str]:
        """Get the base URL of the remote document store."""
        return self.get("remote.url")

    @property
    def remote_store_key(self) -> Optional[str]:
        """Get the API key of the remote document store."""
        return self.get("remote.api_key")

    @property
    def remote_timeout(self) -> float:
        """Get the remote document store timeout."""
        return float(self.get("remote.timeout", 30.0))


# Global configuration instance
config = ConfigManager()


def get_config() -> ConfigManager:
    """
    Get the global configuration instance.

    Returns:
        The global ConfigManager instance
    """
    return config

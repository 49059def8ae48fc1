#!/usr/bin/env python3
"""
Configuration loader for the Boston open-data MCP server.
"""

import json
import os
from importlib.resources import files
from pathlib import Path
from typing import Dict, Any, Optional

from dotenv import load_dotenv

from boston_data.schemas import CkanSettings, DatasetSettings

# Pick up CKAN_HOST, BOSTON_DATA_CONFIG and *_RESOURCE_ID overrides
load_dotenv()


class Config:
    """Read-only configuration for the datastore engine and the MCP server."""

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize configuration from JSON file.

        Args:
            config_path: Path to config file. Falls back to $BOSTON_DATA_CONFIG,
                then to the config.json shipped inside the boston_data package.
        """
        config_path = config_path or os.getenv("BOSTON_DATA_CONFIG")
        if config_path is None:
            self.config_path = files("boston_data") / "config.json"
        else:
            self.config_path = Path(config_path)
        self._config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from JSON file."""
        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError:
            raise FileNotFoundError(f"Config file not found at {self.config_path}. Please ensure config.json exists.")
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in config file: {e}. Please fix the config.json file.")

    def get(self, section: str, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            section: Configuration section (e.g., 'ckan')
            key: Configuration key (e.g., 'page_size')
            default: Default value if key not found

        Returns:
            Configuration value

        Raises:
            KeyError: If section or key not found and no default provided
        """
        if section not in self._config:
            if default is not None:
                return default
            raise KeyError(f"Configuration section '{section}' not found")

        if key not in self._config[section]:
            if default is not None:
                return default
            raise KeyError(f"Configuration key '{key}' not found in section '{section}'")

        return self._config[section][key]

    def get_section(self, section: str) -> Dict[str, Any]:
        """Get a copy of an entire configuration section."""
        return dict(self._config.get(section, {}))

    @property
    def ckan(self) -> CkanSettings:
        """Datastore host, page size and concurrency cap."""
        section = self.get_section("ckan")
        host = os.getenv("CKAN_HOST")
        if host:
            section["host"] = host
        return CkanSettings(**section)

    def dataset(self, name: str) -> DatasetSettings:
        """
        Settings for one remote table.

        A ``<NAME>_RESOURCE_ID`` environment variable overrides the configured
        resource id, e.g. ``CHECKBOOK_RESOURCE_ID``.
        """
        datasets = self.get_section("datasets")
        if name not in datasets:
            raise KeyError(f"Dataset '{name}' not found in configuration")
        settings = dict(datasets[name])
        override = os.getenv(f"{name.upper()}_RESOURCE_ID")
        if override:
            settings["resource_id"] = override
        return DatasetSettings(**settings)

    @property
    def dataset_names(self) -> list:
        return list(self.get_section("datasets").keys())

    @property
    def requests_per_minute(self) -> int:
        """Tool calls allowed per minute."""
        return self.get("rate_limit", "requests_per_minute")

    @property
    def burst_limit(self) -> int:
        """Tool calls allowed in any 5 second window."""
        return self.get("rate_limit", "burst_limit")

    @property
    def server_name(self) -> str:
        """MCP server name."""
        return self.get("mcp_server", "server_name")

    @property
    def log_level(self) -> str:
        return os.getenv("LOG_LEVEL") or self.get("mcp_server", "log_level", "INFO")


# Global config instance
_config_instance = None


def get_config(config_path: Optional[str] = None) -> Config:
    """Get the global configuration instance."""
    global _config_instance
    if _config_instance is None:
        _config_instance = Config(config_path)
    return _config_instance

"""
================================================================================
Configuration Loader
================================================================================

YAML-based configuration management with environment variable override support.

Features:
    - YAML configuration loading
    - Environment variable override (TAIGA_BASE_URL overrides taiga.base_url)
    - Dot notation path access
    - Default value support
    - Required-key lookup for settings the suite cannot run without

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from loguru import logger


# Default configuration file path
DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / "config" / "config.yaml"


class ConfigurationError(Exception):
    """Raised when configuration loading or access fails."""
    pass


class ConfigLoader:
    """
    Configuration loader with YAML and environment variable support.

    Configuration hierarchy (highest to lowest priority):
        1. Environment variables (TAIGA_BASE_URL)
        2. YAML configuration file
        3. Default values

    Each instance owns its configuration; nothing is shared between
    instances, so tests can build one per scenario.

    Usage:
        >>> config = ConfigLoader()
        >>> config.get("taiga.base_url", "http://localhost:9000")
        'https://api.taiga.io'  # From YAML or env var

        >>> config.get("api.timeout", 30)
        30  # Default value if not configured

    Environment Variable Mapping:
        - taiga.base_url -> TAIGA_BASE_URL
        - taiga.project_id -> TAIGA_PROJECT_ID
        - api.timeout -> API_TIMEOUT
    """

    def __init__(self, config_path: Optional[Path] = None) -> None:
        """
        Initialize configuration loader.

        Args:
            config_path: Path to YAML configuration file.
                        Uses DEFAULT_CONFIG_PATH if not specified.
        """
        self._config_path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
        self._config: Dict[str, Any] = {}
        self._load_config()

    @property
    def config_path(self) -> Path:
        return self._config_path

    def _load_config(self) -> None:
        """Load configuration from YAML file."""
        if not self._config_path.exists():
            logger.warning(
                f"Configuration file not found: {self._config_path}. "
                f"Using defaults and environment variables only."
            )
            self._config = {}
            return

        try:
            with open(self._config_path, "r", encoding="utf-8") as f:
                self._config = yaml.safe_load(f) or {}
            logger.debug(f"Loaded configuration from: {self._config_path}")
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in configuration file: {e}"
            ) from e

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by dot-notation path.

        First checks environment variables, then YAML config, then default.

        Args:
            key: Dot-notation path (e.g., "taiga.base_url")
            default: Default value if key not found

        Returns:
            Configuration value or default

        Examples:
            >>> config.get("taiga.base_url")
            'https://api.taiga.io'

            >>> config.get("api.timeout", 30)
            30
        """
        # Check environment variable first
        env_key = key.upper().replace(".", "_")
        env_value = os.environ.get(env_key)
        if env_value is not None:
            return self._convert_type(env_value, default)

        # Navigate YAML config by dot notation
        value = self._config
        for part in key.split("."):
            if isinstance(value, dict):
                value = value.get(part)
            else:
                value = None

            if value is None:
                return default

        return value

    def require(self, key: str) -> Any:
        """
        Get a configuration value that must be present.

        Raises:
            ConfigurationError: If the key is unset or empty
        """
        value = self.get(key)
        if value is None or value == "":
            env_key = key.upper().replace(".", "_")
            raise ConfigurationError(
                f"Missing required setting '{key}' (set it in "
                f"{self._config_path.name} or via {env_key})"
            )
        return value

    def get_section(self, section: str) -> Dict[str, Any]:
        """
        Get entire configuration section.

        Args:
            section: Section name (e.g., "taiga", "api")

        Returns:
            Section dictionary or empty dict if not found
        """
        return self._config.get(section, {}) or {}

    def reload(self) -> None:
        """
        Reload configuration from file.

        Useful when configuration file has been updated during runtime.
        """
        self._load_config()
        logger.info(f"Configuration reloaded from: {self._config_path}")

    def _convert_type(self, value: str, reference: Any) -> Any:
        """
        Convert string value to match reference type.

        Used for environment variables which are always strings.
        """
        if reference is None:
            return value

        if isinstance(reference, bool):
            return value.lower() in ("true", "1", "yes", "on")
        if isinstance(reference, int):
            try:
                return int(value)
            except ValueError:
                return value
        if isinstance(reference, float):
            try:
                return float(value)
            except ValueError:
                return value

        return value


__all__ = [
    "ConfigLoader",
    "ConfigurationError",
]

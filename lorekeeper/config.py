"""
Configuration management for Lorekeeper.

This module handles loading and accessing configuration values from config.yaml.
Storage credentials may also come from the environment so that service keys
never have to be written to disk.
"""

import yaml
import os
from pathlib import Path
from typing import Any, Dict, Optional
import logging


class ConfigManager:
    """
    Manages configuration loading and access for Lorekeeper.
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

        except Exception as e:
            logging.error(f"Failed to load configuration: {e}")
            # Fall back to default configuration
            self._config = self._get_default_config()

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default configuration values as fallback."""
        return {
            "storage": {
                "backend": "supabase",
                "url": None,
                "domain": "supabase.co",
                "public_prefix": "/storage/v1/object/public/",
                "service_key": None,
                "delete_endpoint": "/api/delete-image",
                "app_url": None,
                "timeout": 30.0
            },
            "reclaim": {
                "enabled": True,
                "max_concurrent": 8
            },
            "rendering": {
                "empty_message": "No content available"
            },
            "logging": {
                "level": "INFO",
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            },
            "paths": {
                "log_file": "lorekeeper.log"
            }
        }

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get a configuration value using dot notation.

        Args:
            key_path: Dot-separated path to the configuration value (e.g., "storage.domain")
            default: Default value if key is not found

        Returns:
            The configuration value

        Examples:
            config.get("storage.backend")  # Returns "supabase"
            config.get("reclaim.max_concurrent")  # Returns 8
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
    def storage_backend(self) -> str:
        """Get the storage-delete backend name."""
        return self.get("storage.backend", "supabase")

    @property
    def storage_url(self) -> Optional[str]:
        """Get the storage project URL (SUPABASE_URL wins over the file)."""
        return os.environ.get("SUPABASE_URL") or self.get("storage.url")

    @property
    def storage_domain(self) -> str:
        """Get the owned storage domain."""
        return self.get("storage.domain", "supabase.co")

    @property
    def storage_public_prefix(self) -> str:
        """Get the path prefix of public object URLs."""
        return self.get("storage.public_prefix", "/storage/v1/object/public/")

    @property
    def storage_service_key(self) -> Optional[str]:
        """Get the storage service key (SUPABASE_SERVICE_ROLE_KEY wins over the file)."""
        return os.environ.get("SUPABASE_SERVICE_ROLE_KEY") or self.get("storage.service_key")

    @property
    def delete_endpoint(self) -> str:
        """Get the application delete endpoint path or URL."""
        return self.get("storage.delete_endpoint", "/api/delete-image")

    @property
    def app_url(self) -> Optional[str]:
        """Get the application base URL a relative delete endpoint is joined to."""
        return self.get("storage.app_url")

    @property
    def storage_timeout(self) -> float:
        """Get the per-request storage timeout."""
        return self.get("storage.timeout", 30.0)

    @property
    def reclaim_enabled(self) -> bool:
        """Whether attachment reclamation runs at all."""
        return self.get("reclaim.enabled", True)

    @property
    def max_concurrent_deletions(self) -> Optional[int]:
        """Get the bound on in-flight deletions (None or 0 means unbounded)."""
        return self.get("reclaim.max_concurrent", 8) or None

    @property
    def empty_message(self) -> str:
        """Get the text shown for documents without content."""
        return self.get("rendering.empty_message", "No content available")

    @property
    def log_filename(self) -> str:
        """Get log file name."""
        return self.get("paths.log_file", "lorekeeper.log")


# Global configuration instance
config = ConfigManager()


def get_config() -> ConfigManager:
    """
    Get the global configuration instance.

    Returns:
        The global ConfigManager instance
    """
    return config

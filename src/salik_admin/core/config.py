"""Configuration management for production and test environments.

This module keeps the remote API location, the object storage bucket and the
import rules in one place, with a separate set of defaults for test runs so
that a ``--test`` session can never write to the production roster.
"""

import os
from typing import Any, Literal

from ..utils.log import get_logger

log = get_logger(__name__)

# Environment mode type
EnvironmentMode = Literal["production", "test"]

# Institutional suffix a student email must carry to be importable
STUDENT_EMAIL_DOMAIN = "@mabinicolleges.edu.ph"

# Object storage prefixes: new abstracts vs. replacements made from the edit form
ABSTRACT_PREFIX = "Abstract/"
REPLACEMENT_PDF_PREFIX = "PDFs/"

_DEFAULT_PRODUCTION_SETTINGS: dict[str, Any] = {
    "api_base_url": "https://gs-backend-r39y.onrender.com",
    "storage_bucket": "salik-sik-library.appspot.com",
    "storage_token": None,
    "http_timeout": 30.0,
}

_DEFAULT_TEST_SETTINGS: dict[str, Any] = {
    "api_base_url": "http://localhost:8000",
    "storage_bucket": "salik-sik-library-test.appspot.com",
    "storage_token": None,
    "http_timeout": 10.0,
}

# Environment variables that override the mode defaults
_ENV_OVERRIDES = {
    "api_base_url": "SALIK_API_BASE_URL",
    "storage_bucket": "SALIK_STORAGE_BUCKET",
    "storage_token": "SALIK_STORAGE_TOKEN",
    "http_timeout": "SALIK_HTTP_TIMEOUT",
}


class EnvironmentConfig:
    """Holds the settings of the current environment mode.

    Production and test modes never share an API base URL or a storage bucket.
    """

    def __init__(self, mode: EnvironmentMode = "production") -> None:
        """Initialize configuration with specified mode.

        Args:
            mode: Environment mode ('production' or 'test')
        """
        self._mode: EnvironmentMode = mode
        self._settings: dict[str, Any] = {}
        self._load_settings()
        log.debug("environment_config_initialized", mode=mode, api_base_url=self.api_base_url)

    def _load_settings(self) -> None:
        """Load defaults for the current mode, then apply environment overrides."""
        if self._mode == "test":
            self._settings = _DEFAULT_TEST_SETTINGS.copy()
        else:
            self._settings = _DEFAULT_PRODUCTION_SETTINGS.copy()

        for key, env_name in _ENV_OVERRIDES.items():
            value = os.getenv(env_name)
            if value:
                self._settings[key] = float(value) if key == "http_timeout" else value

    @property
    def mode(self) -> EnvironmentMode:
        """Get current environment mode."""
        return self._mode

    @property
    def api_base_url(self) -> str:
        """Base URL of the library REST API (no trailing slash)."""
        return str(self._settings["api_base_url"]).rstrip("/")

    @property
    def storage_bucket(self) -> str:
        return str(self._settings["storage_bucket"])

    @property
    def storage_token(self) -> str | None:
        """Bearer token sent to object storage, if the bucket rules need one."""
        return self._settings["storage_token"]

    @property
    def http_timeout(self) -> float:
        return float(self._settings["http_timeout"])

    def set_mode(self, mode: EnvironmentMode) -> None:
        """Change environment mode and reload settings.

        Args:
            mode: New environment mode ('production' or 'test')
        """
        if mode != self._mode:
            old_mode = self._mode
            self._mode = mode
            self._load_settings()
            log.info(
                "environment_mode_changed",
                old_mode=old_mode,
                new_mode=mode,
                api_base_url=self.api_base_url,
            )

    def get_summary(self) -> dict[str, str]:
        """Get summary of current configuration.

        The storage token is masked.
        """
        return {
            "mode": self._mode,
            "api_base_url": self.api_base_url,
            "storage_bucket": self.storage_bucket,
            "storage_token": "***" if self.storage_token else "",
            "http_timeout": str(self.http_timeout),
        }


# Global configuration instance (lazily initialized)
_config: EnvironmentConfig | None = None


def get_config() -> EnvironmentConfig:
    """Get the global configuration instance, creating it in production mode."""
    global _config
    if _config is None:
        _config = EnvironmentConfig(mode="production")
    return _config


def set_test_mode() -> None:
    """Switch to test mode globally.

    Called by the CLI when ``--test`` is given, and by test fixtures.
    """
    global _config
    if _config is None:
        _config = EnvironmentConfig(mode="test")
        log.info("initialized_in_test_mode", settings=_config.get_summary())
    else:
        _config.set_mode("test")
        log.info("switched_to_test_mode", settings=_config.get_summary())


def set_production_mode() -> None:
    """Switch to production mode globally."""
    global _config
    if _config is None:
        _config = EnvironmentConfig(mode="production")
        log.info("initialized_in_production_mode", settings=_config.get_summary())
    else:
        _config.set_mode("production")
        log.info("switched_to_production_mode", settings=_config.get_summary())


def is_test_mode() -> bool:
    return get_config().mode == "test"

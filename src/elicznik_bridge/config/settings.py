"""Centralized configuration management using Pydantic Settings.

This module provides type-safe, validated configuration loading from environment
variables and .env files. Portal endpoints, throttling, storage locations and
optional default credentials are all managed here instead of being hardcoded in
the client.

Example:
    >>> from elicznik_bridge.config import get_settings
    >>> print(get_settings().portal.service_url)
    >>> print(get_settings().storage.bridge_cookie_dir)
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOGGER = logging.getLogger(__name__)


class PortalSettings(BaseSettings):
    """Tauron e-licznik endpoints and HTTP behaviour."""

    tauron_login_url: str = Field(
        default="https://logowanie.tauron-dystrybucja.pl/login",
        description="Login form endpoint",
    )
    tauron_service_url: str = Field(
        default="https://elicznik.tauron-dystrybucja.pl",
        description="e-licznik service root; its host is the login target",
    )
    tauron_user_agent: str = Field(
        default="Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome Safari",
        description="User agent presented to the portal",
    )
    tauron_connect_timeout: float = Field(
        default=15.0,
        gt=0,
        description="Connect timeout in seconds",
    )
    tauron_read_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Read timeout in seconds",
    )
    tauron_throttle_seconds: float = Field(
        default=0.12,
        ge=0,
        description="Pause between per-day requests",
    )
    tauron_timezone: str = Field(
        default="Europe/Warsaw",
        description="Portal home timezone used to resolve 'today'",
    )

    @field_validator("tauron_login_url", "tauron_service_url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Ensure URLs start with http:// or https://."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("Portal URLs must start with http:// or https://")
        return v.rstrip("/")

    @property
    def service_url(self) -> str:
        return self.tauron_service_url

    @property
    def login_url(self) -> str:
        return self.tauron_login_url


class StorageSettings(BaseSettings):
    """Locations for persisted cookies and saved results."""

    bridge_cookie_dir: Path = Field(
        default=Path(".elicznik/cookies"),
        description="Directory holding per-identity cookie files",
    )
    bridge_output_dir: Path = Field(
        default=Path(".elicznik/results"),
        description="Directory for results written with save=1",
    )
    bridge_cookie_salt: str = Field(
        default="elicznik-bridge",
        description="Salt mixed into the identity hash that names cookie files",
    )


class CredentialSettings(BaseSettings):
    """Optional default credentials for the CLI."""

    tauron_username: Optional[str] = Field(default=None, description="Portal login")
    tauron_password: Optional[str] = Field(default=None, description="Portal password")
    tauron_meter: Optional[str] = Field(default=None, description="Metering point id")


class Settings(BaseSettings):
    """Root settings container for the bridge.

    All configuration is loaded from environment variables or .env file.
    Nothing is required; defaults target the production portal.

    Example .env file:
        TAURON_USERNAME=jan.kowalski@example.com
        TAURON_PASSWORD=secret
        TAURON_METER=590243000000000000
        BRIDGE_COOKIE_DIR=/var/lib/elicznik/cookies
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    portal: PortalSettings = Field(default_factory=PortalSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    credentials: CredentialSettings = Field(default_factory=CredentialSettings)


# Lazy initialization - only create settings when accessed
_settings: Optional[Settings] = None
_settings_lock = threading.Lock()


def get_settings() -> Settings:
    """Get or create the Settings singleton (thread-safe).

    Returns:
        Settings instance loaded from environment variables/.env file.

    Raises:
        ValidationError: If a configured value is invalid.
    """
    global _settings

    if _settings is not None:
        return _settings

    with _settings_lock:
        if _settings is None:
            LOGGER.debug("Initializing Settings from environment variables and .env file")
            try:
                _settings = Settings()
            except ValidationError as e:
                LOGGER.error("Configuration validation failed: %s", e)
                raise

    return _settings


def reset_settings() -> None:
    """Drop the cached singleton so the next call re-reads the environment."""
    global _settings
    with _settings_lock:
        _settings = None


__all__ = [
    "Settings",
    "PortalSettings",
    "StorageSettings",
    "CredentialSettings",
    "get_settings",
    "reset_settings",
]

"""
Configuration management for the session engine.

This module provides centralized configuration loading and validation using
Pydantic settings. The cookie secret and the other session options are read
from ``SESSION_``-prefixed environment variables or .env files and turned
into the options mapping accepted by SessionEngine.
"""

import os
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Tuple

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from errors.exceptions import ConfigurationError
from session.options import DEFAULT_DURATION_MS


class Environment(str, Enum):
    """Supported deployment environments."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


def _detect_environment() -> Environment:
    """
    Detect the current environment from the SESSION_ENVIRONMENT variable.

    Returns:
        Environment: The detected environment, defaults to DEVELOPMENT if not set.
    """
    env_value = os.environ.get("SESSION_ENVIRONMENT", "development").lower().strip()
    try:
        return Environment(env_value)
    except ValueError:
        return Environment.DEVELOPMENT


def _get_env_files(environment: Environment) -> Tuple[str, ...]:
    """
    Get the list of .env files to load for the given environment.

    The base .env file is loaded first, then the environment-specific file
    overrides it.
    """
    env_file_map = {
        Environment.DEVELOPMENT: ".env.development",
        Environment.STAGING: ".env.staging",
        Environment.PRODUCTION: ".env.production",
    }
    env_specific_file = env_file_map.get(environment, ".env.development")

    return (".env", env_specific_file)


class Settings(BaseSettings):
    """
    Session engine settings loaded from environment variables.

    ``SESSION_SECRET`` is required. The application will fail to start if
    it is missing or any value is invalid.
    """

    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Deployment environment (development, staging, production)"
    )

    # Cookie Configuration
    secret: str = Field(
        ...,
        description="Secret used to sign the session cookie (at least 10 characters)"
    )
    cookie_name: str = Field(
        default="default_sess",
        description="Session cookie name"
    )
    cookie_path: str = Field(
        default="/",
        description="Session cookie path"
    )
    cookie_domain: Optional[str] = Field(
        default=None,
        description="Session cookie domain"
    )
    cookie_secure: bool = Field(
        default=True,
        description="Whether to add the Secure flag to the session cookie"
    )
    cookie_http_only: bool = Field(
        default=True,
        description="Whether to add the HttpOnly flag to the session cookie"
    )
    cookie_same_site: str = Field(
        default="none",
        description="SameSite directive: lax, strict or none"
    )

    # Session Lifetime Configuration
    duration_ms: int = Field(
        default=DEFAULT_DURATION_MS,
        ge=1,
        description="Session lifetime in milliseconds"
    )
    automatic_touch: bool = Field(
        default=True,
        description="Touch stored sessions at the end of every request"
    )
    cleanup_interval_seconds: Optional[int] = Field(
        default=None,
        ge=1,
        description="Interval for running the cleanup operation, disabled when unset"
    )

    # Observability Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    model_config = SettingsConfigDict(
        env_prefix="SESSION_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("secret")
    @classmethod
    def validate_secret(cls, v: str) -> str:
        """Validate that the secret is long enough to be a real secret."""
        v = v.strip()
        if len(v) < 10:
            raise ValueError("secret must be a unique and strong random string of at least 10 characters")
        return v

    @field_validator("cookie_same_site")
    @classmethod
    def validate_cookie_same_site(cls, v: str) -> str:
        """Validate that cookie_same_site is a known directive."""
        v = v.strip().lower()
        if v not in {"lax", "strict", "none"}:
            raise ValueError("cookie_same_site must be 'lax', 'strict' or 'none'")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate that log_level is a valid logging level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v = v.strip().upper()
        if v not in valid_levels:
            raise ValueError(f"log_level must be one of: {', '.join(sorted(valid_levels))}")
        return v

    @model_validator(mode="after")
    def validate_production_cookie(self) -> "Settings":
        """Session cookies must carry the Secure flag in production."""
        if self.environment == Environment.PRODUCTION and not self.cookie_secure:
            raise ValueError("cookie_secure must be enabled in the production environment")
        return self

    def to_engine_options(self) -> dict[str, Any]:
        """
        Build the options mapping accepted by SessionEngine.

        Returns:
            dict: Options with duration, automatic_touch and cookie sections.
        """
        return {
            "duration": self.duration_ms,
            "automatic_touch": self.automatic_touch,
            "cookie": {
                "name": self.cookie_name,
                "path": self.cookie_path,
                "domain": self.cookie_domain,
                "http_only": self.cookie_http_only,
                "secure": self.cookie_secure,
                "same_site": self.cookie_same_site,
                "secret": self.secret,
            },
        }


def create_settings_for_environment(environment: Optional[Environment] = None) -> Settings:
    """
    Factory function to create Settings for a specific environment.

    Args:
        environment: Optional environment override. If not provided, detected
            from the SESSION_ENVIRONMENT variable.

    Returns:
        Settings: Validated settings for the specified environment.

    Raises:
        ConfigurationError: If required settings are missing or invalid.
    """
    if environment is None:
        environment = _detect_environment()

    env_files = _get_env_files(environment)
    existing_env_files = [env_file for env_file in env_files if Path(env_file).exists()]

    try:
        class EnvironmentSettings(Settings):
            model_config = SettingsConfigDict(
                env_prefix="SESSION_",
                env_file=tuple(existing_env_files) or None,
                env_file_encoding="utf-8",
                case_sensitive=False,
                extra="ignore"
            )

        return EnvironmentSettings()
    except Exception as e:
        missing_fields = []
        invalid_fields = {}

        # Extract field-level errors from Pydantic ValidationError
        if hasattr(e, "errors"):
            for error in e.errors():
                field_name = ".".join(str(loc) for loc in error.get("loc", []))
                error_type = error.get("type", "")
                error_msg = error.get("msg", str(error))

                if error_type == "missing":
                    missing_fields.append(field_name)
                else:
                    invalid_fields[field_name or "settings"] = error_msg

        raise ConfigurationError(
            f"Failed to load configuration for environment '{environment.value}'",
            missing_fields=missing_fields,
            invalid_fields=invalid_fields
        ) from e


# Global settings cache
_settings_cache: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get the settings singleton.

    Settings are loaded once and cached for subsequent calls.

    Raises:
        ConfigurationError: If required settings are missing or invalid.
    """
    global _settings_cache

    if _settings_cache is None:
        _settings_cache = create_settings_for_environment()

    return _settings_cache


def clear_settings_cache() -> None:
    """
    Clear the settings cache.

    This is primarily useful for testing to allow reloading settings
    with different environment variables.
    """
    global _settings_cache
    _settings_cache = None

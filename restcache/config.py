import sys
from typing import Any, List, Literal, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from restcache.constants import (
    DEFAULT_CACHE_CLEANUP_INTERVAL_SECONDS,
    DEFAULT_CACHE_MAX_ENTRIES,
    DEFAULT_CACHE_TIMEOUT_SECONDS,
    DEFAULT_CACHE_TIMEZONE,
    DEFAULT_REST_PREFIX,
    DEFAULT_STORE_TIMEOUT_SECONDS,
)
from restcache.domain.models import CacheConfig


def _split_csv(v: Union[List[str], str]) -> List[str]:
    if isinstance(v, str):
        if v.strip() == "":
            return []
        return [item.strip() for item in v.split(",") if item.strip()]
    return v


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        env_prefix="",
        case_sensitive=False,
        populate_by_name=True,
    )

    app_name: str = "RestCache"
    app_version: str = "0.1.0"
    log_level: str = Field(default="INFO", validation_alias=AliasChoices("LOG_LEVEL"))
    log_file_path: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("LOG_FILE_PATH")
    )
    error_log_file_path: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("ERROR_LOG_FILE_PATH")
    )
    log_pretty_console: bool = Field(
        default=False, validation_alias=AliasChoices("LOG_PRETTY_CONSOLE")
    )
    host: str = Field(default="127.0.0.1", validation_alias=AliasChoices("HOST"))
    port: int = Field(default=8080, validation_alias=AliasChoices("PORT"))
    reload: bool = False

    redact_log_fields: Union[List[str], str] = Field(
        default_factory=lambda: ["authorization", "cookie", "redis_url"],
        validation_alias=AliasChoices("REDACT_LOG_FIELDS"),
    )

    # Response cache
    cache_disable: bool = Field(
        default=False, validation_alias=AliasChoices("REST_API_CACHE_DISABLE")
    )
    cache_default_timeout: int = Field(
        default=DEFAULT_CACHE_TIMEOUT_SECONDS,
        validation_alias=AliasChoices("REST_API_CACHE_DEFAULT_TIMEOUT"),
    )
    cache_store_backend: Literal["memory", "redis"] = Field(
        default="memory", validation_alias=AliasChoices("REST_API_CACHE_STORE")
    )
    cache_redis_url: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("REST_API_CACHE_REDIS_URL")
    )
    cache_max_entries: int = Field(
        default=DEFAULT_CACHE_MAX_ENTRIES,
        validation_alias=AliasChoices("REST_API_CACHE_MAX_ENTRIES"),
    )
    cache_cleanup_interval: int = Field(
        default=DEFAULT_CACHE_CLEANUP_INTERVAL_SECONDS,
        validation_alias=AliasChoices("REST_API_CACHE_CLEANUP_INTERVAL"),
    )
    cache_store_timeout_seconds: float = Field(
        default=DEFAULT_STORE_TIMEOUT_SECONDS,
        validation_alias=AliasChoices("REST_API_CACHE_STORE_TIMEOUT"),
    )
    cache_rest_prefix: str = Field(
        default=DEFAULT_REST_PREFIX, validation_alias=AliasChoices("REST_API_CACHE_PREFIX")
    )
    cache_methods: Union[List[str], str] = Field(
        default_factory=lambda: ["GET"],
        validation_alias=AliasChoices("REST_API_CACHE_METHODS"),
    )
    cache_show_key_header: bool = Field(
        default=True, validation_alias=AliasChoices("REST_API_CACHE_SHOW_KEY_HEADER")
    )
    cache_single_flight: bool = Field(
        default=False, validation_alias=AliasChoices("REST_API_CACHE_SINGLE_FLIGHT")
    )
    cache_timezone: str = Field(
        default=DEFAULT_CACHE_TIMEZONE,
        validation_alias=AliasChoices("REST_API_CACHE_TIMEZONE"),
    )
    cache_admin_enabled: bool = Field(
        default=True, validation_alias=AliasChoices("REST_API_CACHE_ADMIN_ENABLED")
    )

    @field_validator("redact_log_fields")
    @classmethod
    def parse_comma_separated(cls, v: Union[List[str], str]) -> List[str]:
        """Parse comma-separated string values into lists.

        Empty strings become empty lists; lists are passed through.
        """
        return _split_csv(v)

    @field_validator("cache_methods")
    @classmethod
    def parse_methods(cls, v: Union[List[str], str]) -> List[str]:
        return [method.upper() for method in _split_csv(v)]

    def __init__(self, **kwargs: Any) -> None:
        """Initialize settings and validate the cache configuration.

        Raises:
            SystemExit: If the cache settings are inconsistent
        """
        super().__init__(**kwargs)
        self._validate_cache_settings()

    def _validate_cache_settings(self) -> None:
        errors = []

        if self.cache_default_timeout < 0:
            errors.append("REST_API_CACHE_DEFAULT_TIMEOUT must be zero or positive.")

        if self.cache_max_entries <= 0:
            errors.append("REST_API_CACHE_MAX_ENTRIES must be positive.")

        if self.cache_store_timeout_seconds <= 0:
            errors.append("REST_API_CACHE_STORE_TIMEOUT must be positive.")

        if self.cache_store_backend == "redis" and not (
            self.cache_redis_url and self.cache_redis_url.strip()
        ):
            errors.append(
                "REST_API_CACHE_REDIS_URL is required when REST_API_CACHE_STORE=redis."
            )

        if not self.cache_rest_prefix.startswith("/"):
            errors.append("REST_API_CACHE_PREFIX must start with '/'.")

        try:
            ZoneInfo(self.cache_timezone)
        except (ZoneInfoNotFoundError, ValueError):
            errors.append(f"REST_API_CACHE_TIMEZONE '{self.cache_timezone}' is unknown.")

        if errors:
            error_message = "\n".join(errors)
            import logging

            logging.error(f"Configuration Error:\n{error_message}\n")
            sys.exit(1)

    def cache_config(self) -> CacheConfig:
        """Snapshot of the values the cache core reads on every request cycle."""
        return CacheConfig(
            disabled=self.cache_disable,
            default_timeout_seconds=self.cache_default_timeout,
        )

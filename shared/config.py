"""
Shared configuration management for the TopTex proxy.
"""

from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_UPSTREAM_BASE_URL = "https://api.toptex.io"


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Environment
    env: str = Field(default="local", validation_alias=AliasChoices("ACCESS_ENV", "env"))
    log_level: str = Field(default="info", validation_alias=AliasChoices("ACCESS_LOG_LEVEL", "log_level"))
    cors_origins: str = Field(default="*", validation_alias=AliasChoices("ACCESS_CORS_ORIGINS", "cors_origins"))

    # Observability
    enable_tracing: bool = Field(default=False, validation_alias=AliasChoices("ACCESS_ENABLE_TRACING", "enable_tracing"))
    otel_exporter: str = Field(
        default="http://localhost:4317",
        validation_alias=AliasChoices("ACCESS_OTEL_EXPORTER", "otel_exporter"),
    )
    enable_console_tracing: bool = Field(
        default=False,
        validation_alias=AliasChoices("ACCESS_ENABLE_CONSOLE_TRACING", "enable_console_tracing"),
    )


class ProxyConfig(BaseConfig):
    """Settings for the upstream TopTex API and the HTTP listener.

    ``api_key`` and ``auth_body`` may be unset at startup; the token manager
    reports them on the first call that needs them.
    """

    host: str = Field(default="0.0.0.0", validation_alias=AliasChoices("HOST", "host"))
    port: int = Field(default=3000, validation_alias=AliasChoices("PORT", "port"))

    upstream_base_url: str = Field(
        default=DEFAULT_UPSTREAM_BASE_URL,
        validation_alias=AliasChoices("TOPTEX_BASE_URL", "upstream_base_url"),
    )
    api_key: Optional[str] = Field(default=None, validation_alias=AliasChoices("TOPTEX_API_KEY", "api_key"))
    auth_body: Optional[str] = Field(default=None, validation_alias=AliasChoices("TOPTEX_AUTH_BODY", "auth_body"))
    upstream_timeout: float = Field(
        default=30.0,
        validation_alias=AliasChoices("TOPTEX_TIMEOUT_SECONDS", "upstream_timeout"),
    )

    @property
    def base_url(self) -> str:
        """Upstream base URL without a trailing slash."""
        return self.upstream_base_url.rstrip("/")


def get_config(**overrides) -> ProxyConfig:
    """Get configuration for the proxy service."""
    return ProxyConfig(**overrides)

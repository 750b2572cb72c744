"""
Configuration management using Pydantic Settings.

Loads client configuration from environment variables with validation.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RestClientSettings(BaseSettings):
    """Settings used to build a client together with its own transport.

    ``OPENBOX_REST_DEFAULT_HEADERS`` takes a JSON object, e.g.
    ``{"X-Api-Key": "secret"}``.
    """

    model_config = SettingsConfigDict(
        env_prefix="OPENBOX_REST_",
        case_sensitive=False,
    )

    base_uri: str | None = Field(default=None, description="Base URI for all endpoints")
    timeout_seconds: float = Field(default=30.0, gt=0, description="Transport timeout")
    follow_redirects: bool = Field(default=False, description="Let the transport follow redirects")
    verify_ssl: bool = Field(default=True, description="Verify TLS certificates")
    default_headers: dict[str, str] = Field(
        default_factory=dict,
        description="Headers sent with every request, on top of the built-in Accept header",
    )


@lru_cache
def get_settings() -> RestClientSettings:
    """
    Get cached client settings.

    Settings are loaded once and cached for the lifetime of the process.
    Uses environment variables with the OPENBOX_REST_ prefix.

    Returns:
        RestClientSettings instance with all configuration loaded.
    """
    return RestClientSettings()


def reload_settings() -> RestClientSettings:
    """
    Force reload settings (clears cache).

    Returns:
        Fresh RestClientSettings instance.
    """
    get_settings.cache_clear()
    return get_settings()

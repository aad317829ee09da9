"""Application-wide configuration loading and validation."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Centralized environment configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    environment: Literal["local", "dev", "prod"] = Field(default="local")
    log_level: str = Field(default="INFO")

    # Asterisk ARI connectivity
    asterisk_ari_url: str = Field(
        default="http://asterisk:8088/ari",
        description="Base URL for Asterisk ARI, e.g. http://localhost:8088/ari",
    )
    asterisk_ari_username: str | None = Field(default=None)
    asterisk_ari_password: str | None = Field(default=None)
    asterisk_stasis_app: str = Field(
        default="ariproxy",
        description="ARI stasis application name used by the dialplan.",
    )

    # Transport tuning
    ari_request_timeout: float = Field(default=10.0, gt=0.0, description="HTTP timeout per ARI command (seconds).")
    ari_reconnect_delay: float = Field(
        default=2.0,
        ge=0.0,
        description="Delay before reconnecting the ARI events websocket (seconds).",
    )
    ari_ping_interval: float = Field(default=20.0, gt=0.0, description="Websocket keepalive ping interval (seconds).")

    # Stasis controller
    ari_greeting_media: str = Field(
        default="sound:hello-world",
        description="Media URI played to every channel entering the Stasis app.",
    )

    @field_validator("asterisk_ari_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def ari_server_url(self) -> str:
        """Server root without the ``/ari`` suffix; commands carry their own ``/ari/...`` path."""

        return self.asterisk_ari_url.removesuffix("/ari")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance."""

    return Settings()

"""Gateway configuration, read once from ``FRAPPE_*`` environment variables.

Created: 2026-02-14
"""

from __future__ import annotations

import logging
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class Settings(BaseSettings):
    """Connection and credential settings for the upstream Frappe site.

    Token auth needs ``api_key`` + ``api_secret``; password auth needs
    ``username`` + ``password``. Either pair (or both) may be configured.
    """

    model_config = SettingsConfigDict(
        env_prefix="FRAPPE_",
        env_file=".env",
        extra="ignore",
    )

    url: str = Field(default="http://localhost:8000", description="Frappe site base URL")
    api_key: str | None = Field(default=None, description="API key (token auth)")
    api_secret: str | None = Field(default=None, description="API secret (token auth)")
    username: str | None = Field(default=None, description="Login user (password auth)")
    password: str | None = Field(default=None, description="Login password (password auth)")
    team_name: str = Field(default="", description="Sent as X-Press-Team on every request")
    timeout: float = Field(default=30.0, description="HTTP timeout in seconds")
    meta_method: str = Field(
        default="frappe.get_meta", description="Whitelisted method returning DocType metadata"
    )
    log_level: str = Field(default="INFO", description="Log level for the frappe_gateway logger")

    @field_validator("url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, v: str) -> str:
        if v.upper() not in _VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {v}. Must be one of {sorted(_VALID_LOG_LEVELS)}")
        return v.upper()

    @property
    def token_configured(self) -> bool:
        return bool(self.api_key and self.api_secret)

    @property
    def password_configured(self) -> bool:
        return bool(self.username and self.password)

    def describe(self) -> str:
        """One-line summary safe for logs (no secrets)."""
        key = f"{self.api_key[:4]}..." if self.api_key else "not set"
        return (
            f"url={self.url} api_key={key} "
            f"api_secret={'***' if self.api_secret else 'not set'} "
            f"username={'yes' if self.username else 'no'} "
            f"password={'yes' if self.password else 'no'}"
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from the environment (cached for the process lifetime)."""
    settings = Settings()
    logger.debug("Loaded Frappe settings: %s", settings.describe())
    return settings


def configure_logging(settings: Settings | None = None) -> None:
    """Apply the configured level to the package logger."""
    settings = settings or get_settings()
    logging.getLogger("frappe_gateway").setLevel(settings.log_level)

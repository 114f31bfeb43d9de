"""Centralised application configuration using pydantic-settings.

All environment variables are read through the Settings class.
Consumers call ``get_settings()`` to obtain a cached, validated instance.
Tests construct ``Settings(_env_file=None, ...)`` directly for isolation.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# src/authlink/config.py  ->  parent x3  ->  project root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


# ---------------------------------------------------------------------------
# Sub-models (one per configuration domain)
# ---------------------------------------------------------------------------
class StytchConfig(BaseModel):
    """Stytch identity backend credentials."""

    project_id: str = ""
    secret: SecretStr = SecretStr("")
    environment: str = "test"
    default_org_id: str | None = None

    @model_validator(mode="after")
    def environment_is_known(self) -> StytchConfig:
        if self.environment not in ("test", "live"):
            msg = "STYTCH__ENVIRONMENT must be 'test' or 'live'"
            raise ValueError(msg)
        return self


class AppConfig(BaseModel):
    """Application runtime configuration."""

    base_url: str = "http://localhost:8080"
    port: int = 8080
    storage_secret: SecretStr = SecretStr("dev-secret-change-me")


class RecoveryConfig(BaseModel):
    """Policy constants for the recovery and confirmation flows.

    ``link_validity_minutes`` is enforced by the identity backend; it is
    only surfaced here so the pages can tell users how long links last.
    """

    link_validity_minutes: int = Field(default=60, gt=0)
    resend_cooldown_seconds: int = Field(default=60, gt=0)
    signout_delay_seconds: float = Field(default=3.0, ge=0)
    notice_seconds: float = Field(default=5.0, ge=0)
    session_duration_minutes: int = Field(default=10, gt=0)

    @property
    def link_validity_text(self) -> str:
        """Human wording for the link validity window."""
        minutes = self.link_validity_minutes
        if minutes % 60 == 0:
            hours = minutes // 60
            return "1 hour" if hours == 1 else f"{hours} hours"
        return f"{minutes} minutes"


class DevConfig(BaseModel):
    """Development and testing toggles."""

    auth_mock: bool = False
    reload: bool = True


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------
class Settings(BaseSettings):
    """Application settings with automatic .env loading and type validation.

    Environment variables use double-underscore delimiter for nesting:
    ``STYTCH__PROJECT_ID``, ``RECOVERY__RESEND_COOLDOWN_SECONDS``, etc.
    """

    model_config = SettingsConfigDict(
        env_file=_PROJECT_ROOT / ".env",
        env_nested_delimiter="__",
        extra="ignore",
    )

    stytch: StytchConfig = StytchConfig()
    app: AppConfig = AppConfig()
    recovery: RecoveryConfig = RecoveryConfig()
    dev: DevConfig = DevConfig()

    @property
    def confirmation_callback_url(self) -> str:
        """Where confirmation emails send the user back to."""
        return f"{self.app.base_url}/auth/callback"

    @property
    def reset_password_url(self) -> str:
        """Where password reset emails send the user back to."""
        return f"{self.app.base_url}/auth/reset-password"


# ---------------------------------------------------------------------------
# Singleton access
# ---------------------------------------------------------------------------
@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance.

    Call ``get_settings.cache_clear()`` in tests to reset.
    """
    settings = Settings()

    env_file = settings.model_config.get("env_file")
    if env_file is not None and Path(str(env_file)).is_file():
        logger.info("Settings loaded .env from: %s", env_file)
    else:
        logger.info("Settings: no .env file found, using env vars and defaults")

    return settings

"""
Application configuration models and helpers.

Centralizes settings management so the OAuth flow, the credential store and
the message relay share one immutable configuration surface built at start-up.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

import os

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


class _Settings(BaseSettings):
    model_config = SettingsConfigDict(frozen=True, extra="ignore", populate_by_name=True)


class SlackSettings(_Settings):
    """Configuration required for interacting with the Slack APIs."""

    client_id: str = Field(..., validation_alias="SLACK_CLIENT_ID")
    client_secret: str = Field(..., validation_alias="SLACK_CLIENT_SECRET")
    redirect_uri: AnyHttpUrl = Field(..., validation_alias="SLACK_REDIRECT_URI")
    bot_token: str = Field(
        "",
        validation_alias="SLACK_BOT_TOKEN",
        description="Service-level token used when a request carries no user session.",
    )
    scopes: str = Field(
        "chat:write,chat:write.public,channels:history,groups:history",
        validation_alias="SLACK_SCOPES",
    )
    user_scopes: str = Field("chat:write", validation_alias="SLACK_USER_SCOPES")
    authorize_url: str = Field(
        "https://slack.com/oauth/v2/authorize", validation_alias="SLACK_AUTHORIZE_URL"
    )
    api_base_url: str = Field(
        "https://slack.com/api", validation_alias="SLACK_API_BASE_URL"
    )
    http_timeout_seconds: float = Field(10.0, validation_alias="SLACK_HTTP_TIMEOUT")

    @field_validator("scopes", "user_scopes")
    @classmethod
    def _normalize_scopes(cls, value: str) -> str:
        """Accept whitespace around comma-separated scopes."""
        return ",".join(scope.strip() for scope in value.split(",") if scope.strip())


class OAuthSettings(_Settings):
    """OAuth flow configuration."""

    state_ttl_seconds: int = Field(300, validation_alias="OAUTH_STATE_TTL")
    state_cookie_name: str = Field("slack_auth_state", validation_alias="OAUTH_STATE_COOKIE")
    state_cookie_path: str = Field(
        "/auth/slack/callback", validation_alias="OAUTH_STATE_COOKIE_PATH"
    )


class SessionSettings(_Settings):
    """Cookie side channel carrying the session token and user identity."""

    token_cookie_name: str = Field(
        "slack_access_token", validation_alias="SESSION_TOKEN_COOKIE"
    )
    user_cookie_name: str = Field("slack_user_id", validation_alias="SESSION_USER_COOKIE")
    ttl_seconds: int = Field(60 * 60 * 24 * 30, validation_alias="SESSION_TTL")
    cookie_domain: Optional[str] = Field(None, validation_alias="COOKIE_DOMAIN")
    query_param: Optional[str] = Field(
        None,
        validation_alias="SESSION_QUERY_PARAM",
        description="Optional query parameter that may carry the session token.",
    )


class StorageSettings(_Settings):
    """Credential persistence configuration."""

    credential_db_path: str = Field(
        "data/credentials.db", validation_alias="CREDENTIAL_DB_PATH"
    )
    credential_ttl_seconds: int = Field(
        60 * 60 * 24 * 30, validation_alias="CREDENTIAL_TTL"
    )


class SecuritySettings(_Settings):
    """Security-related configuration."""

    token_encryption_secret: Optional[str] = Field(
        None,
        validation_alias="TOKEN_ENCRYPTION_SECRET",
        description=(
            "Secret used to derive the symmetric key for encrypting stored tokens."
        ),
    )


class AppSettings(_Settings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    frontend_base_url: str = Field(
        "http://localhost:5173",
        validation_alias="FRONTEND_BASE_URL",
        description="Front-end origin used for CORS and post-auth redirects.",
    )
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)
    session: SessionSettings = Field(default_factory=SessionSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    slack: SlackSettings = Field(default_factory=SlackSettings)

    @field_validator("frontend_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "OAuthSettings",
    "SecuritySettings",
    "SessionSettings",
    "SlackSettings",
    "StorageSettings",
    "get_settings",
]

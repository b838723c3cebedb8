"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_authorization_service,
    get_credential_resolver,
    get_credential_store,
    get_message_gateway,
    get_session_carrier,
    get_session_introspector,
    get_slack_oauth_client,
    get_slack_web_client,
    get_sqlite_store,
    get_state_carrier,
    get_state_guard,
    get_token_cipher_service,
    get_user_carrier,
)
from .config import get_app_settings, get_frontend_url

__all__ = [
    "get_app_settings",
    "get_authorization_service",
    "get_credential_resolver",
    "get_credential_store",
    "get_frontend_url",
    "get_message_gateway",
    "get_session_carrier",
    "get_session_introspector",
    "get_slack_oauth_client",
    "get_slack_web_client",
    "get_sqlite_store",
    "get_state_carrier",
    "get_state_guard",
    "get_token_cipher_service",
    "get_user_carrier",
]

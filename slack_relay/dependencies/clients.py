"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

from datetime import timedelta
from functools import lru_cache

from slack_relay.clients import SlackOAuthClient, SlackWebClient, SQLiteStore
from slack_relay.core.config import get_settings
from slack_relay.services import (
    AuthorizationService,
    CredentialResolver,
    CredentialStore,
    MessageGateway,
    SessionIntrospector,
    StateNonceGuard,
    TokenCipherService,
)
from slack_relay.utils.carrier import (
    CookieCarrier,
    SignedCookieCarrier,
    build_session_carrier,
    build_state_carrier,
    build_user_carrier,
)


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_sqlite_store() -> SQLiteStore:
    """Provide the SQLite record store backing credentials."""
    return SQLiteStore(_settings().storage.credential_db_path)


@lru_cache()
def get_token_cipher_service() -> TokenCipherService:
    """Provide symmetric encryption helper for token storage."""
    return TokenCipherService.from_settings(_settings())


@lru_cache()
def get_credential_store() -> CredentialStore:
    settings = _settings()
    return CredentialStore(
        store=get_sqlite_store(),
        token_cipher=get_token_cipher_service(),
        ttl=timedelta(seconds=settings.storage.credential_ttl_seconds),
    )


@lru_cache()
def get_state_guard() -> StateNonceGuard:
    """Provide a nonce guard signed with the Slack client secret."""
    settings = _settings()
    return StateNonceGuard(
        secret_key=settings.slack.client_secret,
        ttl=timedelta(seconds=settings.oauth.state_ttl_seconds),
    )


@lru_cache()
def get_slack_oauth_client() -> SlackOAuthClient:
    return SlackOAuthClient(_settings().slack)


@lru_cache()
def get_slack_web_client() -> SlackWebClient:
    return SlackWebClient(_settings().slack)


@lru_cache()
def get_session_carrier() -> CookieCarrier:
    return build_session_carrier(_settings())


@lru_cache()
def get_user_carrier() -> SignedCookieCarrier:
    return build_user_carrier(_settings())


@lru_cache()
def get_state_carrier() -> CookieCarrier:
    return build_state_carrier(_settings())


def get_authorization_service() -> AuthorizationService:
    return AuthorizationService(
        oauth_client=get_slack_oauth_client(),
        state_guard=get_state_guard(),
        credential_store=get_credential_store(),
    )


def get_credential_resolver() -> CredentialResolver:
    return CredentialResolver(
        session_carrier=get_session_carrier(),
        user_carrier=get_user_carrier(),
        credential_store=get_credential_store(),
        fallback_token=_settings().slack.bot_token,
    )


def get_session_introspector() -> SessionIntrospector:
    return SessionIntrospector(get_slack_web_client())


def get_message_gateway() -> MessageGateway:
    return MessageGateway(get_slack_web_client())


__all__ = [
    "get_authorization_service",
    "get_credential_resolver",
    "get_credential_store",
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

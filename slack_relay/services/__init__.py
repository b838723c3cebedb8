"""Service layer exports."""

from .authorization import AuthorizationService
from .credential_resolver import CredentialResolver
from .credential_store import CredentialStore
from .message_gateway import MessageGateway
from .session_introspection import AuthState, AuthStatus, SessionIntrospector, SessionUser
from .state_guard import StateNonceGuard
from .token_cipher import TokenCipherService

__all__ = [
    "AuthState",
    "AuthStatus",
    "AuthorizationService",
    "CredentialResolver",
    "CredentialStore",
    "MessageGateway",
    "SessionIntrospector",
    "SessionUser",
    "StateNonceGuard",
    "TokenCipherService",
]

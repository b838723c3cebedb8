"""
Orchestrates the Slack OAuth round trip: nonce, code exchange, persistence.
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from slack_relay.clients.slack_oauth import SlackOAuthClient
from slack_relay.core.errors import (
    AuthorizationDeniedError,
    MissingCodeError,
    StateMismatchError,
)
from slack_relay.models.credential import CredentialRecord
from slack_relay.services.credential_store import CredentialStore
from slack_relay.services.state_guard import StateNonceGuard

logger = logging.getLogger(__name__)


class AuthorizationService:
    """Start and complete the redirect-based authorization flow."""

    def __init__(
        self,
        *,
        oauth_client: SlackOAuthClient,
        state_guard: StateNonceGuard,
        credential_store: CredentialStore,
    ) -> None:
        self._oauth = oauth_client
        self._guard = state_guard
        self._store = credential_store

    def start(self) -> Tuple[str, str]:
        """Return the consent URL and the nonce the caller must carry back."""
        nonce = self._guard.issue()
        return self._oauth.build_authorization_url(state=nonce), nonce

    async def complete(
        self,
        *,
        code: Optional[str],
        issued_nonce: Optional[str],
        presented_nonce: Optional[str],
        error: Optional[str] = None,
    ) -> CredentialRecord:
        """Verify the callback, exchange the code and persist the token.

        Raises an ``AuthorizationError`` subclass on any failure; nothing is
        stored and the remote token endpoint is not called unless the nonce
        verifies and a code is present.
        """
        if not self._guard.verify(issued_nonce, presented_nonce):
            logger.warning(
                "OAuth state mismatch (stored=%s, received=%s)",
                bool(issued_nonce),
                bool(presented_nonce),
            )
            raise StateMismatchError("OAuth state did not match the issued nonce.")

        if error:
            logger.info("Slack authorization was declined: %s", error)
            raise AuthorizationDeniedError(error)
        if not code:
            raise MissingCodeError("Callback did not include an authorization code.")

        result = await self._oauth.exchange_authorization_code(code)
        return self._store.put(result.user_id, result.team_id, result.access_token)

    def logout(self, user_id: Optional[str]) -> bool:
        if not user_id:
            return False
        return self._store.delete(user_id)


__all__ = ["AuthorizationService"]

"""
Per-request choice of which Slack token to act with.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Request

from slack_relay.services.credential_store import CredentialStore
from slack_relay.utils.carrier import CookieCarrier

logger = logging.getLogger(__name__)


class CredentialResolver:
    """Resolve the user's session token, falling back to the bot token.

    Order: the session token carried by the request, then the stored token of
    the user named by the signed user cookie, then the configured fallback. The
    fallback may be empty when unconfigured; Slack rejects it downstream.
    """

    def __init__(
        self,
        *,
        session_carrier: CookieCarrier,
        user_carrier: CookieCarrier,
        credential_store: CredentialStore,
        fallback_token: str,
    ) -> None:
        self._session_carrier = session_carrier
        self._user_carrier = user_carrier
        self._store = credential_store
        self._fallback_token = fallback_token or ""

    def resolve_user_token(self, request: Request) -> Optional[str]:
        """Return a user-bound token, or None when the request carries no session."""
        token = self._session_carrier.read(request)
        if token:
            return token

        user_id = self._user_carrier.read(request)
        if not user_id:
            return None
        record = self._store.get(user_id)
        if record is None:
            logger.debug("No stored credential for user %s", user_id)
            return None
        return record.access_token

    def resolve(self, request: Request) -> str:
        token = self.resolve_user_token(request)
        if token:
            return token
        return self._fallback_token


__all__ = ["CredentialResolver"]

"""
Validate a session token against Slack and describe the signed-in user.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, replace
from typing import Optional

from slack_relay.clients.slack_web import SlackApiError, SlackWebClient
from slack_relay.core.errors import TransportError

logger = logging.getLogger(__name__)


class AuthState(str, enum.Enum):
    UNAUTHENTICATED = "unauthenticated"
    VERIFYING = "verifying"
    AUTHENTICATED = "authenticated"
    INVALID = "invalid"


@dataclass(frozen=True, slots=True)
class SessionUser:
    id: str
    name: Optional[str] = None
    team: Optional[str] = None
    image: Optional[str] = None


@dataclass(frozen=True, slots=True)
class AuthStatus:
    state: AuthState
    user: Optional[SessionUser] = None

    @property
    def authenticated(self) -> bool:
        return self.state is AuthState.AUTHENTICATED

    @property
    def should_clear_session(self) -> bool:
        """An invalid token must be dropped from the client side channel."""
        return self.state is AuthState.INVALID


class SessionIntrospector:
    """Map a token to an ``AuthStatus`` via ``auth.test`` and ``users.info``.

    A failed profile lookup keeps the session authenticated with the identity
    ``auth.test`` returned; only a failed ``auth.test`` invalidates it.
    """

    def __init__(self, slack_client: SlackWebClient) -> None:
        self._slack = slack_client

    async def check(self, token: Optional[str]) -> AuthStatus:
        if not token:
            return AuthStatus(state=AuthState.UNAUTHENTICATED)

        status = AuthStatus(state=AuthState.VERIFYING)
        try:
            identity = await self._slack.auth_test(token)
        except (SlackApiError, TransportError) as exc:
            logger.info("Session token failed verification: %s", exc)
            return replace(status, state=AuthState.INVALID)

        user_id = identity.get("user_id")
        if not user_id:
            logger.warning("auth.test succeeded without a user_id")
            return replace(status, state=AuthState.INVALID)

        user = SessionUser(id=user_id, name=identity.get("user"), team=identity.get("team"))
        user = await self._with_profile(token, user)
        return replace(status, state=AuthState.AUTHENTICATED, user=user)

    async def _with_profile(self, token: str, user: SessionUser) -> SessionUser:
        try:
            payload = await self._slack.users_info(token, user=user.id)
        except (SlackApiError, TransportError) as exc:
            logger.info("Profile lookup for %s failed, using identity only: %s", user.id, exc)
            return user

        info = payload.get("user") or {}
        profile = info.get("profile") or {}
        name = (
            profile.get("display_name")
            or profile.get("real_name")
            or info.get("real_name")
            or user.name
        )
        image = profile.get("image_192") or profile.get("image_72")
        return replace(user, name=name, image=image)


__all__ = ["AuthState", "AuthStatus", "SessionIntrospector", "SessionUser"]

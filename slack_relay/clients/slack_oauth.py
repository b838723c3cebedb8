"""
Slack OAuth v2 utilities.

Builds the consent URL and trades authorization codes for access tokens.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx

from fastapi import status

from slack_relay.core.config import SlackSettings
from slack_relay.core.errors import (
    ExchangeFailedError,
    InvalidResponseError,
    RemoteRejectedError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ExchangeResult:
    """Normalized outcome of a successful code exchange."""

    access_token: str
    user_id: str
    team_id: str


class SlackOAuthClient:
    """Build Slack authorization URLs and exchange authorization codes."""

    TOKEN_PATH = "oauth.v2.access"

    def __init__(
        self,
        slack_settings: SlackSettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._slack = slack_settings
        self._transport = transport

    @property
    def token_url(self) -> str:
        return f"{self._slack.api_base_url.rstrip('/')}/{self.TOKEN_PATH}"

    def build_authorization_url(self, state: str) -> str:
        """Construct the Slack consent URL."""
        params = {
            "client_id": self._slack.client_id,
            "scope": self._slack.scopes,
            "user_scope": self._slack.user_scopes,
            "redirect_uri": str(self._slack.redirect_uri),
            "state": state,
        }
        return f"{self._slack.authorize_url}?{urlencode(params)}"

    async def exchange_authorization_code(self, code: str) -> ExchangeResult:
        """
        Exchange an authorization code for an access token.

        Raises ``ExchangeFailedError`` on transport problems,
        ``RemoteRejectedError`` when Slack answers ``ok: false`` and
        ``InvalidResponseError`` when a successful answer lacks the token,
        user or team.
        """
        payload = {
            "client_id": self._slack.client_id,
            "client_secret": self._slack.client_secret,
            "code": code,
            "redirect_uri": str(self._slack.redirect_uri),
        }

        try:
            async with httpx.AsyncClient(
                timeout=self._slack.http_timeout_seconds, transport=self._transport
            ) as client:
                # ``data=`` sends application/x-www-form-urlencoded as Slack requires.
                response = await client.post(self.token_url, data=payload)
        except httpx.HTTPError as exc:
            logger.error("Slack token exchange transport failure: %s", exc)
            raise ExchangeFailedError(str(exc)) from exc

        if response.status_code != status.HTTP_200_OK:
            logger.error("Slack token endpoint returned HTTP %s", response.status_code)
            raise ExchangeFailedError(f"HTTP {response.status_code}")

        try:
            token_payload: Dict[str, Any] = response.json()
        except ValueError as exc:
            raise InvalidResponseError("Token endpoint returned a non-JSON body.") from exc

        if not isinstance(token_payload, dict):
            raise InvalidResponseError("Token endpoint returned an unexpected body.")

        if not token_payload.get("ok"):
            remote_error = token_payload.get("error") or "unknown_error"
            logger.warning("Slack rejected the token exchange: %s", remote_error)
            raise RemoteRejectedError(remote_error)

        return _normalize_exchange(token_payload)


def _normalize_exchange(token_payload: Dict[str, Any]) -> ExchangeResult:
    authed_user = token_payload.get("authed_user") or {}
    team = token_payload.get("team") or {}

    # A user-scoped token acts on behalf of the person who consented.
    access_token = authed_user.get("access_token") or token_payload.get("access_token")
    user_id = authed_user.get("id")
    team_id = team.get("id")

    if not access_token or not user_id or not team_id:
        raise InvalidResponseError("Incomplete token payload returned from Slack.")

    return ExchangeResult(access_token=access_token, user_id=user_id, team_id=team_id)


__all__ = ["ExchangeResult", "SlackOAuthClient"]

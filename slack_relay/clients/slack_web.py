"""Async wrapper over the subset of the Slack Web API used by the relay."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from slack_relay.core.config import SlackSettings
from slack_relay.core.errors import TransportError

logger = logging.getLogger(__name__)


class SlackApiError(Exception):
    """Slack answered a call with ``ok: false``."""

    def __init__(self, method: str, error: str, payload: Dict[str, Any]) -> None:
        super().__init__(f"{method} failed: {error}")
        self.method = method
        self.error = error
        self.payload = payload


class SlackWebClient:
    """Call Slack Web API methods with a caller-supplied bearer token.

    One client serves every request; the token is per call so user tokens and
    the fallback bot token flow through the same code path.
    """

    def __init__(
        self,
        settings: SlackSettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = settings.api_base_url.rstrip("/")
        self._timeout = settings.http_timeout_seconds
        self._transport = transport

    async def auth_test(self, token: str) -> Dict[str, Any]:
        return await self._call("auth.test", token)

    async def users_info(self, token: str, *, user: str) -> Dict[str, Any]:
        return await self._call("users.info", token, params={"user": user})

    async def chat_post_message(self, token: str, *, channel: str, text: str) -> Dict[str, Any]:
        return await self._call(
            "chat.postMessage", token, json={"channel": channel, "text": text}
        )

    async def chat_schedule_message(
        self, token: str, *, channel: str, text: str, post_at: int
    ) -> Dict[str, Any]:
        return await self._call(
            "chat.scheduleMessage",
            token,
            json={"channel": channel, "text": text, "post_at": post_at},
        )

    async def conversations_history(
        self,
        token: str,
        *,
        channel: str,
        oldest: Optional[str] = None,
        latest: Optional[str] = None,
        inclusive: bool = True,
        limit: int = 100,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "channel": channel,
            "inclusive": "true" if inclusive else "false",
            "limit": limit,
        }
        if oldest is not None:
            params["oldest"] = oldest
        if latest is not None:
            params["latest"] = latest
        return await self._call("conversations.history", token, params=params)

    async def chat_update(self, token: str, *, channel: str, ts: str, text: str) -> Dict[str, Any]:
        return await self._call(
            "chat.update", token, json={"channel": channel, "ts": ts, "text": text}
        )

    async def chat_delete(self, token: str, *, channel: str, ts: str) -> Dict[str, Any]:
        return await self._call("chat.delete", token, json={"channel": channel, "ts": ts})

    async def _call(
        self,
        method: str,
        token: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        url = f"{self._base_url}/{method}"
        headers = {"Authorization": f"Bearer {token}"}

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                if json is not None:
                    response = await client.post(url, json=json, headers=headers)
                else:
                    response = await client.get(url, params=params, headers=headers)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as exc:
            logger.error("Slack %s transport failure: %s", method, exc)
            raise TransportError(
                "Slack API request failed", details=f"{method}: {exc}"
            ) from exc
        except ValueError as exc:
            logger.error("Slack %s returned a non-JSON body", method)
            raise TransportError(
                "Slack API returned an unreadable response", details=method
            ) from exc

        if not isinstance(payload, dict):
            logger.error("Slack %s returned a non-object body", method)
            raise TransportError(
                "Slack API returned an unreadable response", details=method
            )
        if not payload.get("ok"):
            error = payload.get("error") or "unknown_error"
            logger.warning("Slack %s returned error %s", method, error)
            raise SlackApiError(method, error, payload)
        return payload


__all__ = ["SlackApiError", "SlackWebClient"]

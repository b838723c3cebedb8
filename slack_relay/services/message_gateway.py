"""
Validate message operations and relay them to the Slack Web API.
"""

from __future__ import annotations

import logging
import math
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Union

from slack_relay.clients.slack_web import SlackApiError, SlackWebClient
from slack_relay.core.errors import (
    NotFoundError,
    PastScheduleError,
    RemoteApiError,
    ScheduleTooFarError,
    ValidationError,
)

logger = logging.getLogger(__name__)

MAX_SCHEDULE_AHEAD_SECONDS = 120 * 24 * 60 * 60

Timestamp = Union[int, float, str]


def human_time(ts: str) -> str:
    """Render a Slack ``ts`` as an ISO-8601 UTC instant with millisecond precision."""
    instant = datetime.fromtimestamp(float(ts), tz=timezone.utc)
    return instant.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def _parse_epoch(value: Timestamp, field: str) -> float:
    try:
        parsed = float(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{field} must be a Unix timestamp") from exc
    if not math.isfinite(parsed):
        raise ValidationError(f"{field} must be a Unix timestamp")
    return parsed


def _slack_ts(value: Optional[Timestamp], field: str) -> Optional[str]:
    if value is None or _is_blank(str(value)):
        return None
    text = str(value).strip()
    _parse_epoch(text, field)
    return text


class MessageGateway:
    """Send, schedule, read, edit and delete channel messages for a token."""

    def __init__(
        self,
        slack_client: SlackWebClient,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._slack = slack_client
        self._clock = clock

    async def send(
        self,
        token: str,
        *,
        channel: Optional[str],
        text: Optional[str],
        schedule_at: Optional[Timestamp] = None,
    ) -> Dict[str, Any]:
        if _is_blank(channel):
            raise ValidationError("Missing channel ID")
        if _is_blank(text):
            raise ValidationError("Message text cannot be empty")

        if schedule_at is not None and not _is_blank(str(schedule_at)):
            post_at = _parse_epoch(schedule_at, "postAt")
            now = int(self._clock())
            if post_at <= now:
                raise PastScheduleError()
            if post_at > now + MAX_SCHEDULE_AHEAD_SECONDS:
                raise ScheduleTooFarError()
            logger.info("Scheduling message in %s for %d", channel, int(post_at))
            return await self._relay(
                "Failed to schedule message",
                self._slack.chat_schedule_message(
                    token, channel=channel, text=text, post_at=int(post_at)
                ),
            )

        return await self._relay(
            "Failed to send message",
            self._slack.chat_post_message(token, channel=channel, text=text),
        )

    async def list(
        self,
        token: str,
        *,
        channel: Optional[str],
        at: Optional[Timestamp] = None,
        oldest: Optional[Timestamp] = None,
        latest: Optional[Timestamp] = None,
    ) -> List[Dict[str, Any]]:
        """Fetch messages at one instant or within an inclusive range."""
        if _is_blank(channel):
            raise ValidationError("Channel is required")

        at_ts = _slack_ts(at, "ts")
        oldest_ts = _slack_ts(oldest, "oldest")
        latest_ts = _slack_ts(latest, "latest")
        if at_ts is None and oldest_ts is None and latest_ts is None:
            raise ValidationError("At least one timestamp or time range is required")
        if at_ts is not None:
            oldest_ts = latest_ts = at_ts

        payload = await self._relay(
            "Failed to retrieve messages",
            self._slack.conversations_history(
                token, channel=channel, oldest=oldest_ts, latest=latest_ts
            ),
        )
        messages = payload.get("messages") or []
        if not messages:
            raise NotFoundError("No messages found")
        return [{**message, "humanTime": human_time(message["ts"])} for message in messages]

    async def edit(
        self,
        token: str,
        *,
        channel: Optional[str],
        ts: Optional[str],
        text: Optional[str],
    ) -> Dict[str, Any]:
        if _is_blank(channel) or _is_blank(ts) or _is_blank(text):
            raise ValidationError("All fields are required")
        return await self._relay(
            "Failed to edit message",
            self._slack.chat_update(token, channel=channel, ts=str(ts), text=text),
        )

    async def delete(
        self,
        token: str,
        *,
        channel: Optional[str],
        ts: Optional[str],
    ) -> Dict[str, Any]:
        if _is_blank(channel) or _is_blank(ts):
            raise ValidationError("Channel and timestamp are required")
        return await self._relay(
            "Failed to delete message",
            self._slack.chat_delete(token, channel=channel, ts=str(ts)),
        )

    @staticmethod
    async def _relay(fallback_message: str, call) -> Dict[str, Any]:
        try:
            return await call
        except SlackApiError as exc:
            remote_error = exc.error if exc.error != "unknown_error" else None
            raise RemoteApiError(
                remote_error or fallback_message, remote_error=remote_error
            ) from exc


__all__ = ["MAX_SCHEDULE_AHEAD_SECONDS", "MessageGateway", "human_time"]

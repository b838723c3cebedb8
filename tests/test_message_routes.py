try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import time

import httpx
import pytest

from slack_relay.clients.slack_web import SlackApiError
from slack_relay.core.errors import TransportError
from slack_relay.dependencies import (
    get_credential_resolver,
    get_message_gateway,
    get_session_carrier,
    get_user_carrier,
)
from slack_relay.main import app
from slack_relay.services import CredentialResolver, MessageGateway

pytestmark = pytest.mark.anyio("asyncio")


class FakeSlack:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str, dict]] = []
        self.failure: Exception | None = None
        self.messages = [{"ts": "1700000000.000100", "text": "hello"}]

    async def _record(self, method: str, token: str, **kwargs) -> dict:
        self.calls.append((method, token, kwargs))
        if self.failure:
            raise self.failure
        return {"ok": True, "channel": kwargs.get("channel"), "ts": "1700000001.000200"}

    async def chat_post_message(self, token, *, channel, text):
        return await self._record("chat.postMessage", token, channel=channel, text=text)

    async def chat_schedule_message(self, token, *, channel, text, post_at):
        return await self._record(
            "chat.scheduleMessage", token, channel=channel, text=text, post_at=post_at
        )

    async def conversations_history(self, token, *, channel, oldest=None, latest=None):
        await self._record(
            "conversations.history", token, channel=channel, oldest=oldest, latest=latest
        )
        return {"ok": True, "messages": self.messages}

    async def chat_update(self, token, *, channel, ts, text):
        return await self._record("chat.update", token, channel=channel, ts=ts, text=text)

    async def chat_delete(self, token, *, channel, ts):
        return await self._record("chat.delete", token, channel=channel, ts=ts)


@pytest.fixture()
def slack(credential_store):
    fake = FakeSlack()
    resolver = CredentialResolver(
        session_carrier=get_session_carrier(),
        user_carrier=get_user_carrier(),
        credential_store=credential_store,
        fallback_token="xoxb-fallback",
    )
    app.dependency_overrides.update(
        {
            get_credential_resolver: lambda: resolver,
            get_message_gateway: lambda: MessageGateway(fake),
        }
    )

    yield fake

    app.dependency_overrides.clear()


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app, raise_app_exceptions=False),
        base_url="http://testserver",
    )


async def test_send_uses_fallback_token_without_session(slack) -> None:
    async with _client() as client:
        response = await client.post("/api/messages", json={"channel": "C1", "text": "hi"})

    assert response.status_code == 200
    assert response.json()["ok"] is True
    assert slack.calls == [("chat.postMessage", "xoxb-fallback", {"channel": "C1", "text": "hi"})]


async def test_send_prefers_session_cookie(slack) -> None:
    async with _client() as client:
        client.cookies.set("slack_access_token", "xoxp-user")
        response = await client.post("/api/messages", json={"channel": "C1", "text": "hi"})

    assert response.status_code == 200
    assert slack.calls[0][1] == "xoxp-user"


async def test_empty_text_is_rejected_before_calling_slack(slack) -> None:
    async with _client() as client:
        response = await client.post("/api/messages", json={"channel": "C1", "text": ""})

    assert response.status_code == 400
    assert response.json() == {"error": "Message text cannot be empty"}
    assert slack.calls == []


async def test_past_schedule_is_rejected(slack) -> None:
    post_at = int(time.time()) - 10

    async with _client() as client:
        response = await client.post(
            "/api/messages", json={"channel": "C1", "text": "later", "postAt": post_at}
        )

    assert response.status_code == 400
    assert response.json() == {"error": "Scheduled time must be in the future"}
    assert slack.calls == []


async def test_future_schedule_calls_schedule_endpoint(slack) -> None:
    post_at = int(time.time()) + 3600

    async with _client() as client:
        response = await client.post(
            "/api/messages", json={"channel": "C1", "text": "later", "postAt": post_at}
        )

    assert response.status_code == 200
    method, _, kwargs = slack.calls[0]
    assert method == "chat.scheduleMessage"
    assert kwargs["post_at"] == post_at


async def test_list_annotates_messages_with_human_time(slack) -> None:
    async with _client() as client:
        response = await client.get(
            "/api/messages", params={"channel": "C1", "ts": "1700000000.000100"}
        )

    assert response.status_code == 200
    assert response.json() == [
        {
            "ts": "1700000000.000100",
            "text": "hello",
            "humanTime": "2023-11-14T22:13:20.000Z",
        }
    ]
    _, _, kwargs = slack.calls[0]
    assert kwargs["oldest"] == kwargs["latest"] == "1700000000.000100"


async def test_list_with_no_results_reports_not_found(slack) -> None:
    slack.messages = []

    async with _client() as client:
        response = await client.get(
            "/api/messages", params={"channel": "C1", "oldest": "1", "latest": "2"}
        )

    assert response.status_code == 400
    assert response.json() == {"error": "No messages found"}


async def test_edit_and_delete_relay_to_slack(slack) -> None:
    async with _client() as client:
        edited = await client.put(
            "/api/messages",
            json={"channel": "C1", "ts": "1700000001.000200", "text": "fixed"},
        )
        deleted = await client.request(
            "DELETE", "/api/messages", json={"channel": "C1", "ts": "1700000001.000200"}
        )

    assert edited.status_code == 200
    assert deleted.status_code == 200
    assert [call[0] for call in slack.calls] == ["chat.update", "chat.delete"]


async def test_delete_without_timestamp_is_rejected(slack) -> None:
    async with _client() as client:
        response = await client.request("DELETE", "/api/messages", json={"channel": "C1"})

    assert response.status_code == 400
    assert response.json() == {"error": "Channel and timestamp are required"}


async def test_remote_error_is_surfaced(slack) -> None:
    slack.failure = SlackApiError("chat.postMessage", "channel_not_found", {})

    async with _client() as client:
        response = await client.post("/api/messages", json={"channel": "C9", "text": "hi"})

    assert response.status_code == 400
    assert response.json() == {"error": "channel_not_found"}


async def test_revoked_token_maps_to_unauthorized(slack) -> None:
    slack.failure = SlackApiError("chat.postMessage", "invalid_auth", {})

    async with _client() as client:
        response = await client.post("/api/messages", json={"channel": "C1", "text": "hi"})

    assert response.status_code == 401
    assert response.json() == {"error": "invalid_auth"}


async def test_transport_failure_maps_to_server_error(slack) -> None:
    slack.failure = TransportError("Slack API request failed", details="timeout")

    async with _client() as client:
        response = await client.post("/api/messages", json={"channel": "C1", "text": "hi"})

    assert response.status_code == 500
    assert response.json() == {"error": "Slack API request failed", "details": "timeout"}


async def test_missing_body_is_a_bad_request(slack) -> None:
    async with _client() as client:
        response = await client.post("/api/messages")

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid request"


async def test_unexpected_exception_returns_generic_error(slack) -> None:
    slack.failure = RuntimeError("boom")

    async with _client() as client:
        response = await client.post("/api/messages", json={"channel": "C1", "text": "hi"})

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}


async def test_signed_user_cookie_selects_stored_token(slack, credential_store) -> None:
    credential_store.put("U1", "T1", "xoxp-stored")

    async with _client() as client:
        client.cookies.set("slack_user_id", get_user_carrier().sign("U1"))
        response = await client.post("/api/messages", json={"channel": "C1", "text": "hi"})

    assert response.status_code == 200
    assert slack.calls[0][1] == "xoxp-stored"


async def test_forged_user_cookie_falls_back_to_bot_token(slack, credential_store) -> None:
    credential_store.put("U1", "T1", "xoxp-stored")

    async with _client() as client:
        client.cookies.set("slack_user_id", "U1")
        response = await client.post("/api/messages", json={"channel": "C1", "text": "hi"})

    assert response.status_code == 200
    assert [call[1] for call in slack.calls] == ["xoxb-fallback"]

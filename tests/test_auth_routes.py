try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

from datetime import timedelta
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from slack_relay.clients.slack_oauth import ExchangeResult
from slack_relay.clients.slack_web import SlackApiError
from slack_relay.core.errors import RemoteRejectedError
from slack_relay.dependencies import (
    get_authorization_service,
    get_credential_resolver,
    get_frontend_url,
    get_session_carrier,
    get_session_introspector,
    get_user_carrier,
)
from slack_relay.main import app
from slack_relay.services import (
    AuthorizationService,
    CredentialResolver,
    SessionIntrospector,
    StateNonceGuard,
)

pytestmark = pytest.mark.anyio("asyncio")

FRONTEND = "https://frontend.example.com"


class DummyOAuthClient:
    def __init__(self) -> None:
        self.states: list[str] = []
        self.codes: list[str] = []
        self.error: Exception | None = None

    def build_authorization_url(self, state: str) -> str:
        self.states.append(state)
        return f"https://slack.example.com/oauth?state={state}"

    async def exchange_authorization_code(self, code: str) -> ExchangeResult:
        self.codes.append(code)
        if self.error:
            raise self.error
        return ExchangeResult(access_token="xoxp-user", user_id="U1", team_id="T1")


class DummySlack:
    def __init__(self) -> None:
        self.tokens: list[str] = []
        self.valid_tokens = {"xoxp-user"}

    async def auth_test(self, token: str) -> dict:
        self.tokens.append(token)
        if token not in self.valid_tokens:
            raise SlackApiError("auth.test", "invalid_auth", {})
        return {"ok": True, "user_id": "U1", "user": "ada", "team": "Acme"}

    async def users_info(self, token: str, *, user: str) -> dict:
        return {
            "ok": True,
            "user": {"profile": {"display_name": "Ada", "image_192": "https://img/ada"}},
        }


@pytest.fixture()
def auth_overrides(credential_store):
    oauth_client = DummyOAuthClient()
    slack = DummySlack()
    service = AuthorizationService(
        oauth_client=oauth_client,
        state_guard=StateNonceGuard(secret_key="secret", ttl=timedelta(minutes=5)),
        credential_store=credential_store,
    )
    resolver = CredentialResolver(
        session_carrier=get_session_carrier(),
        user_carrier=get_user_carrier(),
        credential_store=credential_store,
        fallback_token="xoxb-fallback",
    )

    app.dependency_overrides.update(
        {
            get_authorization_service: lambda: service,
            get_credential_resolver: lambda: resolver,
            get_session_introspector: lambda: SessionIntrospector(slack),
            get_frontend_url: lambda: FRONTEND,
        }
    )

    yield oauth_client, slack, credential_store

    app.dependency_overrides.clear()


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://testserver"
    )


def _cookie_headers(response: httpx.Response, name: str) -> list[str]:
    return [
        header
        for header in response.headers.get_list("set-cookie")
        if header.startswith(f"{name}=")
    ]


async def test_start_redirects_to_slack_and_sets_state_cookie(auth_overrides) -> None:
    oauth_client, _, _ = auth_overrides

    async with _client() as client:
        response = await client.get("/auth/slack")

    assert response.status_code == 302
    assert response.headers["location"].startswith("https://slack.example.com/oauth")
    state_cookie = _cookie_headers(response, "slack_auth_state")[0]
    assert oauth_client.states[-1] in state_cookie
    assert "HttpOnly" in state_cookie
    assert "Path=/auth/slack/callback" in state_cookie


async def test_full_flow_persists_token_and_sets_session(auth_overrides) -> None:
    oauth_client, _, store = auth_overrides

    async with _client() as client:
        await client.get("/auth/slack")
        state = oauth_client.states[-1]
        callback = await client.get(
            "/auth/slack/callback", params={"code": "code-1", "state": state}
        )

    assert callback.status_code == 302
    assert callback.headers["location"] == f"{FRONTEND}/?auth_success=1"
    assert oauth_client.codes == ["code-1"]
    assert store.get("U1").access_token == "xoxp-user"
    assert _cookie_headers(callback, "slack_access_token")
    signed_user = get_user_carrier().sign("U1")
    assert f"slack_user_id={signed_user}" in _cookie_headers(callback, "slack_user_id")[0]
    assert "Max-Age=0" in _cookie_headers(callback, "slack_auth_state")[0]


async def test_callback_without_stored_nonce_is_state_mismatch(auth_overrides) -> None:
    oauth_client, _, store = auth_overrides

    async with _client() as client:
        response = await client.get(
            "/auth/slack/callback", params={"code": "C", "state": "S"}
        )

    assert response.status_code == 302
    location = urlparse(response.headers["location"])
    assert parse_qs(location.query) == {"auth_error": ["1"], "reason": ["state_mismatch"]}
    assert oauth_client.codes == []
    assert store.get("U1") is None


async def test_nonce_cannot_be_replayed(auth_overrides) -> None:
    oauth_client, _, _ = auth_overrides

    async with _client() as client:
        await client.get("/auth/slack")
        state = oauth_client.states[-1]
        first = await client.get("/auth/slack/callback", params={"code": "c1", "state": state})
        second = await client.get("/auth/slack/callback", params={"code": "c2", "state": state})

    assert first.headers["location"].endswith("auth_success=1")
    assert "reason=state_mismatch" in second.headers["location"]
    assert oauth_client.codes == ["c1"]


async def test_remote_rejection_redirects_with_reason(auth_overrides) -> None:
    oauth_client, _, store = auth_overrides
    oauth_client.error = RemoteRejectedError("invalid_code")

    async with _client() as client:
        await client.get("/auth/slack")
        state = oauth_client.states[-1]
        response = await client.get(
            "/auth/slack/callback", params={"code": "bad", "state": state}
        )

    assert response.status_code == 302
    assert "auth_error=1&reason=remote_rejected" in response.headers["location"]
    assert store.get("U1") is None


async def test_declined_consent_redirects_with_reason(auth_overrides) -> None:
    oauth_client, _, _ = auth_overrides

    async with _client() as client:
        await client.get("/auth/slack")
        state = oauth_client.states[-1]
        response = await client.get(
            "/auth/slack/callback", params={"error": "access_denied", "state": state}
        )

    assert "reason=authorization_denied" in response.headers["location"]
    assert oauth_client.codes == []


async def test_status_without_session_makes_no_remote_call(auth_overrides) -> None:
    _, slack, _ = auth_overrides

    async with _client() as client:
        response = await client.get("/auth/status")

    assert response.status_code == 200
    assert response.json() == {"authenticated": False}
    assert slack.tokens == []


async def test_status_reports_authenticated_user(auth_overrides) -> None:
    async with _client() as client:
        client.cookies.set("slack_access_token", "xoxp-user")
        response = await client.get("/auth/status")

    assert response.json() == {
        "authenticated": True,
        "user": {"id": "U1", "name": "Ada", "team": "Acme", "image": "https://img/ada"},
    }


async def test_status_uses_stored_token_for_known_user(auth_overrides) -> None:
    _, slack, store = auth_overrides
    store.put("U1", "T1", "xoxp-user")

    async with _client() as client:
        client.cookies.set("slack_user_id", get_user_carrier().sign("U1"))
        response = await client.get("/auth/status")

    assert response.json()["authenticated"] is True
    assert slack.tokens == ["xoxp-user"]


async def test_invalid_session_is_cleared(auth_overrides) -> None:
    async with _client() as client:
        client.cookies.set("slack_access_token", "xoxp-revoked")
        response = await client.get("/auth/status")

    assert response.json()["authenticated"] is False
    assert "Max-Age=0" in _cookie_headers(response, "slack_access_token")[0]
    assert "Max-Age=0" in _cookie_headers(response, "slack_user_id")[0]


async def test_logout_forgets_credential(auth_overrides) -> None:
    _, _, store = auth_overrides
    store.put("U1", "T1", "xoxp-user")

    async with _client() as client:
        client.cookies.set("slack_user_id", get_user_carrier().sign("U1"))
        client.cookies.set("slack_access_token", "xoxp-user")
        response = await client.get("/auth/logout")

    assert response.status_code == 302
    assert response.headers["location"] == f"{FRONTEND}/?logout_success=1"
    assert store.get("U1") is None
    assert "Max-Age=0" in _cookie_headers(response, "slack_access_token")[0]


async def test_health() -> None:
    async with _client() as client:
        response = await client.get("/health")

    assert response.json() == {"status": "ok"}


async def test_status_ignores_forged_user_cookie(auth_overrides) -> None:
    _, slack, store = auth_overrides
    store.put("U1", "T1", "xoxp-user")

    async with _client() as client:
        client.cookies.set("slack_user_id", "U1")
        response = await client.get("/auth/status")

    assert response.json() == {"authenticated": False}
    assert slack.tokens == []


async def test_logout_with_forged_user_cookie_keeps_credential(auth_overrides) -> None:
    _, _, store = auth_overrides
    store.put("U1", "T1", "xoxp-user")

    async with _client() as client:
        client.cookies.set("slack_user_id", "U1")
        response = await client.get("/auth/logout")

    assert response.headers["location"] == f"{FRONTEND}/?logout_success=1"
    assert store.get("U1").access_token == "xoxp-user"


async def test_unexpected_callback_failure_still_redirects(auth_overrides) -> None:
    oauth_client, _, store = auth_overrides
    oauth_client.error = RuntimeError("boom")

    async with _client() as client:
        await client.get("/auth/slack")
        state = oauth_client.states[-1]
        response = await client.get(
            "/auth/slack/callback", params={"code": "code-1", "state": state}
        )

    assert response.status_code == 302
    location = urlparse(response.headers["location"])
    assert parse_qs(location.query) == {"auth_error": ["1"], "reason": ["server_error"]}
    assert "Max-Age=0" in _cookie_headers(response, "slack_auth_state")[0]
    assert store.get("U1") is None

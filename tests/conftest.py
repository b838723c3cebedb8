"""Pytest configuration shared across the suite."""

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover
    import _bootstrap  # type: ignore # noqa: F401

from datetime import datetime, timedelta, timezone

import pytest

from slack_relay.clients.sqlite_store import SQLiteStore
from slack_relay.services.credential_store import CredentialStore
from slack_relay.services.token_cipher import TokenCipherService


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


class FrozenClock:
    """Callable clock that tests can move forward explicitly."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture()
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture()
def credential_store(tmp_path, clock) -> CredentialStore:
    return CredentialStore(
        store=SQLiteStore(str(tmp_path / "credentials.db")),
        token_cipher=TokenCipherService(secret="store-secret"),
        ttl=timedelta(days=30),
        clock=clock,
    )

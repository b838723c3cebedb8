"""
Durable per-user storage of Slack access tokens with time-based expiry.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from slack_relay.clients.sqlite_store import SQLiteStore
from slack_relay.models.credential import CredentialRecord
from slack_relay.services.token_cipher import TokenCipherService

logger = logging.getLogger(__name__)

_SORT_KEY = "oauth#slack"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _partition_key(user_id: str) -> str:
    return f"user#{user_id}"


class CredentialStore:
    """Upsert, read and delete the single credential record of each user.

    Records older than ``ttl`` are treated as absent on read and removed by
    ``purge_expired``, which runs on every write. Storage failures propagate as
    ``CredentialStoreUnavailableError`` from the underlying store.
    """

    def __init__(
        self,
        *,
        store: SQLiteStore,
        token_cipher: TokenCipherService,
        ttl: timedelta,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._cipher = token_cipher
        self._ttl = ttl
        self._clock = clock

    def put(self, user_id: str, team_id: str, access_token: str) -> CredentialRecord:
        """Store a token for ``user_id``, replacing any previous one."""
        if not user_id or not team_id or not access_token:
            raise ValueError("user_id, team_id and access_token are required.")

        self.purge_expired()
        record = CredentialRecord(
            user_id=user_id,
            team_id=team_id,
            access_token=access_token,
            created_at=self._clock(),
        )
        self._store.put_item(
            {
                "pk": _partition_key(user_id),
                "sk": _SORT_KEY,
                "user_id": user_id,
                "team_id": team_id,
                "access_token_encrypted": self._cipher.encrypt(access_token),
                "created_at": record.created_at.isoformat(),
            }
        )
        logger.info("Stored Slack credential for user %s (team %s)", user_id, team_id)
        return record

    def get(self, user_id: str) -> Optional[CredentialRecord]:
        item = self._store.get_item(
            partition_key=_partition_key(user_id), sort_key=_SORT_KEY
        )
        if not item:
            return None

        record = self._to_record(item)
        if record is None or record.is_expired(ttl=self._ttl, now=self._clock()):
            self._store.delete_item(
                partition_key=_partition_key(user_id), sort_key=_SORT_KEY
            )
            return None
        return record

    def delete(self, user_id: str) -> bool:
        """Remove the user's record; True when one existed."""
        deleted = self._store.delete_item(
            partition_key=_partition_key(user_id), sort_key=_SORT_KEY
        )
        if deleted:
            logger.info("Deleted Slack credential for user %s", user_id)
        return deleted

    def purge_expired(self) -> int:
        """Sweep records past their retention window; returns the count removed."""
        now = self._clock()
        removed = 0
        for item in self._store.list_items_with_sort_key(sort_key=_SORT_KEY):
            created_at = datetime.fromisoformat(item["created_at"])
            if created_at.tzinfo is None:
                created_at = created_at.replace(tzinfo=timezone.utc)
            if created_at + self._ttl < now:
                if self._store.delete_item(partition_key=item["pk"], sort_key=_SORT_KEY):
                    removed += 1
        if removed:
            logger.info("Purged %d expired Slack credential(s)", removed)
        return removed

    def _to_record(self, item: dict) -> Optional[CredentialRecord]:
        try:
            access_token = self._cipher.decrypt(item["access_token_encrypted"])
        except ValueError:
            logger.warning(
                "Discarding unreadable credential for user %s", item.get("user_id")
            )
            return None
        return CredentialRecord(
            user_id=item["user_id"],
            team_id=item["team_id"],
            access_token=access_token,
            created_at=datetime.fromisoformat(item["created_at"]),
        )


__all__ = ["CredentialStore"]

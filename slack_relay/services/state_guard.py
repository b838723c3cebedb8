"""
Anti-forgery state values for the OAuth redirect round trip.
"""

from __future__ import annotations

import base64
import binascii
import hmac
import json
import logging
import secrets
from datetime import datetime, timedelta, timezone
from hashlib import sha256
from typing import Callable, Optional

logger = logging.getLogger(__name__)

_SIGNATURE_BYTES = 32


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StateNonceGuard:
    """Issue and verify one-time state nonces.

    A nonce is a random value plus its issue time, signed with the server
    secret so a nonce minted elsewhere or kept past ``ttl`` never verifies.
    The caller carries it to the client and back and clears it after one
    verification.
    """

    def __init__(
        self,
        *,
        secret_key: str,
        ttl: timedelta,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._secret_key = secret_key.encode("utf-8")
        self._ttl = ttl
        self._clock = clock

    def issue(self) -> str:
        payload = {
            "nonce": secrets.token_urlsafe(32),
            "issued_at": self._clock().isoformat(),
        }
        serialized = json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8")
        signature = hmac.new(self._secret_key, serialized, sha256).digest()
        # Unpadded so the value survives cookies and query strings unquoted.
        return base64.urlsafe_b64encode(signature + serialized).decode("utf-8").rstrip("=")

    def verify(self, issued: Optional[str], presented: Optional[str]) -> bool:
        """True only when both values are present, equal, authentic and fresh."""
        if not issued or not presented:
            return False
        if not hmac.compare_digest(issued.encode("utf-8"), presented.encode("utf-8")):
            return False

        payload = self._decode(issued)
        if payload is None:
            return False

        try:
            issued_at = datetime.fromisoformat(payload["issued_at"])
        except (KeyError, TypeError, ValueError):
            return False
        if issued_at.tzinfo is None:
            issued_at = issued_at.replace(tzinfo=timezone.utc)
        if self._clock() - issued_at > self._ttl:
            logger.info("Rejected expired OAuth state issued at %s", issued_at.isoformat())
            return False
        return True

    def _decode(self, token: str) -> Optional[dict]:
        try:
            padded = token + "=" * (-len(token) % 4)
            decoded = base64.urlsafe_b64decode(padded.encode("utf-8"))
        except (binascii.Error, ValueError):
            return None
        signature, serialized = decoded[:_SIGNATURE_BYTES], decoded[_SIGNATURE_BYTES:]
        expected = hmac.new(self._secret_key, serialized, sha256).digest()
        if not hmac.compare_digest(signature, expected):
            logger.warning("Rejected OAuth state with invalid signature")
            return None
        try:
            payload = json.loads(serialized)
        except ValueError:
            return None
        return payload if isinstance(payload, dict) else None


__all__ = ["StateNonceGuard"]

"""Symmetric encryption for access tokens held in the credential store."""

from __future__ import annotations

import base64
import hashlib

from cryptography.fernet import Fernet, InvalidToken

from slack_relay.core.config import AppSettings


class TokenCipherService:
    """Encrypt and decrypt tokens using a Fernet key derived from a secret."""

    def __init__(self, *, secret: str) -> None:
        if not secret:
            raise ValueError("Token encryption secret must be provided.")
        digest = hashlib.sha256(secret.encode("utf-8")).digest()
        self._fernet = Fernet(base64.urlsafe_b64encode(digest))

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "TokenCipherService":
        """Prefer the dedicated secret; fall back to the Slack client secret."""
        secret = settings.security.token_encryption_secret or settings.slack.client_secret
        return cls(secret=secret)

    def encrypt(self, plaintext: str) -> str:
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("utf-8")

    def decrypt(self, ciphertext: str) -> str:
        try:
            plaintext = self._fernet.decrypt(ciphertext.encode("utf-8"))
        except InvalidToken as exc:
            raise ValueError("Stored token could not be decrypted.") from exc
        return plaintext.decode("utf-8")


__all__ = ["TokenCipherService"]

"""
Exception hierarchy shared by the services and the HTTP layer.

``RelayError`` subclasses are rendered as ``{"error": ..., "details": ...}``
JSON by the API error handlers. ``AuthorizationError`` subclasses never reach
JSON: the OAuth callback encodes their ``reason`` into the frontend redirect.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import Optional

# Remote error codes meaning the credential itself was refused.
REMOTE_AUTH_ERROR_CODES = frozenset(
    {
        "invalid_auth",
        "not_authed",
        "token_revoked",
        "token_expired",
        "account_inactive",
    }
)


class RelayError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str, *, details: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_payload(self) -> dict:
        payload = {"error": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(RelayError):
    """Caller input is missing or malformed."""

    status_code = HTTPStatus.BAD_REQUEST


class PastScheduleError(ValidationError):
    def __init__(self) -> None:
        super().__init__("Scheduled time must be in the future")


class ScheduleTooFarError(ValidationError):
    def __init__(self) -> None:
        super().__init__("Cannot schedule beyond 120 days")


class NotFoundError(RelayError):
    """A lookup returned nothing."""

    status_code = HTTPStatus.BAD_REQUEST


class NotAuthenticatedError(RelayError):
    status_code = HTTPStatus.UNAUTHORIZED


class RemoteApiError(RelayError):
    """The chat API declared an error for a message operation."""

    status_code = HTTPStatus.BAD_REQUEST

    def __init__(self, message: str, *, remote_error: Optional[str] = None) -> None:
        super().__init__(
            message, details=remote_error if remote_error != message else None
        )
        self.remote_error = remote_error
        if remote_error in REMOTE_AUTH_ERROR_CODES:
            self.status_code = HTTPStatus.UNAUTHORIZED


class TransportError(RelayError):
    """Network or remote-service failure."""

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR


class CredentialStoreUnavailableError(RelayError):
    """The credential store could not be reached; distinct from a missing record."""

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR


class AuthorizationError(Exception):
    """Failure of the redirect-based authorization flow."""

    reason: str = "authorization_failed"


class StateMismatchError(AuthorizationError):
    reason = "state_mismatch"


class AuthorizationDeniedError(AuthorizationError):
    reason = "authorization_denied"


class MissingCodeError(AuthorizationError):
    reason = "missing_code"


class ExchangeFailedError(AuthorizationError):
    """Transport-level failure talking to the token endpoint."""

    reason = "exchange_failed"


class RemoteRejectedError(AuthorizationError):
    """The token endpoint answered with an explicit error code."""

    reason = "remote_rejected"

    def __init__(self, remote_error: str) -> None:
        super().__init__(f"Token endpoint rejected the exchange: {remote_error}")
        self.remote_error = remote_error


class InvalidResponseError(AuthorizationError):
    """The token endpoint reported success but omitted required fields."""

    reason = "invalid_response"


__all__ = [
    "AuthorizationDeniedError",
    "AuthorizationError",
    "CredentialStoreUnavailableError",
    "ExchangeFailedError",
    "InvalidResponseError",
    "MissingCodeError",
    "NotAuthenticatedError",
    "NotFoundError",
    "PastScheduleError",
    "REMOTE_AUTH_ERROR_CODES",
    "RelayError",
    "RemoteApiError",
    "RemoteRejectedError",
    "ScheduleTooFarError",
    "StateMismatchError",
    "TransportError",
    "ValidationError",
]

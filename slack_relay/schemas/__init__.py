"""Public schema exports."""

from .auth import AuthStatusResponse, SessionUserPayload
from .messages import (
    ErrorResponse,
    MessageDeleteRequest,
    MessageEditRequest,
    MessageSendRequest,
)

__all__ = [
    "AuthStatusResponse",
    "ErrorResponse",
    "MessageDeleteRequest",
    "MessageEditRequest",
    "MessageSendRequest",
    "SessionUserPayload",
]

"""
Pydantic models for the message relay endpoints.

Fields are optional at the schema level so that missing values are reported
with the relay's own validation messages instead of a generic 422.
"""

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field

Timestamp = Union[int, float, str]


class MessageSendRequest(BaseModel):
    """Send now, or schedule when ``postAt`` is given."""

    model_config = ConfigDict(populate_by_name=True)

    channel: Optional[str] = Field(None, description="Channel ID to post into.")
    text: Optional[str] = Field(None, description="Message body.")
    post_at: Optional[Timestamp] = Field(
        None,
        alias="postAt",
        description="Unix timestamp (seconds) to schedule delivery for.",
    )


class MessageEditRequest(BaseModel):
    channel: Optional[str] = None
    ts: Optional[Timestamp] = Field(None, description="Timestamp identifier of the message.")
    text: Optional[str] = None


class MessageDeleteRequest(BaseModel):
    channel: Optional[str] = None
    ts: Optional[Timestamp] = None


class ErrorResponse(BaseModel):
    """Body of every JSON error response."""

    error: str
    details: Optional[str] = None


__all__ = [
    "ErrorResponse",
    "MessageDeleteRequest",
    "MessageEditRequest",
    "MessageSendRequest",
]

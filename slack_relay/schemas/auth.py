"""Schemas related to the OAuth flow and session status."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class SessionUserPayload(BaseModel):
    """Public description of the signed-in Slack user."""

    id: str = Field(..., description="Slack user identifier.")
    name: Optional[str] = Field(None, description="Display name, when known.")
    team: Optional[str] = Field(None, description="Workspace name.")
    image: Optional[str] = Field(None, description="Avatar URL, when known.")


class AuthStatusResponse(BaseModel):
    authenticated: bool
    user: Optional[SessionUserPayload] = None


__all__ = ["AuthStatusResponse", "SessionUserPayload"]

"""
Domain models for credential persistence.
"""

from datetime import datetime, timedelta, timezone

from pydantic import BaseModel, Field


class CredentialRecord(BaseModel):
    """One access token per Slack user, scoped to a team."""

    user_id: str = Field(..., description="Slack user identifier of the authenticated principal.")
    team_id: str = Field(..., description="Workspace the token is scoped to.")
    access_token: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def is_expired(self, *, ttl: timedelta, now: datetime) -> bool:
        created_at = self.created_at
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return created_at + ttl < now


__all__ = ["CredentialRecord"]

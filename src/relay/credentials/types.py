"""Credential types."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from relay.db.models import SlackCredential


@dataclass
class Credential:
    """A stored Slack access grant for one (workspace, user) pair."""

    workspace_id: str
    user_id: str
    access_token: str
    refresh_token: str | None = None
    expires_at: int | None = None  # Unix timestamp in seconds
    created_at: datetime | None = None
    updated_at: datetime | None = None
    id: int | None = field(default=None, compare=False)

    def expires_within(self, seconds: float, now: float) -> bool:
        """True if the token is expired or expires within ``seconds`` of ``now``."""
        if self.expires_at is None:
            return False
        return self.expires_at - seconds <= now

    @classmethod
    def from_row(cls, row: SlackCredential) -> Credential:
        return cls(
            id=row.id,
            workspace_id=row.workspace_id,
            user_id=row.user_id,
            access_token=row.access_token,
            refresh_token=row.refresh_token,
            expires_at=row.expires_at,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

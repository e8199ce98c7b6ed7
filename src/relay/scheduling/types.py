"""Scheduled delivery types.

Public types:
- DeliveryStatus: Closed set of delivery states
- ScheduledDelivery: One message queued for a future send
- TickResult: Summary of one scheduler pass
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from relay.errors import ValidationError

if TYPE_CHECKING:
    from relay.db.models import ScheduledMessage


class DeliveryStatus(StrEnum):
    """Allowed delivery statuses.

    Only PENDING can transition, and only to one of the other three.
    """

    PENDING = "pending"
    SENT = "sent"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not DeliveryStatus.PENDING

    @classmethod
    def parse(cls, value: str | DeliveryStatus) -> DeliveryStatus:
        try:
            return cls(value)
        except ValueError:
            raise ValidationError(f"Unknown delivery status: {value!r}") from None


def ensure_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime. Naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


@dataclass
class ScheduledDelivery:
    """A message queued for delivery to a Slack channel."""

    channel_id: str
    message: str
    scheduled_at: datetime
    workspace_id: str
    user_id: str
    channel_name: str = ""
    status: DeliveryStatus = DeliveryStatus.PENDING
    id: int | None = None
    error: str | None = None
    provider_message_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize for the HTTP layer; timestamps become ISO-8601 UTC strings."""
        data: dict[str, Any] = {
            "id": self.id,
            "channel_id": self.channel_id,
            "channel_name": self.channel_name,
            "message": self.message,
            "scheduled_time": self.scheduled_at.isoformat(),
            "status": self.status.value,
            "team_id": self.workspace_id,
            "user_id": self.user_id,
        }
        if self.error:
            data["error"] = self.error
        if self.provider_message_id:
            data["provider_message_id"] = self.provider_message_id
        if self.created_at:
            data["created_at"] = self.created_at.isoformat()
        if self.updated_at:
            data["updated_at"] = self.updated_at.isoformat()
        return data

    @classmethod
    def from_row(cls, row: ScheduledMessage) -> ScheduledDelivery:
        return cls(
            id=row.id,
            channel_id=row.channel_id,
            channel_name=row.channel_name,
            message=row.message,
            scheduled_at=row.scheduled_at,
            status=DeliveryStatus(row.status),
            workspace_id=row.workspace_id,
            user_id=row.user_id,
            error=row.error,
            provider_message_id=row.provider_message_id,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


@dataclass
class TickResult:
    """What one scheduler pass did."""

    skipped: bool = False
    due: int = 0
    outcomes: dict[int, DeliveryStatus | None] = field(default_factory=dict)
    errors: int = 0

    def count(self, status: DeliveryStatus) -> int:
        return sum(1 for s in self.outcomes.values() if s is status)

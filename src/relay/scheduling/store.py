"""Scheduled delivery store backed by SQLite."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import func, select, update

from relay.db.engine import Database
from relay.db.models import ScheduledMessage, utc_now
from relay.errors import ValidationError
from relay.scheduling.types import DeliveryStatus, ScheduledDelivery, ensure_utc

logger = logging.getLogger(__name__)


class DeliveryStore:
    """Durable table of scheduled deliveries.

    Every status change is one conditional UPDATE guarded by
    ``status = 'pending'``, so a row leaves PENDING at most once even when a
    user cancellation races a scheduler dispatch.
    """

    def __init__(self, database: Database) -> None:
        self._db = database

    # ------------------------------------------------------------------
    # Read operations
    # ------------------------------------------------------------------

    async def get(self, delivery_id: int) -> ScheduledDelivery | None:
        async with self._db.session() as session:
            row = await session.get(ScheduledMessage, delivery_id)
            return ScheduledDelivery.from_row(row) if row is not None else None

    async def list_for_owner(
        self, workspace_id: str, user_id: str
    ) -> list[ScheduledDelivery]:
        stmt = (
            select(ScheduledMessage)
            .where(
                ScheduledMessage.workspace_id == workspace_id,
                ScheduledMessage.user_id == user_id,
            )
            .order_by(ScheduledMessage.scheduled_at.asc(), ScheduledMessage.id.asc())
        )
        async with self._db.session() as session:
            result = await session.execute(stmt)
            return [ScheduledDelivery.from_row(row) for row in result.scalars()]

    async def list_due(
        self, now: datetime, limit: int | None = None
    ) -> list[ScheduledDelivery]:
        """Pending deliveries scheduled at or before ``now``, earliest first."""
        stmt = (
            select(ScheduledMessage)
            .where(
                ScheduledMessage.status == DeliveryStatus.PENDING.value,
                ScheduledMessage.scheduled_at <= ensure_utc(now),
            )
            .order_by(ScheduledMessage.scheduled_at.asc(), ScheduledMessage.id.asc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        async with self._db.session() as session:
            result = await session.execute(stmt)
            return [ScheduledDelivery.from_row(row) for row in result.scalars()]

    async def count_by_status(self) -> dict[DeliveryStatus, int]:
        stmt = select(ScheduledMessage.status, func.count()).group_by(
            ScheduledMessage.status
        )
        async with self._db.session() as session:
            result = await session.execute(stmt)
            counts = {status: 0 for status in DeliveryStatus}
            for status, count in result.all():
                counts[DeliveryStatus.parse(status)] = count
            return counts

    # ------------------------------------------------------------------
    # Write operations
    # ------------------------------------------------------------------

    async def create(self, delivery: ScheduledDelivery) -> int:
        """Insert a new pending delivery and return its id.

        Raises:
            ValidationError: If a required field is missing.
        """
        for name in ("channel_id", "message", "workspace_id", "user_id"):
            if not getattr(delivery, name):
                raise ValidationError(f"{name} is required")
        if delivery.scheduled_at is None:
            raise ValidationError("scheduled_at is required")

        now = utc_now()
        row = ScheduledMessage(
            channel_id=delivery.channel_id,
            channel_name=delivery.channel_name or delivery.channel_id,
            message=delivery.message,
            scheduled_at=ensure_utc(delivery.scheduled_at),
            status=DeliveryStatus.PENDING.value,
            workspace_id=delivery.workspace_id,
            user_id=delivery.user_id,
            created_at=now,
            updated_at=now,
        )
        async with self._db.session() as session:
            session.add(row)
            await session.flush()
            delivery_id = row.id

        logger.info(
            "delivery_created",
            extra={
                "delivery.id": delivery_id,
                "delivery.scheduled_at": row.scheduled_at.isoformat(),
                "slack.channel_id": delivery.channel_id,
            },
        )
        return delivery_id

    async def set_status(
        self,
        delivery_id: int,
        status: DeliveryStatus | str,
        *,
        error: str | None = None,
        provider_message_id: str | None = None,
    ) -> bool:
        """Move a pending delivery to a terminal status.

        Returns:
            True if the row was pending and is now ``status``; False if it
            does not exist or had already left PENDING.

        Raises:
            ValidationError: If ``status`` is unknown or PENDING.
        """
        target = DeliveryStatus.parse(status)
        if not target.is_terminal:
            raise ValidationError("Deliveries cannot be moved back to pending")

        stmt = (
            update(ScheduledMessage)
            .where(
                ScheduledMessage.id == delivery_id,
                ScheduledMessage.status == DeliveryStatus.PENDING.value,
            )
            .values(
                status=target.value,
                error=error,
                provider_message_id=provider_message_id,
                updated_at=utc_now(),
            )
        )
        async with self._db.session() as session:
            result = await session.execute(stmt)
            changed = result.rowcount > 0

        if not changed:
            logger.debug(
                "delivery_status_unchanged",
                extra={"delivery.id": delivery_id, "delivery.status": target.value},
            )
        return changed

    async def cancel(self, delivery_id: int, workspace_id: str, user_id: str) -> bool:
        """Cancel a pending delivery owned by (workspace, user).

        Returns:
            True if exactly this owner's pending row was cancelled.
        """
        stmt = (
            update(ScheduledMessage)
            .where(
                ScheduledMessage.id == delivery_id,
                ScheduledMessage.workspace_id == workspace_id,
                ScheduledMessage.user_id == user_id,
                ScheduledMessage.status == DeliveryStatus.PENDING.value,
            )
            .values(status=DeliveryStatus.CANCELLED.value, updated_at=utc_now())
        )
        async with self._db.session() as session:
            result = await session.execute(stmt)
            cancelled = result.rowcount > 0

        if cancelled:
            logger.info("delivery_cancelled", extra={"delivery.id": delivery_id})
        return cancelled

"""Delivery operations consumed by the HTTP and CLI layers."""

import logging
from collections.abc import Callable
from datetime import UTC, datetime

from relay.credentials.manager import CredentialManager
from relay.errors import ProviderError, ValidationError
from relay.scheduling.store import DeliveryStore
from relay.scheduling.types import ScheduledDelivery, ensure_utc
from relay.slack.types import Channel, SendResult, SlackAPI

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class DeliveryService:
    """Schedule, list, cancel and immediately send messages for a user."""

    def __init__(
        self,
        store: DeliveryStore,
        credentials: CredentialManager,
        slack: SlackAPI,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._credentials = credentials
        self._slack = slack
        self._now = now

    async def schedule_delivery(
        self,
        workspace_id: str,
        user_id: str,
        channel_id: str,
        channel_name: str | None,
        text: str,
        scheduled_at: datetime,
    ) -> int:
        """Queue ``text`` for delivery at ``scheduled_at``.

        Raises:
            ValidationError: If a field is missing or the time is not in the future.
        """
        if not text or not text.strip():
            raise ValidationError("message is required")
        scheduled_at = ensure_utc(scheduled_at)
        if scheduled_at <= self._now():
            raise ValidationError("Scheduled time must be in the future")

        return await self._store.create(
            ScheduledDelivery(
                channel_id=channel_id,
                channel_name=channel_name or channel_id,
                message=text,
                scheduled_at=scheduled_at,
                workspace_id=workspace_id,
                user_id=user_id,
            )
        )

    async def list_deliveries(
        self, workspace_id: str, user_id: str
    ) -> list[ScheduledDelivery]:
        return await self._store.list_for_owner(workspace_id, user_id)

    async def cancel_delivery(
        self, delivery_id: int, workspace_id: str, user_id: str
    ) -> bool:
        return await self._store.cancel(delivery_id, workspace_id, user_id)

    async def get_valid_token(self, workspace_id: str, user_id: str) -> str:
        return await self._credentials.get_valid_token(workspace_id, user_id)

    async def send_now(
        self, workspace_id: str, user_id: str, channel_id: str, text: str
    ) -> SendResult:
        """Post ``text`` right away without touching the delivery table.

        Raises:
            ValidationError: If channel or text is empty.
            ProviderError: If Slack rejects the message.
        """
        if not channel_id or not text:
            raise ValidationError("channel_id and message are required")
        token = await self._credentials.get_valid_token(workspace_id, user_id)
        result = await self._slack.send_message(token, channel_id, text)
        if not result.ok:
            raise ProviderError(
                f"Slack rejected message: {result.error}", code=result.error
            )
        logger.info(
            "message_sent",
            extra={"slack.channel_id": channel_id, "slack.message_ts": result.message_id},
        )
        return result

    async def list_channels(self, workspace_id: str, user_id: str) -> list[Channel]:
        token = await self._credentials.get_valid_token(workspace_id, user_id)
        return await self._slack.list_channels(token)

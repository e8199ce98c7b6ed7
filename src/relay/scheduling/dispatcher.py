"""Send one due delivery and record what happened."""

import logging

from relay.credentials.manager import CredentialManager
from relay.errors import StorageError
from relay.scheduling.store import DeliveryStore
from relay.scheduling.types import DeliveryStatus, ScheduledDelivery
from relay.slack.types import SlackAPI

logger = logging.getLogger(__name__)


class DeliveryDispatcher:
    """Delivers a single scheduled message.

    Every outcome ends in a terminal status. Failures are recorded on the
    row and never retried.
    """

    def __init__(
        self,
        store: DeliveryStore,
        credentials: CredentialManager,
        slack: SlackAPI,
    ) -> None:
        self._store = store
        self._credentials = credentials
        self._slack = slack

    async def dispatch(self, delivery: ScheduledDelivery) -> DeliveryStatus | None:
        """Send ``delivery`` and mark it sent or failed.

        Returns:
            The terminal status written, or None if the delivery was no
            longer pending (cancelled or handled elsewhere) and was skipped.

        Raises:
            StorageError: If reading the credential or writing the status
                fails. The row is left pending for the next tick.
        """
        if delivery.id is None:
            raise ValueError("Cannot dispatch an unsaved delivery")

        current = await self._store.get(delivery.id)
        if current is None or current.status is not DeliveryStatus.PENDING:
            logger.info(
                "delivery_skipped",
                extra={
                    "delivery.id": delivery.id,
                    "delivery.status": current.status.value if current else None,
                },
            )
            return None

        try:
            token = await self._credentials.get_valid_token(
                current.workspace_id, current.user_id
            )
            result = await self._slack.send_message(
                token, current.channel_id, current.message
            )
        except StorageError:
            raise
        except Exception as e:
            logger.warning(
                "delivery_failed",
                extra={
                    "delivery.id": current.id,
                    "error.type": type(e).__name__,
                    "error.message": str(e),
                },
            )
            return await self._finish(
                current, DeliveryStatus.FAILED, error=str(e) or type(e).__name__
            )

        if result.ok:
            logger.info(
                "delivery_sent",
                extra={
                    "delivery.id": current.id,
                    "slack.channel_id": current.channel_id,
                    "slack.message_ts": result.message_id,
                },
            )
            return await self._finish(
                current, DeliveryStatus.SENT, provider_message_id=result.message_id
            )

        logger.warning(
            "delivery_rejected",
            extra={
                "delivery.id": current.id,
                "slack.channel_id": current.channel_id,
                "error.message": result.error,
            },
        )
        return await self._finish(
            current, DeliveryStatus.FAILED, error=result.error or "unknown_error"
        )

    async def _finish(
        self,
        delivery: ScheduledDelivery,
        status: DeliveryStatus,
        *,
        error: str | None = None,
        provider_message_id: str | None = None,
    ) -> DeliveryStatus | None:
        assert delivery.id is not None
        changed = await self._store.set_status(
            delivery.id,
            status,
            error=error,
            provider_message_id=provider_message_id,
        )
        if not changed:
            # Cancelled while the send was in flight
            logger.warning(
                "delivery_status_lost",
                extra={"delivery.id": delivery.id, "delivery.status": status.value},
            )
            return None
        return status

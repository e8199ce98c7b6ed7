"""Delivery watcher: polls for due deliveries and dispatches them.

The watcher owns the polling loop. Data access is delegated to
DeliveryStore and sending to DeliveryDispatcher.
"""

import asyncio
import logging
from datetime import UTC, datetime

from relay.scheduling.dispatcher import DeliveryDispatcher
from relay.scheduling.store import DeliveryStore
from relay.scheduling.types import ScheduledDelivery, TickResult

logger = logging.getLogger(__name__)


class DeliveryWatcher:
    """Periodically dispatches deliveries whose time has come.

    Example:
        watcher = DeliveryWatcher(store, dispatcher, poll_interval=60)
        await watcher.start()
        ...
        await watcher.stop()
    """

    def __init__(
        self,
        store: DeliveryStore,
        dispatcher: DeliveryDispatcher,
        poll_interval: float = 60.0,
        max_concurrency: int = 1,
        heartbeat_every: int = 60,
    ):
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self._store = store
        self._dispatcher = dispatcher
        self._poll_interval = poll_interval
        self._max_concurrency = max_concurrency
        self._heartbeat_every = heartbeat_every
        self._running = False
        self._task: asyncio.Task | None = None
        self._tick_lock = asyncio.Lock()
        self._poll_count = 0

    @property
    def store(self) -> DeliveryStore:
        return self._store

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        logger.info(
            "delivery_watcher_started",
            extra={
                "scheduler.poll_interval": self._poll_interval,
                "scheduler.max_concurrency": self._max_concurrency,
            },
        )
        self._task = asyncio.create_task(self._poll_loop())

    async def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("delivery_watcher_stopped")

    async def _poll_loop(self) -> None:
        while self._running:
            try:
                self._poll_count += 1
                if self._heartbeat_every and self._poll_count % self._heartbeat_every == 0:
                    logger.info(
                        "delivery_watcher_heartbeat",
                        extra={"poll.count": self._poll_count},
                    )
                await self.run_once()
            except Exception as e:
                logger.error("delivery_tick_error", extra={"error.message": str(e)})
            await asyncio.sleep(self._poll_interval)

    async def run_once(self, now: datetime | None = None) -> TickResult:
        """Dispatch everything due at ``now`` (defaults to the current time).

        A call made while another tick is still in progress returns
        immediately with ``skipped=True``.
        """
        if self._tick_lock.locked():
            logger.info("delivery_tick_skipped")
            return TickResult(skipped=True)

        async with self._tick_lock:
            now = now or datetime.now(UTC)
            result = TickResult()
            try:
                due = await self._store.list_due(now)
            except Exception as e:
                logger.error(
                    "delivery_query_failed",
                    extra={"error.type": type(e).__name__, "error.message": str(e)},
                )
                result.errors += 1
                return result

            result.due = len(due)
            if not due:
                return result

            logger.debug(f"Delivery check: {len(due)} due at {now.isoformat()}")

            semaphore = asyncio.Semaphore(self._max_concurrency)

            async def run(delivery: ScheduledDelivery) -> None:
                async with semaphore:
                    await self._dispatch_one(delivery, result)

            await asyncio.gather(*(run(delivery) for delivery in due))

            logger.info(
                "delivery_tick_complete",
                extra={
                    "delivery.due": result.due,
                    "delivery.dispatched": sum(
                        1 for s in result.outcomes.values() if s is not None
                    ),
                    "delivery.errors": result.errors,
                },
            )
            return result

    async def _dispatch_one(self, delivery: ScheduledDelivery, result: TickResult) -> None:
        assert delivery.id is not None
        try:
            result.outcomes[delivery.id] = await self._dispatcher.dispatch(delivery)
        except Exception as e:
            # One bad row must not stop its siblings
            result.outcomes[delivery.id] = None
            result.errors += 1
            logger.error(
                "delivery_dispatch_error",
                extra={
                    "delivery.id": delivery.id,
                    "error.type": type(e).__name__,
                    "error.message": str(e),
                },
            )

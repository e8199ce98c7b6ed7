"""Scheduled message delivery.

Public API:
- DeliveryStore: Durable table of scheduled deliveries
- DeliveryDispatcher: Sends one due delivery and records the outcome
- DeliveryWatcher: Polling loop that dispatches due deliveries
- DeliveryService: Schedule/list/cancel/send operations for callers

Types:
- DeliveryStatus, ScheduledDelivery, TickResult
"""

from relay.scheduling.dispatcher import DeliveryDispatcher
from relay.scheduling.service import DeliveryService
from relay.scheduling.store import DeliveryStore
from relay.scheduling.types import (
    DeliveryStatus,
    ScheduledDelivery,
    TickResult,
    ensure_utc,
)
from relay.scheduling.watcher import DeliveryWatcher

__all__ = [
    "DeliveryDispatcher",
    "DeliveryService",
    "DeliveryStatus",
    "DeliveryStore",
    "DeliveryWatcher",
    "ScheduledDelivery",
    "TickResult",
    "ensure_utc",
]

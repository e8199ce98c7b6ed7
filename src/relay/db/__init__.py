"""Database layer."""

from relay.db.engine import Database
from relay.db.models import (
    Base,
    ScheduledMessage,
    SlackCredential,
    UTCDateTime,
    utc_now,
)

__all__ = [
    # Engine
    "Database",
    # Models
    "Base",
    "ScheduledMessage",
    "SlackCredential",
    "UTCDateTime",
    "utc_now",
]

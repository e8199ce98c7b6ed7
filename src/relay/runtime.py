"""Wire the relay components together from configuration."""

from dataclasses import dataclass

from relay.config.models import RelayConfig
from relay.credentials.manager import CredentialManager
from relay.credentials.store import CredentialStore
from relay.db.engine import Database
from relay.scheduling.dispatcher import DeliveryDispatcher
from relay.scheduling.service import DeliveryService
from relay.scheduling.store import DeliveryStore
from relay.scheduling.watcher import DeliveryWatcher
from relay.slack.client import SlackClient
from relay.slack.types import SlackAPI


@dataclass
class Runtime:
    """Every long-lived component of a relay process."""

    config: RelayConfig
    database: Database
    slack: SlackAPI
    credential_store: CredentialStore
    credentials: CredentialManager
    deliveries: DeliveryStore
    dispatcher: DeliveryDispatcher
    watcher: DeliveryWatcher
    service: DeliveryService

    async def start(self) -> None:
        """Connect the database, create tables and start the watcher if enabled."""
        await self.database.connect()
        await self.database.create_all()
        if self.config.scheduler.enabled:
            await self.watcher.start()

    async def stop(self) -> None:
        await self.watcher.stop()
        await self.database.disconnect()


def create_runtime(
    config: RelayConfig,
    *,
    slack: SlackAPI | None = None,
    database: Database | None = None,
) -> Runtime:
    """Build a Runtime. ``slack`` and ``database`` may be injected for tests."""
    if database is None:
        database = Database(
            database_url=config.database.url, database_path=config.database.path
        )
    if slack is None:
        slack = SlackClient.from_config(config.slack)

    credential_store = CredentialStore(database)
    credentials = CredentialManager(
        credential_store,
        slack,
        refresh_buffer_seconds=config.credentials.refresh_buffer_seconds,
    )
    deliveries = DeliveryStore(database)
    dispatcher = DeliveryDispatcher(deliveries, credentials, slack)
    watcher = DeliveryWatcher(
        deliveries,
        dispatcher,
        poll_interval=config.scheduler.poll_interval,
        max_concurrency=config.scheduler.max_concurrency,
        heartbeat_every=config.scheduler.heartbeat_every,
    )
    service = DeliveryService(deliveries, credentials, slack)

    return Runtime(
        config=config,
        database=database,
        slack=slack,
        credential_store=credential_store,
        credentials=credentials,
        deliveries=deliveries,
        dispatcher=dispatcher,
        watcher=watcher,
        service=service,
    )

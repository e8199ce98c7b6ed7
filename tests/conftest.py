"""Shared test fixtures and fakes."""

import asyncio
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest

from relay.config.models import DatabaseConfig, RelayConfig, SchedulerConfig
from relay.credentials.manager import CredentialManager
from relay.credentials.store import CredentialStore
from relay.credentials.types import Credential
from relay.db.engine import Database
from relay.errors import ProviderError
from relay.runtime import Runtime, create_runtime
from relay.scheduling.dispatcher import DeliveryDispatcher
from relay.scheduling.service import DeliveryService
from relay.scheduling.store import DeliveryStore
from relay.scheduling.watcher import DeliveryWatcher
from relay.slack.types import Channel, SendResult, TokenGrant

# Fixed epoch for credential expiry math: 2023-11-14T22:13:20Z
NOW_EPOCH = 1_700_000_000


class Clock:
    """Settable stand-in for time.time()."""

    def __init__(self, now: float = NOW_EPOCH) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSlack:
    """In-memory SlackAPI that records every call."""

    def __init__(self) -> None:
        self.code_grant = TokenGrant(
            access_token="xoxp-initial",
            refresh_token="xoxe-1-refresh",
            expires_in=43200,
            workspace_id="T1",
            workspace_name="Acme",
            user_id="U1",
        )
        self.refresh_grant = TokenGrant(
            access_token="xoxp-refreshed",
            refresh_token="xoxe-1-rotated",
            expires_in=43200,
        )
        self.refresh_error: Exception | None = None
        self.refresh_delay = 0.0
        self.send_result = SendResult(ok=True, message_id="1700000000.000100")
        self.send_errors: dict[str, Exception] = {}
        self.channels = [Channel(id="C1", name="general")]

        self.codes: list[str] = []
        self.refresh_calls: list[str] = []
        self.sent: list[tuple[str, str, str]] = []

    async def exchange_code(self, code: str) -> TokenGrant:
        self.codes.append(code)
        if code == "bad":
            raise ProviderError("OAuth error: invalid_code", code="invalid_code")
        return self.code_grant

    async def exchange_refresh_token(self, refresh_token: str) -> TokenGrant:
        self.refresh_calls.append(refresh_token)
        if self.refresh_delay:
            await asyncio.sleep(self.refresh_delay)
        if self.refresh_error is not None:
            raise self.refresh_error
        return self.refresh_grant

    async def send_message(
        self, access_token: str, channel_id: str, text: str
    ) -> SendResult:
        self.sent.append((access_token, channel_id, text))
        if channel_id in self.send_errors:
            raise self.send_errors[channel_id]
        return self.send_result

    async def list_channels(self, access_token: str) -> list[Channel]:
        return self.channels


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
async def database(tmp_path: Path) -> AsyncGenerator[Database, None]:
    """Create a temporary test database."""
    db = Database(database_path=tmp_path / "test.db")
    await db.connect()
    await db.create_all()

    yield db

    await db.disconnect()


# =============================================================================
# Component Fixtures
# =============================================================================


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def fake_slack() -> FakeSlack:
    return FakeSlack()


@pytest.fixture
def credential_store(database: Database) -> CredentialStore:
    return CredentialStore(database)


@pytest.fixture
def credential_manager(
    credential_store: CredentialStore, fake_slack: FakeSlack, clock: Clock
) -> CredentialManager:
    return CredentialManager(credential_store, fake_slack, clock=clock)


@pytest.fixture
def delivery_store(database: Database) -> DeliveryStore:
    return DeliveryStore(database)


@pytest.fixture
def dispatcher(
    delivery_store: DeliveryStore,
    credential_manager: CredentialManager,
    fake_slack: FakeSlack,
) -> DeliveryDispatcher:
    return DeliveryDispatcher(delivery_store, credential_manager, fake_slack)


@pytest.fixture
def watcher(
    delivery_store: DeliveryStore, dispatcher: DeliveryDispatcher
) -> DeliveryWatcher:
    return DeliveryWatcher(delivery_store, dispatcher, poll_interval=0.01)


@pytest.fixture
def service(
    delivery_store: DeliveryStore,
    credential_manager: CredentialManager,
    fake_slack: FakeSlack,
) -> DeliveryService:
    return DeliveryService(delivery_store, credential_manager, fake_slack)


@pytest.fixture
def relay_config(tmp_path: Path) -> RelayConfig:
    return RelayConfig(
        database=DatabaseConfig(path=tmp_path / "test.db"),
        scheduler=SchedulerConfig(enabled=False),
    )


@pytest.fixture
def runtime(
    relay_config: RelayConfig, database: Database, fake_slack: FakeSlack
) -> Runtime:
    return create_runtime(relay_config, slack=fake_slack, database=database)


@pytest.fixture
async def authorized(credential_store: CredentialStore) -> Credential:
    """Store a non-expiring credential for T1/U1."""
    return await credential_store.save(
        Credential(workspace_id="T1", user_id="U1", access_token="xoxp-valid")
    )

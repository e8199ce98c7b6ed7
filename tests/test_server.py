"""Tests for the FastAPI routes."""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from relay.config.models import SlackConfig
from relay.credentials.types import Credential
from relay.errors import StorageError
from relay.runtime import Runtime, create_runtime
from relay.scheduling.types import DeliveryStatus
from relay.server.app import create_app, status_for
from relay.slack.types import SendResult


@pytest.fixture
async def client(runtime: Runtime) -> AsyncGenerator[httpx.AsyncClient, None]:
    app = create_app(runtime, manage_runtime=False)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


def _query(location: str) -> dict[str, str]:
    return {k: v[0] for k, v in parse_qs(urlparse(location).query).items()}


class TestHealth:
    async def test_health(self, client: httpx.AsyncClient):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "scheduler_running": False}

    async def test_api_health(self, client: httpx.AsyncClient):
        response = await client.get("/api/health")
        assert response.status_code == 200


class TestAuthRoutes:
    async def test_install_url(self, relay_config, database):
        relay_config.slack = SlackConfig(client_id="123.456", client_secret="shh")
        runtime = create_runtime(relay_config, database=database)
        app = create_app(runtime, manage_runtime=False)

        async with httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://test"
        ) as c:
            response = await c.get("/api/auth/slack")

        body = response.json()
        assert body["success"] is True
        assert "client_id=123.456" in body["install_url"]

    async def test_install_url_unconfigured(self, relay_config, database):
        runtime = create_runtime(relay_config, database=database)
        app = create_app(runtime, manage_runtime=False)

        async with httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://test"
        ) as c:
            response = await c.get("/api/auth/slack")

        assert response.status_code == 503
        assert response.json()["success"] is False

    async def test_callback_success(self, client: httpx.AsyncClient, runtime: Runtime):
        response = await client.get("/api/auth/slack/callback", params={"code": "ok"})

        assert response.status_code == 302
        location = response.headers["location"]
        assert location.startswith("http://localhost:3000/auth-success?")
        assert _query(location) == {
            "success": "true",
            "team_id": "T1",
            "team_name": "Acme",
            "user_id": "U1",
        }
        assert await runtime.credential_store.get("T1", "U1") is not None

    async def test_callback_missing_code(self, client: httpx.AsyncClient):
        response = await client.get("/api/auth/slack/callback")

        assert response.status_code == 302
        assert _query(response.headers["location"]) == {"error": "missing_code"}

    async def test_callback_denied(self, client: httpx.AsyncClient):
        response = await client.get(
            "/api/auth/slack/callback", params={"error": "access_denied"}
        )

        assert "/auth-error?" in response.headers["location"]
        assert _query(response.headers["location"]) == {"error": "access_denied"}

    async def test_callback_exchange_failure(self, client: httpx.AsyncClient):
        response = await client.get("/api/auth/slack/callback", params={"code": "bad"})

        assert _query(response.headers["location"]) == {"error": "oauth_failed"}

    async def test_status(self, client: httpx.AsyncClient, authorized):
        response = await client.get(
            "/api/auth/status", params={"team_id": "T1", "user_id": "U1"}
        )
        assert response.json()["authenticated"] is True

        response = await client.get(
            "/api/auth/status", params={"team_id": "T1", "user_id": "U9"}
        )
        assert response.json()["authenticated"] is False

    async def test_status_requires_params(self, client: httpx.AsyncClient):
        response = await client.get("/api/auth/status")
        assert response.status_code == 400
        assert response.json()["success"] is False

    async def test_refresh(self, client: httpx.AsyncClient, credential_store, fake_slack):
        await credential_store.save(
            Credential(
                workspace_id="T1",
                user_id="U1",
                access_token="xoxp-old",
                refresh_token="xoxe-1-r",
            )
        )

        response = await client.post(
            "/api/auth/refresh", json={"team_id": "T1", "user_id": "U1"}
        )

        assert response.status_code == 200
        assert fake_slack.refresh_calls == ["xoxe-1-r"]

    async def test_refresh_without_refresh_token(
        self, client: httpx.AsyncClient, authorized
    ):
        response = await client.post(
            "/api/auth/refresh", json={"team_id": "T1", "user_id": "U1"}
        )
        assert response.status_code == 401

    async def test_refresh_unknown_user(self, client: httpx.AsyncClient):
        response = await client.post(
            "/api/auth/refresh", json={"team_id": "T1", "user_id": "U1"}
        )
        assert response.status_code == 404
        assert response.json() == {
            "success": False,
            "error": "No credential for workspace T1 user U1",
        }


class TestMessageRoutes:
    async def test_channels(self, client: httpx.AsyncClient, authorized):
        response = await client.get(
            "/api/messages/channels", params={"team_id": "T1", "user_id": "U1"}
        )

        body = response.json()
        assert body["success"] is True
        assert body["channels"][0]["id"] == "C1"
        assert body["channels"][0]["name"] == "general"

    async def test_send(self, client: httpx.AsyncClient, fake_slack, authorized):
        response = await client.post(
            "/api/messages/send",
            json={"team_id": "T1", "user_id": "U1", "channel_id": "C1", "message": "hi"},
        )

        assert response.status_code == 200
        assert response.json()["message_id"] == "1700000000.000100"
        assert fake_slack.sent == [("xoxp-valid", "C1", "hi")]

    async def test_send_rejected_by_slack(
        self, client: httpx.AsyncClient, fake_slack, authorized
    ):
        fake_slack.send_result = SendResult(ok=False, error="channel_not_found")

        response = await client.post(
            "/api/messages/send",
            json={"team_id": "T1", "user_id": "U1", "channel_id": "C1", "message": "hi"},
        )

        assert response.status_code == 502

    async def test_send_missing_fields(self, client: httpx.AsyncClient):
        response = await client.post("/api/messages/send", json={"team_id": "T1"})

        assert response.status_code == 400
        assert "channel_id" in response.json()["error"]

    async def test_schedule_list_cancel(self, client: httpx.AsyncClient, runtime: Runtime):
        at = (datetime.now(UTC) + timedelta(hours=1)).isoformat()
        response = await client.post(
            "/api/messages/schedule",
            json={
                "team_id": "T1",
                "user_id": "U1",
                "channel_id": "C1",
                "channel_name": "general",
                "message": "later",
                "scheduled_time": at,
            },
        )
        assert response.status_code == 200
        delivery_id = response.json()["id"]

        listed = await client.get(
            "/api/messages/scheduled", params={"team_id": "T1", "user_id": "U1"}
        )
        messages = listed.json()["messages"]
        assert [m["id"] for m in messages] == [delivery_id]
        assert messages[0]["status"] == "pending"
        assert messages[0]["channel_name"] == "general"

        cancelled = await client.delete(
            f"/api/messages/scheduled/{delivery_id}",
            params={"team_id": "T1", "user_id": "U1"},
        )
        assert cancelled.json() == {"success": True}

        again = await client.delete(
            f"/api/messages/scheduled/{delivery_id}",
            params={"team_id": "T1", "user_id": "U1"},
        )
        assert again.status_code == 404

        stored = await runtime.deliveries.get(delivery_id)
        assert stored.status is DeliveryStatus.CANCELLED

    async def test_schedule_in_past_rejected(
        self, client: httpx.AsyncClient, runtime: Runtime
    ):
        at = (datetime.now(UTC) - timedelta(seconds=10)).isoformat()
        response = await client.post(
            "/api/messages/schedule",
            json={
                "team_id": "T1",
                "user_id": "U1",
                "channel_id": "C1",
                "message": "too late",
                "scheduled_time": at,
            },
        )

        assert response.status_code == 400
        assert response.json()["success"] is False
        assert await runtime.deliveries.list_for_owner("T1", "U1") == []

    async def test_cancel_other_users_delivery(
        self, client: httpx.AsyncClient, runtime: Runtime
    ):
        at = datetime.now(UTC) + timedelta(hours=1)
        delivery_id = await runtime.service.schedule_delivery(
            "T1", "U1", "C1", None, "mine", at
        )

        response = await client.delete(
            f"/api/messages/scheduled/{delivery_id}",
            params={"team_id": "T1", "user_id": "U2"},
        )

        assert response.status_code == 404


class TestErrorMapping:
    def test_storage_error_is_unavailable(self):
        assert status_for(StorageError("locked")) == 503

    def test_unknown_error_is_internal(self):
        assert status_for(RuntimeError("x")) == 500


class TestLifespan:
    async def test_lifespan_starts_and_stops_runtime(self, relay_config, fake_slack):
        relay_config.scheduler.enabled = True
        relay_config.scheduler.poll_interval = 0.01
        runtime = create_runtime(relay_config, slack=fake_slack)
        app = create_app(runtime)

        async with app.router.lifespan_context(app):
            assert runtime.database.is_connected
            assert runtime.watcher.is_running

        assert not runtime.watcher.is_running
        assert not runtime.database.is_connected

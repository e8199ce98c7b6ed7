from __future__ import annotations

import signal
from types import SimpleNamespace
from typing import Any, cast

import pytest

from relay.server.runner import ServerRunner


class _FakeServer:
    def __init__(self, calls: list[str]) -> None:
        self.should_exit = False
        self._calls = calls

    async def serve(self) -> None:
        self._calls.append("serve")


class _FakeLoop:
    def __init__(self, calls: list[str]) -> None:
        self._calls = calls
        self.handlers: dict[int, Any] = {}

    def add_signal_handler(self, sig, handler) -> None:
        self._calls.append("signal")
        self.handlers[sig] = handler


@pytest.mark.asyncio
async def test_server_runner_serves_with_signal_handlers(monkeypatch) -> None:
    calls: list[str] = []
    loop = _FakeLoop(calls)
    configs: list[dict[str, Any]] = []

    def fake_config(app, **kwargs):
        configs.append(kwargs)
        return object()

    monkeypatch.setattr("relay.server.runner.uvicorn.Config", fake_config)
    monkeypatch.setattr(
        "relay.server.runner.uvicorn.Server", lambda _cfg: _FakeServer(calls)
    )
    monkeypatch.setattr("relay.server.runner.asyncio.get_running_loop", lambda: loop)

    app = cast(Any, SimpleNamespace(state=SimpleNamespace()))
    runner = ServerRunner(app, host="127.0.0.1", port=8080)
    await runner.run()

    assert calls.count("signal") == 2
    assert set(loop.handlers) == {signal.SIGTERM, signal.SIGINT}
    assert "serve" in calls
    assert configs[0]["host"] == "127.0.0.1"
    assert configs[0]["port"] == 8080
    assert configs[0]["log_config"] is None


@pytest.mark.asyncio
async def test_first_signal_requests_graceful_exit(monkeypatch) -> None:
    calls: list[str] = []
    loop = _FakeLoop(calls)
    server = _FakeServer(calls)
    exits: list[int] = []

    monkeypatch.setattr("relay.server.runner.uvicorn.Config", lambda *a, **kw: object())
    monkeypatch.setattr("relay.server.runner.uvicorn.Server", lambda _cfg: server)
    monkeypatch.setattr("relay.server.runner.asyncio.get_running_loop", lambda: loop)
    monkeypatch.setattr("relay.server.runner.os._exit", exits.append)

    app = cast(Any, SimpleNamespace(state=SimpleNamespace()))
    await ServerRunner(app, host="127.0.0.1", port=8080).run()

    handler = loop.handlers[signal.SIGTERM]
    handler()
    assert server.should_exit is True
    assert exits == []

    handler()
    assert exits == [1]

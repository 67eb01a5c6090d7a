"""Tests for the health gate."""

import asyncio
import logging

import pytest
from aioresponses import CallbackResult
from aioresponses import aioresponses as aioresponses_cls
from yarl import URL

from e2e_runner.clients import ServiceClients
from e2e_runner.health import HealthGate, HealthGateTimeoutError, build_targets

API_HEALTH = "http://api.test/health"
CONFIG_HEALTH = "http://config.test/health"


def make_gate(clients: ServiceClients, timeout: float = 5) -> HealthGate:
    """Create a fast-polling gate over both services."""
    return HealthGate(
        targets=build_targets(clients), timeout=timeout, poll_interval=0.01
    )


async def test_unblocks_once_all_targets_are_ready(
    clients: ServiceClients,
    aioresponses: aioresponses_cls,
    stop: asyncio.Event,
    caplog: pytest.LogCaptureFixture,
) -> None:
    """Three 503s followed by 200 unblock on the fourth round."""
    for _ in range(3):
        aioresponses.get(API_HEALTH, status=503)
    aioresponses.get(API_HEALTH, status=200)
    aioresponses.get(CONFIG_HEALTH, status=200, repeat=True)

    with caplog.at_level(logging.INFO):
        ready = await make_gate(clients).wait(stop)

    assert ready is True
    assert len(aioresponses.requests[("GET", URL(API_HEALTH))]) == 4
    assert "✅ api is ready" in caplog.text
    assert "✅ config is ready" in caplog.text
    assert "All services are healthy" in caplog.text


async def test_requires_all_targets_ready_in_same_round(
    clients: ServiceClients, aioresponses: aioresponses_cls, stop: asyncio.Event
) -> None:
    """Targets that are ready in different rounds do not open the gate."""
    for status in (200, 503, 200):
        aioresponses.get(API_HEALTH, status=status)
    for status in (503, 200, 200):
        aioresponses.get(CONFIG_HEALTH, status=status)

    ready = await make_gate(clients).wait(stop)

    assert ready is True
    assert len(aioresponses.requests[("GET", URL(API_HEALTH))]) == 3
    assert len(aioresponses.requests[("GET", URL(CONFIG_HEALTH))]) == 3


async def test_times_out_when_never_ready(
    clients: ServiceClients, aioresponses: aioresponses_cls, stop: asyncio.Event
) -> None:
    """Targets that never return 2xx raise a timeout naming them."""
    aioresponses.get(API_HEALTH, status=503, repeat=True)
    aioresponses.get(CONFIG_HEALTH, status=200, repeat=True)

    with pytest.raises(HealthGateTimeoutError) as exc_info:
        await make_gate(clients, timeout=0.05).wait(stop)

    assert "api" in str(exc_info.value)
    assert "config" not in str(exc_info.value)


async def test_returns_false_when_stopped(
    clients: ServiceClients, aioresponses: aioresponses_cls, stop: asyncio.Event
) -> None:
    """The stop signal ends the wait without raising."""
    aioresponses.get(API_HEALTH, status=503, repeat=True)
    aioresponses.get(CONFIG_HEALTH, status=503, repeat=True)
    asyncio.get_running_loop().call_later(0.05, stop.set)

    ready = await make_gate(clients, timeout=30).wait(stop)

    assert ready is False


async def test_stop_aborts_hanging_health_checks(
    clients: ServiceClients, aioresponses: aioresponses_cls, stop: asyncio.Event
) -> None:
    """A stop request cancels health checks in flight instead of waiting them out."""

    async def hang(url: URL, **kwargs: object) -> CallbackResult:
        await asyncio.sleep(30)
        return CallbackResult(status=200)

    aioresponses.get(API_HEALTH, callback=hang, repeat=True)
    aioresponses.get(CONFIG_HEALTH, status=200, repeat=True)
    loop = asyncio.get_running_loop()
    loop.call_later(0.05, stop.set)
    started = loop.time()

    ready = await asyncio.wait_for(make_gate(clients, timeout=60).wait(stop), 5)

    assert ready is False
    assert loop.time() - started < 1

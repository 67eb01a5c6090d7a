"""Tests for health targets and probes."""

import aiohttp
from aioresponses import aioresponses as aioresponses_cls

from e2e_runner.clients import ServiceClients
from e2e_runner.health import build_targets, probe, probe_all

API_HEALTH = "http://api.test/health"
CONFIG_HEALTH = "http://config.test/health"


def test_build_targets_for_all_services(clients: ServiceClients) -> None:
    """One target per configured service, probing /health."""
    targets = build_targets(clients)

    assert [t.name for t in targets] == ["api", "config"]
    assert [t.url for t in targets] == [API_HEALTH, CONFIG_HEALTH]


def test_build_targets_for_selected_services(clients: ServiceClients) -> None:
    """Only the named services become targets."""
    targets = build_targets(clients, ["config"])

    assert [t.name for t in targets] == ["config"]


async def test_2xx_is_ready(
    clients: ServiceClients, aioresponses: aioresponses_cls
) -> None:
    """A 2xx response means the service is ready."""
    aioresponses.get(API_HEALTH, status=204)
    (target, _) = build_targets(clients)

    result = await probe(target)

    assert result.ready is True
    assert result.status == 204
    assert result.error is None


async def test_non_2xx_is_not_ready(
    clients: ServiceClients, aioresponses: aioresponses_cls
) -> None:
    """Any other status means not ready."""
    aioresponses.get(API_HEALTH, status=503)
    (target, _) = build_targets(clients)

    result = await probe(target)

    assert result.ready is False
    assert result.status == 503


async def test_network_error_is_not_ready(
    clients: ServiceClients, aioresponses: aioresponses_cls
) -> None:
    """Connection failures are reported, not raised."""
    aioresponses.get(API_HEALTH, exception=aiohttp.ClientConnectionError("refused"))
    (target, _) = build_targets(clients)

    result = await probe(target)

    assert result.ready is False
    assert result.status is None
    assert isinstance(result.error, aiohttp.ClientConnectionError)


async def test_timeout_is_not_ready(
    clients: ServiceClients, aioresponses: aioresponses_cls
) -> None:
    """Timeouts are reported as not ready."""
    aioresponses.get(API_HEALTH, exception=TimeoutError())
    (target, _) = build_targets(clients)

    result = await probe(target)

    assert result.ready is False
    assert isinstance(result.error, TimeoutError)


async def test_probe_all_probes_every_target(
    clients: ServiceClients, aioresponses: aioresponses_cls
) -> None:
    """Every target is probed once per round."""
    aioresponses.get(API_HEALTH, status=200)
    aioresponses.get(CONFIG_HEALTH, status=500)

    results = await probe_all(build_targets(clients))

    assert [(r.target, r.ready) for r in results] == [
        ("api", True),
        ("config", False),
    ]

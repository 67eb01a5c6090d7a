"""Health check targets and the single-probe primitive."""

import asyncio
import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, field

import aiohttp

from e2e_runner.clients import ServiceClients

log = logging.getLogger(__name__)

HEALTH_PATH = "/health"
DEFAULT_PROBE_TIMEOUT = 10.0


@dataclass(frozen=True, kw_only=True)
class HealthCheckTarget:
    """A named dependent service and the endpoint probed for readiness."""

    name: str
    session: aiohttp.ClientSession = field(repr=False)
    base_url: str = ""
    path: str = HEALTH_PATH

    @property
    def url(self) -> str:
        """Absolute URL of the probed endpoint."""
        return f"{self.base_url.rstrip('/')}{self.path}"


@dataclass(frozen=True, kw_only=True)
class ProbeResult:
    """Outcome of one health probe."""

    target: str
    ready: bool
    duration: float
    status: int | None = None
    error: BaseException | None = None


async def probe(
    target: HealthCheckTarget, timeout: float = DEFAULT_PROBE_TIMEOUT
) -> ProbeResult:
    """Probe ``target`` once; any 2xx status is ready, anything else is not.

    Network errors and timeouts are reported as not ready instead of raised.
    """
    start = time.perf_counter()
    try:
        async with target.session.get(
            target.path, timeout=aiohttp.ClientTimeout(total=timeout)
        ) as response:
            status = response.status
    except (aiohttp.ClientError, TimeoutError, OSError) as e:
        log.debug("Probe of %s failed: %r", target.name, e)
        return ProbeResult(
            target=target.name,
            ready=False,
            duration=time.perf_counter() - start,
            error=e,
        )

    return ProbeResult(
        target=target.name,
        ready=200 <= status < 300,
        duration=time.perf_counter() - start,
        status=status,
    )


def build_targets(
    clients: ServiceClients, names: Sequence[str] | None = None
) -> list[HealthCheckTarget]:
    """Create one health target per named service, all services by default."""
    selected = names if names is not None else list(clients)
    return [
        HealthCheckTarget(
            name=name, session=clients[name], base_url=clients.base_url(name)
        )
        for name in selected
    ]


async def probe_all(
    targets: Sequence[HealthCheckTarget], timeout: float = DEFAULT_PROBE_TIMEOUT
) -> list[ProbeResult]:
    """Probe every target concurrently."""
    return list(await asyncio.gather(*(probe(t, timeout) for t in targets)))

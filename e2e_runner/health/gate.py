"""One-time readiness gate blocking the first run until services are healthy."""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from e2e_runner.cancellation import wait_for_stop
from e2e_runner.health.targets import (
    DEFAULT_PROBE_TIMEOUT,
    HealthCheckTarget,
    ProbeResult,
    probe_all,
)

log = logging.getLogger(__name__)


class HealthGateTimeoutError(TimeoutError):
    """Raised when services do not become healthy before the deadline."""


@dataclass(frozen=True, kw_only=True)
class HealthGate:
    """Polls every target until all of them report ready in the same round."""

    targets: Sequence[HealthCheckTarget]
    timeout: float = 120
    poll_interval: float = 2
    probe_timeout: float = DEFAULT_PROBE_TIMEOUT

    async def wait(self, stop: asyncio.Event) -> bool:
        """Block until all targets are ready.

        Args:
            stop: Shared stop signal

        Returns:
            True once every target is ready, False if the stop signal fired

        Raises:
            HealthGateTimeoutError: If the targets are not ready within timeout

        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.timeout
        ready: set[str] = set()

        log.info("⏳ Waiting for services to be healthy...")

        while not stop.is_set():
            results = await self._check_round(stop)
            if results is None:
                break

            for result in results:
                if result.ready and result.target not in ready:
                    log.info("✅ %s is ready", result.target)
                    ready.add(result.target)
                elif not result.ready:
                    log.debug(
                        "%s not ready yet (status=%s, error=%r)",
                        result.target,
                        result.status,
                        result.error,
                    )

            if all(result.ready for result in results):
                log.info("✅ All services are healthy!")
                return True

            remaining = deadline - loop.time()
            if remaining <= 0:
                not_ready = sorted(r.target for r in results if not r.ready)
                log.error(
                    "❌ Services did not become healthy within %.0fs: %s",
                    self.timeout,
                    ", ".join(not_ready),
                )
                raise HealthGateTimeoutError(
                    f"Services not healthy within {self.timeout} seconds: "
                    f"{', '.join(not_ready)}"
                )

            log.debug(
                "Services not ready yet, retrying in %.1fs...", self.poll_interval
            )
            await wait_for_stop(stop, min(self.poll_interval, remaining))

        return False

    async def _check_round(self, stop: asyncio.Event) -> list[ProbeResult] | None:
        """Check every target once, abandoning the round if the stop signal fires."""
        round_task = asyncio.ensure_future(probe_all(self.targets, self.probe_timeout))
        stopped = asyncio.ensure_future(stop.wait())
        try:
            await asyncio.wait(
                {round_task, stopped}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            stopped.cancel()
            if not round_task.done():
                round_task.cancel()
                await asyncio.wait({round_task})

        if round_task.cancelled():
            log.info("🛑 Health checks cancelled")
            return None
        return round_task.result()

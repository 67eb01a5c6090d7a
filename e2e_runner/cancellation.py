"""The shared stop signal and helpers waiting on it."""

import asyncio
import logging
import signal

log = logging.getLogger(__name__)

STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


async def wait_for_stop(stop: asyncio.Event, delay: float) -> bool:
    """Sleep for ``delay`` seconds unless ``stop`` is set first.

    Returns:
        True if the stop signal fired, False if the full delay elapsed

    """
    if stop.is_set():
        return True
    try:
        await asyncio.wait_for(stop.wait(), timeout=delay)
    except TimeoutError:
        return False
    return True


def install_signal_handlers(stop: asyncio.Event) -> None:
    """Set ``stop`` when the process receives SIGINT or SIGTERM."""
    loop = asyncio.get_running_loop()

    def request_stop(sig: signal.Signals) -> None:
        log.info("🛑 Received %s, stopping...", sig.name)
        stop.set()

    for sig in STOP_SIGNALS:
        try:
            loop.add_signal_handler(sig, request_stop, sig)
        except NotImplementedError:  # pragma: no cover
            log.warning("Signal handlers are not supported on this platform")
            return

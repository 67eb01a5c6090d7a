"""HTTP sessions for the dependent services, shared for the process lifetime."""

import logging
from collections.abc import AsyncGenerator, Iterator, Mapping
from contextlib import AsyncExitStack, asynccontextmanager
from dataclasses import dataclass, field

import aiohttp
from opentelemetry.instrumentation.aiohttp_client import create_trace_config
from opentelemetry.trace import TracerProvider

from e2e_runner.config import ServiceEndpoint

log = logging.getLogger(__name__)

DEFAULT_HEADERS = {"Accept": "application/json"}


class UnknownServiceError(KeyError):
    """Raised when a session is requested for a service that is not configured."""


@dataclass(frozen=True, kw_only=True)
class ServiceClients:
    """One ``aiohttp.ClientSession`` per configured service, keyed by name."""

    endpoints: Mapping[str, ServiceEndpoint]
    sessions: Mapping[str, aiohttp.ClientSession] = field(repr=False)

    @classmethod
    @asynccontextmanager
    async def from_config(
        cls,
        endpoints: Mapping[str, ServiceEndpoint],
        tracer_provider: TracerProvider | None = None,
    ) -> AsyncGenerator["ServiceClients", None]:
        """Open a session per endpoint and close them all on exit.

        Every request becomes a client span of the current span and carries
        the W3C trace context and baggage headers to the service.
        """
        async with AsyncExitStack() as stack:
            sessions: dict[str, aiohttp.ClientSession] = {}
            for name, endpoint in endpoints.items():
                sessions[name] = await stack.enter_async_context(
                    aiohttp.ClientSession(
                        base_url=endpoint.base_url,
                        headers=DEFAULT_HEADERS,
                        timeout=aiohttp.ClientTimeout(total=endpoint.timeout),
                        trace_configs=[
                            create_trace_config(tracer_provider=tracer_provider)
                        ],
                    )
                )
                log.info("🔧 %s: %s", name, endpoint.base_url)
            yield cls(endpoints=endpoints, sessions=sessions)

    def __getitem__(self, name: str) -> aiohttp.ClientSession:
        try:
            return self.sessions[name]
        except KeyError:
            raise UnknownServiceError(
                f"Service '{name}' is not configured. "
                f"Configured services: {sorted(self.sessions)}"
            ) from None

    def __iter__(self) -> Iterator[str]:
        return iter(self.sessions)

    def base_url(self, name: str) -> str:
        """Base URL configured for service ``name``."""
        return self.endpoints[name].base_url

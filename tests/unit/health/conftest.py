"""Fixtures for health tests."""

from collections.abc import AsyncGenerator

import pytest
from aioresponses import aioresponses as aioresponses_cls

from e2e_runner.clients import ServiceClients
from e2e_runner.config import ServiceEndpoint

API_URL = "http://api.test"
CONFIG_URL = "http://config.test"


@pytest.fixture
async def clients(
    aioresponses: aioresponses_cls,
) -> AsyncGenerator[ServiceClients, None]:
    """Open sessions for two mocked services."""
    endpoints = {
        "api": ServiceEndpoint(base_url=API_URL),
        "config": ServiceEndpoint(base_url=CONFIG_URL),
    }
    async with ServiceClients.from_config(endpoints) as impl:
        yield impl

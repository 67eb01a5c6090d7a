"""Fixtures for bundled suite tests."""

import logging
from collections.abc import AsyncGenerator

import pytest
from aioresponses import aioresponses as aioresponses_cls

from e2e_runner.clients import ServiceClients
from e2e_runner.config import API_SERVICE, CONFIG_SERVICE, ServiceEndpoint

API_URL = "http://api.test"
CONFIG_URL = "http://config.test"


@pytest.fixture
async def clients(
    aioresponses: aioresponses_cls,
) -> AsyncGenerator[ServiceClients, None]:
    """Open sessions for the mocked API and configuration services."""
    endpoints = {
        API_SERVICE: ServiceEndpoint(base_url=API_URL),
        CONFIG_SERVICE: ServiceEndpoint(base_url=CONFIG_URL),
    }
    async with ServiceClients.from_config(endpoints) as impl:
        yield impl


@pytest.fixture
def suite_logger() -> logging.Logger:
    """Logger handed to suite instances."""
    return logging.getLogger("tests.suites")

"""Tests for the bundled MedicineTrack suites against mocked services."""

import inspect
import logging
import uuid

import pytest
from aioresponses import aioresponses as aioresponses_cls
from yarl import URL

from e2e_runner.clients import ServiceClients
from e2e_runner.discovery import discover_test_cases
from e2e_runner.suites import configuration_api, expect, medication_api
from e2e_runner.suites.bootstrap import SystemUserSuite
from e2e_runner.suites.configuration_api import ConfigurationApiTests
from e2e_runner.suites.expect import ExpectationError
from e2e_runner.suites.medication_api import MedicationApiTests

API_URL = "http://api.test"
CONFIG_URL = "http://config.test"
ORG_ID = uuid.UUID("2b1e0f4c-8a55-4b65-9d8c-5c0e6a1f0a01")
USER_ID = uuid.UUID("7d4f3a2e-1c9b-4e0a-8f6d-3b2a1c0d9e02")


def with_system_user[S: SystemUserSuite](suite: S) -> S:
    """Pretend the system user fixture has already been initialized."""
    suite.system_user.organization_id = ORG_ID
    suite.system_user.user_id = USER_ID
    return suite


def test_catalog_names() -> None:
    """Theories expand into one case per data row."""
    cases = discover_test_cases([configuration_api, medication_api], [])
    names = [case.display_name for case in cases]

    assert names[0] == "ConfigurationApiTests.health_check_returns_ok"
    assert (
        "ConfigurationApiTests.get_organizations_with_search_returns_list(healthcare)"
        in names
    )
    assert (
        "MedicationApiTests.get_medication_logs_with_status_returns_list(SKIPPED)"
        in names
    )
    assert not any(case.skipped for case in cases)
    assert {case.fixture_cls for case in cases} == {
        ConfigurationApiTests,
        MedicationApiTests,
    }


async def test_configuration_health_check(
    clients: ServiceClients,
    aioresponses: aioresponses_cls,
    suite_logger: logging.Logger,
) -> None:
    """The configuration health check expects the service's health text."""
    aioresponses.get(f"{CONFIG_URL}/health", body="Configuration API is healthy")

    await ConfigurationApiTests(clients, suite_logger).health_check_returns_ok()


async def test_configuration_health_check_wrong_body(
    clients: ServiceClients,
    aioresponses: aioresponses_cls,
    suite_logger: logging.Logger,
) -> None:
    """An unexpected health body fails the test."""
    aioresponses.get(f"{CONFIG_URL}/health", body="degraded")

    with pytest.raises(ExpectationError, match="Configuration API is healthy"):
        await ConfigurationApiTests(clients, suite_logger).health_check_returns_ok()


async def test_users_with_role_sends_query(
    clients: ServiceClients,
    aioresponses: aioresponses_cls,
    suite_logger: logging.Logger,
) -> None:
    """Theory arguments are passed as query parameters."""
    url = f"{CONFIG_URL}/organizations/{ORG_ID}/users?role=ADMIN"
    aioresponses.get(url, body="[]")
    suite = with_system_user(ConfigurationApiTests(clients, suite_logger))

    await suite.get_users_with_role_returns_list("ADMIN")

    assert ("GET", URL(url)) in aioresponses.requests


async def test_temporary_user_is_cleaned_up(
    clients: ServiceClients,
    aioresponses: aioresponses_cls,
    suite_logger: logging.Logger,
) -> None:
    """The temporary user is deleted after a successful creation."""
    temp_id = uuid.uuid4()
    users_url = f"{CONFIG_URL}/organizations/{ORG_ID}/users"
    aioresponses.post(
        users_url,
        status=201,
        payload={"id": str(temp_id), "email": "temp@medicinetrack.test", "name": "T"},
    )
    aioresponses.delete(f"{users_url}/{temp_id}", status=204)
    suite = with_system_user(ConfigurationApiTests(clients, suite_logger))

    await suite.create_temporary_user_returns_created()

    assert ("DELETE", URL(f"{users_url}/{temp_id}")) in aioresponses.requests


async def test_create_medication_requires_created_status(
    clients: ServiceClients,
    aioresponses: aioresponses_cls,
    suite_logger: logging.Logger,
) -> None:
    """A 200 where a 201 is expected fails the test."""
    aioresponses.post(
        f"{API_URL}/users/{USER_ID}/medications", status=200, payload={"id": "x"}
    )
    suite = with_system_user(MedicationApiTests(clients, suite_logger))

    with pytest.raises(ExpectationError, match="Expected HTTP 201"):
        await suite.create_medication_returns_created()


async def test_invalid_medication_is_rejected(
    clients: ServiceClients,
    aioresponses: aioresponses_cls,
    suite_logger: logging.Logger,
) -> None:
    """Validation tests pass when the API answers 400."""
    url = f"{API_URL}/users/{USER_ID}/medications"
    aioresponses.post(url, status=400, payload={"errors": ["Strength"]})
    suite = with_system_user(MedicationApiTests(clients, suite_logger))

    await suite.create_medication_with_invalid_strength_is_rejected()

    (request,) = aioresponses.requests[("POST", URL(url))]
    assert request.kwargs["json"]["Strength"] == "invalid"


async def test_accepted_invalid_medication_fails(
    clients: ServiceClients,
    aioresponses: aioresponses_cls,
    suite_logger: logging.Logger,
) -> None:
    """Accepting an invalid medication fails the validation test."""
    aioresponses.post(f"{API_URL}/users/{USER_ID}/medications", status=201)
    suite = with_system_user(MedicationApiTests(clients, suite_logger))

    with pytest.raises(ExpectationError, match="Expected HTTP 400"):
        await suite.create_medication_with_no_schedules_is_rejected()


async def test_medication_list_must_be_array(
    clients: ServiceClients,
    aioresponses: aioresponses_cls,
    suite_logger: logging.Logger,
) -> None:
    """A JSON object where a list is expected fails the test."""
    aioresponses.get(f"{API_URL}/users/{USER_ID}/medications", payload={"items": []})
    suite = with_system_user(MedicationApiTests(clients, suite_logger))

    with pytest.raises(ExpectationError, match="JSON array"):
        await suite.get_medications_returns_list()


@pytest.mark.parametrize(
    "member",
    [
        expect.expect_status,
        expect.expect_contains,
        SystemUserSuite.initialize,
        SystemUserSuite.dispose,
        ConfigurationApiTests.organization_path,
        MedicationApiTests.user_path,
    ],
    ids=[
        "expect_status",
        "expect_contains",
        "initialize",
        "dispose",
        "organization_path",
        "user_path",
    ],
)
def test_suite_helpers_are_documented(member: object) -> None:
    """Shared helpers and lifecycle hooks carry a docstring."""
    assert inspect.getdoc(member)

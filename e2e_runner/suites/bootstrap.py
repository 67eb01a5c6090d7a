"""Disposable organization and system user shared by the bundled suites."""

import logging
import uuid
from collections.abc import Mapping
from datetime import datetime
from typing import Any

import aiohttp
from pydantic import model_validator

from e2e_runner.clients import ServiceClients
from e2e_runner.config import CONFIG_SERVICE
from e2e_runner.models.base import Model

SYSTEM_USER_EMAIL = "system@medicinetrack.test"
SYSTEM_USER_NAME = "System Test User"


class ApiResponse(Model):
    """Response body whose keys match field names regardless of case."""

    @model_validator(mode="before")
    @classmethod
    def _match_field_names(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        fields = {name.replace("_", ""): name for name in cls.model_fields}
        return {
            fields.get(key.replace("_", "").lower(), key): value
            for key, value in data.items()
        }


class OrganizationResponse(ApiResponse):
    """Organization as returned by the configuration service."""

    id: uuid.UUID
    name: str
    description: str | None = None
    contact_email: str | None = None
    address: str | None = None
    phone_number: str | None = None
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None


class UserResponse(ApiResponse):
    """User as returned by the configuration service."""

    id: uuid.UUID
    organization_id: uuid.UUID | None = None
    email: str
    name: str
    role: str = "USER"
    phone_number: str | None = None
    timezone: str = "UTC"
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None


class SystemUserFixture:
    """Creates a test organization and user, and deletes them afterwards."""

    def __init__(self, clients: ServiceClients, logger: logging.Logger) -> None:
        self._config = clients[CONFIG_SERVICE]
        self._log = logger
        self.organization_id: uuid.UUID | None = None
        self.user_id: uuid.UUID | None = None
        self.user_email = SYSTEM_USER_EMAIL
        self.user_name = SYSTEM_USER_NAME

    async def initialize(self) -> None:
        """Create the organization, then the system user inside it."""
        self._log.info("Initializing system user fixture...")
        try:
            organization = await self._create_organization()
            self.organization_id = organization.id
            self._log.info("Created test organization with ID: %s", organization.id)

            user = await self._create_user(organization.id)
            self.user_id = user.id
            self._log.info("Created system user with ID: %s", user.id)
        except Exception:
            self._log.exception("Failed to initialize system user fixture")
            raise

        self._log.info(
            "System user initialized - OrgId: %s, UserId: %s",
            self.organization_id,
            self.user_id,
        )

    async def dispose(self) -> None:
        """Delete the user, then the organization; failures are only logged."""
        self._log.info("Cleaning up system user fixture...")
        if self.organization_id is None:
            return

        if self.user_id is not None:
            await delete_quietly(
                self._config,
                f"/organizations/{self.organization_id}/users/{self.user_id}",
                f"system user {self.user_id}",
                self._log,
            )
        await delete_quietly(
            self._config,
            f"/organizations/{self.organization_id}",
            f"organization {self.organization_id}",
            self._log,
        )

    async def _create_organization(self) -> OrganizationResponse:
        payload = {
            "Name": "Test Organization",
            "Description": "Organization for end-to-end testing",
            "ContactEmail": "admin@medicinetrack.test",
            "Address": "123 Test St, Test City, TC 12345",
            "PhoneNumber": "+1-555-TEST",
        }
        async with self._config.post("/organizations", json=payload) as response:
            response.raise_for_status()
            return OrganizationResponse.model_validate(await response.json())

    async def _create_user(self, organization_id: uuid.UUID) -> UserResponse:
        payload = {
            "Email": self.user_email,
            "Name": self.user_name,
            "Role": "USER",
            "PhoneNumber": "+1-555-SYSTEM",
            "Timezone": "UTC",
        }
        async with self._config.post(
            f"/organizations/{organization_id}/users", json=payload
        ) as response:
            response.raise_for_status()
            return UserResponse.model_validate(await response.json())


async def delete_quietly(
    session: aiohttp.ClientSession, path: str, what: str, logger: logging.Logger
) -> bool:
    """Delete a resource created by a test, logging instead of raising on failure."""
    try:
        async with session.delete(path) as response:
            if response.ok:
                logger.info("Deleted %s", what)
                return True
            logger.warning("Failed to delete %s: HTTP %d", what, response.status)
    except (aiohttp.ClientError, TimeoutError) as e:
        logger.warning("Failed to delete %s: %s", what, e)
    return False


class SystemUserSuite:
    """Base for suites that need the disposable organization and user."""

    def __init__(self, clients: ServiceClients, logger: logging.Logger) -> None:
        self.clients = clients
        self.log = logger
        self.system_user = SystemUserFixture(clients, logger)

    async def initialize(self) -> None:
        """Create the system user before each test."""
        await self.system_user.initialize()

    async def dispose(self) -> None:
        """Delete the system user after each test."""
        await self.system_user.dispose()

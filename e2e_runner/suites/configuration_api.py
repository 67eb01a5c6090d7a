"""End-to-end tests for the configuration service."""

import json
import logging

from e2e_runner.clients import ServiceClients
from e2e_runner.config import CONFIG_SERVICE
from e2e_runner.markers import fact, inline_data, theory
from e2e_runner.suites.bootstrap import (
    OrganizationResponse,
    SystemUserSuite,
    UserResponse,
    delete_quietly,
)
from e2e_runner.suites.expect import (
    expect_contains,
    expect_json_array,
    expect_json_object,
    expect_status,
    ok_text,
)


class ConfigurationApiTests(SystemUserSuite):
    """Organizations and users of the configuration service."""

    def __init__(self, clients: ServiceClients, logger: logging.Logger) -> None:
        super().__init__(clients, logger)
        self.config = clients[CONFIG_SERVICE]

    @property
    def organization_path(self) -> str:
        """Path of the system user's organization."""
        return f"/organizations/{self.system_user.organization_id}"

    @fact
    async def health_check_returns_ok(self) -> None:
        async with self.config.get("/health") as response:
            content = await ok_text(response)
        self.log.info("Health check response: %s", content)
        expect_contains(content, "Configuration API is healthy")

    @fact
    async def get_organizations_returns_list(self) -> None:
        async with self.config.get("/organizations") as response:
            content = await ok_text(response)
        self.log.info("Get organizations response: %s", content)
        expect_json_array(content)

    @theory
    @inline_data("healthcare")
    @inline_data("medical")
    async def get_organizations_with_search_returns_list(self, search: str) -> None:
        async with self.config.get(
            "/organizations", params={"search": search}
        ) as response:
            content = await ok_text(response)
        self.log.info("Get organizations with search %r response: %s", search, content)
        expect_json_array(content)

    @fact
    async def get_organization_returns_organization(self) -> None:
        async with self.config.get(self.organization_path) as response:
            content = await ok_text(response)
        self.log.info("Get organization response: %s", content)
        expect_json_object(content)

    @fact
    async def update_organization_returns_updated(self) -> None:
        payload = {
            "Name": "Updated Test Organization",
            "Description": "Updated description for testing",
            "IsActive": True,
        }
        async with self.config.put(self.organization_path, json=payload) as response:
            content = await ok_text(response)
        self.log.info("Updated organization response: %s", content)
        expect_json_object(content)

    @fact
    async def get_users_returns_list(self) -> None:
        async with self.config.get(f"{self.organization_path}/users") as response:
            content = await ok_text(response)
        self.log.info("Get users response: %s", content)
        expect_json_array(content)

    @theory
    @inline_data("USER")
    @inline_data("ADMIN")
    async def get_users_with_role_returns_list(self, role: str) -> None:
        async with self.config.get(
            f"{self.organization_path}/users", params={"role": role}
        ) as response:
            content = await ok_text(response)
        self.log.info("Get users with role %r response: %s", role, content)
        expect_json_array(content)

    @fact
    async def get_user_returns_user(self) -> None:
        path = f"{self.organization_path}/users/{self.system_user.user_id}"
        async with self.config.get(path) as response:
            content = await ok_text(response)
        self.log.info("Get user response: %s", content)
        expect_json_object(content)

    @fact
    async def update_user_returns_updated(self) -> None:
        path = f"{self.organization_path}/users/{self.system_user.user_id}"
        payload = {
            "Name": "Updated System User",
            "PhoneNumber": "+1-555-UPDATED",
            "Timezone": "America/New_York",
            "IsActive": True,
        }
        async with self.config.put(path, json=payload) as response:
            content = await ok_text(response)
        self.log.info("Updated user response: %s", content)
        expect_json_object(content)

    @fact
    async def create_temporary_user_returns_created(self) -> None:
        payload = {
            "Email": "temp@medicinetrack.test",
            "Name": "Temporary Test User",
            "Role": "USER",
            "PhoneNumber": "+1-555-TEMP",
            "Timezone": "UTC",
        }
        async with self.config.post(
            f"{self.organization_path}/users", json=payload
        ) as response:
            content = await ok_text(response)
            expect_status(response, 201)
        self.log.info("Created temporary user response: %s", content)

        user = UserResponse.model_validate(json.loads(content))
        await delete_quietly(
            self.config,
            f"{self.organization_path}/users/{user.id}",
            f"temporary user {user.id}",
            self.log,
        )

    @fact
    async def create_temporary_organization_returns_created(self) -> None:
        payload = {
            "Name": "Temporary Test Organization",
            "Description": "Organization for temporary testing",
            "ContactEmail": "temp@medicinetrack.test",
            "Address": "456 Temp St, Temp City, TC 67890",
            "PhoneNumber": "+1-555-TEMP",
        }
        async with self.config.post("/organizations", json=payload) as response:
            content = await ok_text(response)
            expect_status(response, 201)
        self.log.info("Created temporary organization response: %s", content)

        organization = OrganizationResponse.model_validate(json.loads(content))
        await delete_quietly(
            self.config,
            f"/organizations/{organization.id}",
            f"temporary organization {organization.id}",
            self.log,
        )

"""End-to-end tests for the medication API."""

import logging
import uuid
from datetime import UTC, date, datetime, timedelta
from typing import Any

from e2e_runner.clients import ServiceClients
from e2e_runner.config import API_SERVICE
from e2e_runner.markers import fact, inline_data, theory
from e2e_runner.suites.bootstrap import SystemUserSuite
from e2e_runner.suites.expect import (
    expect_contains,
    expect_json_array,
    expect_json_object,
    expect_status,
    ok_text,
)

DAILY_SCHEDULE = {
    "FrequencyType": "DAILY",
    "TimesOfDay": ["08:00"],
    "Quantity": 1.0,
    "Unit": "tablet",
}


def _medication(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "Name": "Test Medication",
        "Strength": "10 mg",
        "Form": "Tablet",
        "StartDate": date.today().isoformat(),
        "Schedules": [DAILY_SCHEDULE],
    }
    payload.update(overrides)
    return payload


class MedicationApiTests(SystemUserSuite):
    """Medications, intake logs and interaction checks of the medication API."""

    def __init__(self, clients: ServiceClients, logger: logging.Logger) -> None:
        super().__init__(clients, logger)
        self.api = clients[API_SERVICE]

    @property
    def user_path(self) -> str:
        """Path of the system user."""
        return f"/users/{self.system_user.user_id}"

    @fact
    async def health_check_returns_ok(self) -> None:
        async with self.api.get("/health") as response:
            content = await ok_text(response)
        self.log.info("Health check response: %s", content)
        expect_contains(content, "MedicineTrack API is OK")

    @fact
    async def create_medication_returns_created(self) -> None:
        payload = _medication(
            GenericName="TestGeneric",
            BrandName="TestBrand",
            Shape="Round",
            Color="White",
            Notes="Test medication for E2E testing",
            EndDate=None,
            Schedules=[
                {
                    "FrequencyType": "EVERY_X_DAYS",
                    "Interval": 1,
                    "DaysOfWeek": None,
                    "TimesOfDay": ["08:00"],
                    "Quantity": 1.0,
                    "Unit": "tablet",
                }
            ],
        )
        async with self.api.post(
            f"{self.user_path}/medications", json=payload
        ) as response:
            content = await ok_text(response)
            expect_status(response, 201)
        self.log.info("Created medication response: %s", content)

    @fact
    async def get_medications_returns_list(self) -> None:
        async with self.api.get(f"{self.user_path}/medications") as response:
            content = await ok_text(response)
        self.log.info("Get medications response: %s", content)
        expect_json_array(content)

    @theory
    @inline_data("active")
    @inline_data("archived")
    async def get_medications_with_status_returns_list(self, status: str) -> None:
        async with self.api.get(
            f"{self.user_path}/medications", params={"status": status}
        ) as response:
            content = await ok_text(response)
        self.log.info("Get medications with status %s response: %s", status, content)
        expect_json_array(content)

    @fact
    async def get_medication_returns_medication(self) -> None:
        path = f"{self.user_path}/medications/{uuid.uuid4()}"
        async with self.api.get(path) as response:
            content = await ok_text(response)
        self.log.info("Get medication response: %s", content)
        expect_json_object(content)

    @fact
    async def update_medication_returns_updated(self) -> None:
        path = f"{self.user_path}/medications/{uuid.uuid4()}"
        payload = {
            "Name": "Updated Medication",
            "Notes": "Updated notes",
            "IsArchived": False,
        }
        async with self.api.put(path, json=payload) as response:
            content = await ok_text(response)
        self.log.info("Updated medication response: %s", content)
        expect_json_object(content)

    @fact
    async def delete_medication_returns_no_content(self) -> None:
        path = f"{self.user_path}/medications/{uuid.uuid4()}"
        async with self.api.delete(path) as response:
            response.raise_for_status()
            expect_status(response, 204)
        self.log.info("Deleted medication, status: %d", response.status)

    @fact
    async def search_medication_database_returns_results(self) -> None:
        async with self.api.get(
            "/medication-database/search", params={"query": "Lisinopril"}
        ) as response:
            content = await ok_text(response)
        self.log.info("Search medication database response: %s", content)
        expect_json_array(content)

    @fact
    async def log_medication_returns_created(self) -> None:
        path = f"{self.user_path}/medications/{uuid.uuid4()}/logs"
        payload = {
            "ScheduleId": str(uuid.uuid4()),
            "TakenAt": datetime.now(UTC).isoformat(),
            "Status": "TAKEN",
            "QuantityTaken": 1.0,
            "Notes": "Taken with breakfast",
        }
        async with self.api.post(path, json=payload) as response:
            content = await ok_text(response)
            expect_status(response, 201)
        self.log.info("Log medication response: %s", content)

    @fact
    async def get_medication_logs_returns_list(self) -> None:
        async with self.api.get(f"{self.user_path}/medication-logs") as response:
            content = await ok_text(response)
        self.log.info("Get medication logs response: %s", content)
        expect_json_array(content)

    @theory
    @inline_data("TAKEN")
    @inline_data("SKIPPED")
    async def get_medication_logs_with_status_returns_list(self, status: str) -> None:
        async with self.api.get(
            f"{self.user_path}/medication-logs", params={"status": status}
        ) as response:
            content = await ok_text(response)
        self.log.info(
            "Get medication logs with status %s response: %s", status, content
        )
        expect_json_array(content)

    @fact
    async def get_logs_for_medication_returns_list(self) -> None:
        medication_id = uuid.uuid4()
        path = f"{self.user_path}/medications/{medication_id}/logs"
        async with self.api.get(path) as response:
            content = await ok_text(response)
        self.log.info(
            "Get logs for medication %s response: %s", medication_id, content
        )
        expect_json_array(content)

    @fact
    async def update_medication_log_returns_updated(self) -> None:
        path = f"{self.user_path}/medication-logs/{uuid.uuid4()}"
        payload = {
            "TakenAt": datetime.now(UTC).isoformat(),
            "Status": "TAKEN",
            "QuantityTaken": 2.0,
            "Notes": "Updated log notes",
        }
        async with self.api.put(path, json=payload) as response:
            content = await ok_text(response)
        self.log.info("Updated medication log response: %s", content)
        expect_json_object(content)

    @fact
    async def delete_medication_log_returns_no_content(self) -> None:
        path = f"{self.user_path}/medication-logs/{uuid.uuid4()}"
        async with self.api.delete(path) as response:
            response.raise_for_status()
            expect_status(response, 204)
        self.log.info("Deleted medication log, status: %d", response.status)

    @fact
    async def check_interactions_returns_warnings(self) -> None:
        payload = {
            "MedicationIds": [str(uuid.uuid4()), str(uuid.uuid4())],
            "NewMedication": None,
            "ExistingMedicationIds": None,
        }
        async with self.api.post(
            f"{self.user_path}/medication-interactions/check", json=payload
        ) as response:
            content = await ok_text(response)
        self.log.info("Check medication interactions response: %s", content)
        expect_json_array(content)

    @fact
    async def check_interactions_with_new_medication_returns_warnings(self) -> None:
        payload = {
            "MedicationIds": None,
            "NewMedication": {
                "NdcCode": "12345-678-90",
                "Name": "New Test Medication",
                "GenericName": "TestGeneric",
                "BrandNames": ["TestBrand"],
                "AvailableForms": ["Tablet"],
                "AvailableStrengths": ["10mg"],
                "Manufacturer": "Test Pharma",
            },
            "ExistingMedicationIds": [str(uuid.uuid4())],
        }
        async with self.api.post(
            f"{self.user_path}/medication-interactions/check", json=payload
        ) as response:
            content = await ok_text(response)
        self.log.info("Check interactions with new medication response: %s", content)
        expect_json_array(content)

    # Validation failures

    @fact
    async def create_medication_with_invalid_strength_is_rejected(self) -> None:
        await self._expect_rejected(_medication(Strength="invalid"), "invalid strength")

    @fact
    async def create_medication_with_empty_name_is_rejected(self) -> None:
        await self._expect_rejected(_medication(Name=""), "empty name")

    @fact
    async def create_medication_with_no_schedules_is_rejected(self) -> None:
        await self._expect_rejected(_medication(Schedules=[]), "no schedules")

    @fact
    async def create_medication_ending_before_start_is_rejected(self) -> None:
        today = date.today()
        payload = _medication(
            StartDate=(today + timedelta(days=10)).isoformat(),
            EndDate=today.isoformat(),
        )
        await self._expect_rejected(payload, "end date before start date")

    @fact
    async def search_medication_database_with_empty_query_returns_array(self) -> None:
        async with self.api.get(
            "/medication-database/search", params={"query": ""}
        ) as response:
            content = await ok_text(response)
        self.log.info("Search with empty query response: %s", content)
        expect_json_array(content)

    async def _expect_rejected(self, payload: dict[str, Any], case: str) -> None:
        async with self.api.post(
            f"{self.user_path}/medications", json=payload
        ) as response:
            self.log.info(
                "Create medication with %s response: %d", case, response.status
            )
            expect_status(response, 400)

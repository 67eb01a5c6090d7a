"""Tests for suite module loading."""

from types import ModuleType
from unittest.mock import Mock, patch

import pytest

from e2e_runner.discovery import DiscoveryError, discover_test_cases
from e2e_runner.suites import configuration_api, medication_api
from e2e_runner.suites.loading import ENTRY_POINT_GROUP, load_suite_modules


def test_imports_named_modules() -> None:
    """Dotted module paths are imported directly."""
    modules = load_suite_modules(["e2e_runner.suites.configuration_api"])

    assert modules == [configuration_api]


def test_raises_for_missing_module() -> None:
    """An unimportable module raises DiscoveryError."""
    with pytest.raises(DiscoveryError) as exc_info:
        load_suite_modules(["e2e_runner.suites.does_not_exist"])

    assert "e2e_runner.suites.does_not_exist" in str(exc_info.value)


def test_loads_registered_entry_points() -> None:
    """Without names, every registered suite module is loaded."""
    entry = Mock()
    entry.load.return_value = medication_api

    with patch(
        "e2e_runner.suites.loading.entry_points", return_value=[entry]
    ) as entry_points:
        modules = load_suite_modules()

    entry_points.assert_called_once_with(group=ENTRY_POINT_GROUP)
    assert modules == [medication_api]


def test_entry_point_failure_raises_discovery_error() -> None:
    """A failing entry point is reported as a discovery error."""
    entry = Mock()
    entry.name = "broken"
    entry.value = "broken.module"
    entry.load.side_effect = ImportError("No module named 'broken'")

    with (
        patch("e2e_runner.suites.loading.entry_points", return_value=[entry]),
        pytest.raises(DiscoveryError) as exc_info,
    ):
        load_suite_modules()

    assert "broken" in str(exc_info.value)


def test_entry_point_must_reference_module() -> None:
    """Entry points pointing at anything but a module are rejected."""
    entry = Mock()
    entry.name = "not-a-module"
    entry.load.return_value = object()

    with (
        patch("e2e_runner.suites.loading.entry_points", return_value=[entry]),
        pytest.raises(DiscoveryError),
    ):
        load_suite_modules()


@pytest.mark.parametrize("module", [configuration_api, medication_api])
def test_bundled_suites_declare_tests(module: ModuleType) -> None:
    """Each bundled suite module contributes test cases."""
    cases = discover_test_cases([module])

    assert cases
    assert not any(case.skipped for case in cases)


def test_bundled_theories_expand() -> None:
    """Theories of the bundled suites expand into one case per tuple."""
    names = [c.display_name for c in discover_test_cases([configuration_api])]

    assert (
        "ConfigurationApiTests.get_organizations_with_search_returns_list(healthcare)"
        in names
    )
    assert "ConfigurationApiTests.get_users_with_role_returns_list(ADMIN)" in names

"""Loading of test suite modules from entry points or dotted paths."""

import importlib
from collections.abc import Sequence
from importlib.metadata import entry_points
from types import ModuleType

from e2e_runner.discovery import DiscoveryError

ENTRY_POINT_GROUP = "e2e_runner.suites"


def load_suite_modules(names: Sequence[str] | None = None) -> list[ModuleType]:
    """Load the modules holding end-to-end test fixtures.

    Args:
        names: Dotted module paths to import. When omitted, every module
               registered under the ``e2e_runner.suites`` entry point group
               in pyproject.toml is loaded.

    Returns:
        The loaded modules

    Raises:
        DiscoveryError: If any module fails to import

    """
    if names:
        return [_import(name) for name in names]

    modules: list[ModuleType] = []
    for entry in entry_points(group=ENTRY_POINT_GROUP):
        try:
            loaded = entry.load()
        except Exception as e:
            raise DiscoveryError(
                f"Failed to load suite '{entry.name}' ({entry.value}): {e}"
            ) from e
        if not isinstance(loaded, ModuleType):
            raise DiscoveryError(
                f"Suite '{entry.name}' must reference a module, got {type(loaded)!r}"
            )
        modules.append(loaded)
    return modules


def _import(name: str) -> ModuleType:
    try:
        return importlib.import_module(name)
    except Exception as e:
        raise DiscoveryError(f"Failed to load suite module '{name}': {e}") from e

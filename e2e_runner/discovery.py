"""Discovery of test cases from loaded suite modules."""

import inspect
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from types import ModuleType
from typing import Any

from e2e_runner.markers import TestMarker, get_marker

log = logging.getLogger(__name__)

NO_DATA_REASON = "no data"


class DiscoveryError(Exception):
    """Raised when a suite module cannot be loaded."""


@dataclass(frozen=True, kw_only=True)
class TestCase:
    """A discovered, independently executable test unit."""

    __test__ = False

    fixture_cls: type[Any]
    method_name: str
    display_name: str
    arguments: tuple[Any, ...] | None = None
    skip_reason: str | None = None

    @property
    def skipped(self) -> bool:
        """Whether the case is skipped without being executed."""
        return self.skip_reason is not None


def discover_test_cases(
    modules: Iterable[ModuleType], filters: Sequence[str] = ()
) -> list[TestCase]:
    """Build the catalog of test cases declared in ``modules``.

    Args:
        modules: Loaded suite modules to scan for fixture classes
        filters: Substrings selecting cases by display name (empty keeps all)

    Returns:
        Test cases in module, class and method declaration order

    """
    cases: list[TestCase] = []
    for module in modules:
        for fixture_cls in find_fixture_classes(module):
            for method_name, marker in find_test_methods(fixture_cls):
                cases.extend(expand_test_method(fixture_cls, method_name, marker))

    if filters:
        cases = [
            case for case in cases if any(f in case.display_name for f in filters)
        ]

    log.debug("Discovered %d test case(s)", len(cases))
    return cases


def find_fixture_classes(module: ModuleType) -> list[type[Any]]:
    """Return concrete classes defined in ``module`` that declare tests."""
    return [
        obj
        for obj in vars(module).values()
        if inspect.isclass(obj)
        and obj.__module__ == module.__name__
        and not inspect.isabstract(obj)
        and find_test_methods(obj)
    ]


def find_test_methods(fixture_cls: type[Any]) -> list[tuple[str, TestMarker]]:
    """Return marked methods of ``fixture_cls`` in source declaration order."""
    names: dict[str, None] = {}
    # Walk the MRO base-first so inherited tests come before the subclass's own.
    for klass in reversed(fixture_cls.__mro__):
        names.update((name, None) for name in vars(klass) if not name.startswith("_"))

    methods: list[tuple[str, TestMarker]] = []
    for name in names:
        marker = get_marker(inspect.getattr_static(fixture_cls, name))
        if marker is not None:
            methods.append((name, marker))
    return methods


def expand_test_method(
    fixture_cls: type[Any], method_name: str, marker: TestMarker
) -> list[TestCase]:
    """Expand one marked method into its test cases."""
    base_name = f"{fixture_cls.__name__}.{method_name}"

    if marker.kind == "fact":
        return [
            TestCase(
                fixture_cls=fixture_cls,
                method_name=method_name,
                display_name=base_name,
            )
        ]

    if not marker.data:
        return [
            TestCase(
                fixture_cls=fixture_cls,
                method_name=method_name,
                display_name=base_name,
                skip_reason=NO_DATA_REASON,
            )
        ]

    return [
        TestCase(
            fixture_cls=fixture_cls,
            method_name=method_name,
            display_name=f"{base_name}({format_arguments(args)})",
            arguments=args,
        )
        for args in marker.data
    ]


def format_arguments(args: Sequence[Any]) -> str:
    """Render bound arguments for a display name."""
    return ", ".join("null" if arg is None else str(arg) for arg in args)

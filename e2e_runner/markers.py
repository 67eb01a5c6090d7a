"""Decorators marking fixture methods as end-to-end tests.

``@fact`` marks a plain test. ``@theory`` marks a parameterized test whose
argument tuples are declared with one or more ``@inline_data(...)``
decorators, applied in reading order::

    class OrganizationTests:
        @fact
        async def health_returns_ok(self) -> None: ...

        @theory
        @inline_data("healthcare")
        @inline_data("medical")
        async def search_returns_list(self, term: str) -> None: ...
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, Literal

MARKER_ATTRIBUTE = "__e2e_test__"

type TestKind = Literal["fact", "theory"]


@dataclass(frozen=True, kw_only=True)
class TestMarker:
    """Marker attached to a decorated test method."""

    __test__ = False

    kind: TestKind
    data: Sequence[tuple[Any, ...]] = ()


def get_marker(obj: object) -> TestMarker | None:
    """Return the test marker of ``obj`` if it carries one."""
    marker = getattr(obj, MARKER_ATTRIBUTE, None)
    return marker if isinstance(marker, TestMarker) else None


def fact[F: Callable[..., Any]](func: F) -> F:
    """Mark ``func`` as a test without arguments."""
    setattr(func, MARKER_ATTRIBUTE, TestMarker(kind="fact"))
    return func


def theory[F: Callable[..., Any]](func: F) -> F:
    """Mark ``func`` as a parameterized test.

    Keeps any argument tuples already declared by inner ``inline_data``.
    """
    existing = get_marker(func)
    data = existing.data if existing else ()
    setattr(func, MARKER_ATTRIBUTE, TestMarker(kind="theory", data=data))
    return func


def inline_data(*args: Any) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Declare one literal argument tuple for a theory."""

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        existing = get_marker(func)
        kind: TestKind = existing.kind if existing else "theory"
        data = existing.data if existing else ()
        # Decorators apply bottom-up; prepend so tuples keep reading order.
        setattr(
            func,
            MARKER_ATTRIBUTE,
            TestMarker(kind=kind, data=(tuple(args), *data)),
        )
        return func

    return decorator

"""Construction of test fixture instances from shared services."""

import inspect
import logging
import typing
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

log = logging.getLogger(__name__)

type FixtureFactory = Callable[["FixtureResolver"], object]


class FixtureResolutionError(Exception):
    """Raised when a fixture cannot be constructed."""


@dataclass(frozen=True, kw_only=True)
class FixtureResolver:
    """Builds a fresh fixture instance for every test case.

    Fixture classes registered with an explicit factory are built by that
    factory. Any other class is constructed by matching the type annotation
    of each ``__init__`` parameter against the shared services. A parameter
    annotated ``logging.Logger`` receives a logger named after the fixture.
    """

    services: Mapping[type[Any], object] = field(default_factory=dict)
    factories: Mapping[type[Any], FixtureFactory] = field(default_factory=dict)

    def with_factory(
        self, fixture_cls: type[Any], factory: FixtureFactory
    ) -> "FixtureResolver":
        """Return a resolver that builds ``fixture_cls`` with ``factory``."""
        return FixtureResolver(
            services=self.services,
            factories={**self.factories, fixture_cls: factory},
        )

    def get[T](self, service_type: type[T]) -> T:
        """Return the shared service registered for ``service_type``."""
        for registered, service in self.services.items():
            if issubclass(registered, service_type):
                return typing.cast(T, service)
        raise FixtureResolutionError(
            f"No service registered for {service_type.__name__}"
        )

    def resolve(self, fixture_cls: type[Any]) -> object:
        """Construct an instance of ``fixture_cls``.

        Raises:
            FixtureResolutionError: If a constructor dependency is missing

        """
        if (factory := self.factories.get(fixture_cls)) is not None:
            return factory(self)

        try:
            hints = typing.get_type_hints(fixture_cls.__init__)
        except Exception as e:
            raise FixtureResolutionError(
                f"Cannot read constructor annotations of {fixture_cls.__name__}: {e}"
            ) from e

        kwargs: dict[str, object] = {}
        for name, param in inspect.signature(fixture_cls).parameters.items():
            if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
                continue
            annotation = hints.get(name)
            if annotation is logging.Logger:
                kwargs[name] = logging.getLogger(
                    f"{fixture_cls.__module__}.{fixture_cls.__name__}"
                )
            elif isinstance(annotation, type) and self._has(annotation):
                kwargs[name] = self.get(annotation)
            elif param.default is param.empty:
                raise FixtureResolutionError(
                    f"Cannot resolve parameter '{name}' of {fixture_cls.__name__}"
                )

        log.debug("Constructing %s", fixture_cls.__name__)
        return fixture_cls(**kwargs)

    def _has(self, service_type: type[Any]) -> bool:
        return any(issubclass(r, service_type) for r in self.services)

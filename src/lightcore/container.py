"""Service container — named bindings with transient or singleton resolution.

Usage::

    container = Container()
    container.bind("clock", time.monotonic)            # transient factory
    container.bind("greeting", "hello")                # plain value
    container.singleton(Connection, lambda: Connection(config))

    container.get(Connection) is container.get(Connection)  # True

Ids are any hashable value — typically a class or a string.

One container belongs to one application context. It is not designed
for concurrent mutation; singleton resolution takes no lock.
"""

from __future__ import annotations

from collections.abc import Callable, Hashable
from dataclasses import dataclass, field
from typing import Any

from lightcore.errors import BindingNotFound

_UNRESOLVED: Any = object()


def _as_factory(service: Any) -> Callable[[], Any]:
    """Wrap a plain value as a zero-argument factory."""
    if callable(service):
        return service
    return lambda: service


@dataclass(slots=True)
class ServiceBinding:
    """A registered id → factory association.

    Singleton bindings cache the first resolved instance, including
    falsy results like ``0`` or ``""`` — for the lifetime of the binding.
    """

    factory: Callable[[], Any]
    singleton: bool = False
    _instance: Any = field(default=_UNRESOLVED, repr=False, compare=False)

    @property
    def resolved(self) -> bool:
        """True once a singleton binding has produced its instance."""
        return self._instance is not _UNRESOLVED

    def resolve(self) -> Any:
        if not self.singleton:
            return self.factory()
        if self._instance is _UNRESOLVED:
            self._instance = self.factory()
        return self._instance


class Container:
    """Registers and resolves named services.

    ``bind()`` and ``singleton()`` return the container, so registrations
    can be chained. Re-binding an id replaces the previous binding
    (and discards any cached singleton instance).
    """

    __slots__ = ("_bindings",)

    def __init__(self) -> None:
        self._bindings: dict[Hashable, ServiceBinding] = {}

    def bind(self, service_id: Hashable, service: Any) -> Container:
        """Register a transient binding.

        Callables are invoked on every ``get()``; any other value is
        returned as-is.
        """
        self._bindings[service_id] = ServiceBinding(_as_factory(service))
        return self

    def singleton(self, service_id: Hashable, factory: Any) -> Container:
        """Register a binding whose first resolution is cached."""
        self._bindings[service_id] = ServiceBinding(_as_factory(factory), singleton=True)
        return self

    def instance(self, service_id: Hashable, value: Any) -> Container:
        """Register an already-built object as a resolved singleton."""
        binding = ServiceBinding(_as_factory(value), singleton=True)
        binding._instance = value
        self._bindings[service_id] = binding
        return self

    def get(self, service_id: Hashable) -> Any:
        """Resolve a service.

        Raises ``BindingNotFound`` if *service_id* was never bound.
        """
        try:
            binding = self._bindings[service_id]
        except KeyError:
            raise BindingNotFound(service_id) from None
        return binding.resolve()

    def has(self, service_id: Hashable) -> bool:
        """Check whether *service_id* is bound. Never resolves anything."""
        return service_id in self._bindings

    def resolved(self, service_id: Hashable) -> bool:
        """Check whether *service_id* is a singleton that has been built."""
        binding = self._bindings.get(service_id)
        return binding is not None and binding.resolved

    def __contains__(self, service_id: object) -> bool:
        return service_id in self._bindings

    def __len__(self) -> int:
        return len(self._bindings)

"""Registry — deduplicating store of Bindings keyed by (variable, attribute).

A Registry is an ordinary object: construct one per application (or per
test, or per session) and hand it to whatever builds views. ``clear_all``
resets it without restarting the process.

    registry = Registry()
    volume = Observable(0.5)
    binding = registry.get_or_create(volume, "value")
    binding is registry.get_or_create(volume, "value")  # True
"""

from __future__ import annotations

import logging
import threading
from typing import Hashable, Iterable

from bindwire.binding import Binding, MapFn
from bindwire.variable import Variable

logger = logging.getLogger("bindwire.registry")


def key(variable: Variable, attribute: str) -> tuple[int, str]:
    """Composite registry key for a (variable, attribute) pair."""
    return (variable.id, attribute)


class Registry:
    """Process- or session-wide map from (variable, attribute) to Binding."""

    def __init__(self) -> None:
        self._bindings: dict[Hashable, Binding] = {}
        self._lock = threading.Lock()

    def get_or_create(
        self, variable: Variable, attribute: str = "value", map_fn: MapFn | None = None
    ) -> Binding:
        """Return the Binding for (variable, attribute), creating it on first use.

        When the binding already exists, map_fn is ignored: the first
        caller's transform wins for that key.
        """
        k = key(variable, attribute)
        with self._lock:
            binding = self._bindings.get(k)
            if binding is None:
                binding = Binding(variable, attribute, map_fn)
                binding._subscribe()
                self._bindings[k] = binding
                logger.debug("created %r", binding)
            return binding

    def get_or_create_many(
        self,
        variables: Iterable[Variable],
        attribute: str = "value",
        map_fn: MapFn | None = None,
    ) -> list[Binding]:
        """One binding per variable, same attribute, in input order."""
        return [self.get_or_create(v, attribute, map_fn) for v in variables]

    def clear_all(self) -> None:
        """Unsubscribe every binding and empty the registry.

        A propagation pass already running keeps its Binding and finishes;
        only lookups made after this call see the empty registry.
        """
        with self._lock:
            bindings = list(self._bindings.values())
            self._bindings.clear()
        for binding in bindings:
            binding._dispose()
        if bindings:
            logger.info("Cleared %d bindings", len(bindings))

    def bindings(self) -> list[Binding]:
        """Snapshot of registered bindings, in creation order."""
        with self._lock:
            return list(self._bindings.values())

    def __contains__(self, pair: tuple[Variable, str]) -> bool:
        variable, attribute = pair
        return key(variable, attribute) in self._bindings

    def __len__(self) -> int:
        return len(self._bindings)

    def __enter__(self) -> Registry:
        return self

    def __exit__(self, *exc_info) -> None:
        self.clear_all()

    def __repr__(self) -> str:
        return f"Registry({len(self._bindings)} bindings)"

"""Binding — one (variable, attribute) subscription fanned out to views.

A Binding owns the variable subscription and the ordered set of attached
view-handles. When the variable changes, ``propagate`` delivers the mapped
value (or a parameterless fire for pulses) to every handle, in attach order,
skipping handles the cycle has already seen.

Thread safety: each Binding has its own lock guarding the handle set. A pass
takes a snapshot under the lock and delivers with the lock released, so a
handle that blocks (waiting on a UI thread, say) never stalls attach, detach
or passes on other threads. A pass delivers the one value it read at its
start; passes running on different threads may interleave, and each visits
a handle at most once.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Protocol, runtime_checkable

from bindwire.cycle import Cycle
from bindwire.variable import Unsubscribe, Variable, is_pulse

logger = logging.getLogger("bindwire.binding")

MapFn = Callable[[Any], Any]


def identity(value: Any) -> Any:
    return value


@runtime_checkable
class ViewHandle(Protocol):
    """What a binding needs from an attached observer."""

    def update(self, value: Any) -> None:
        """Show a new value (value-carrying bindings)."""
        ...

    def fire(self) -> None:
        """Signal an occurrence (pulse bindings). Takes no value."""
        ...


class Binding:
    """Subscription plus fan-out for one (variable, attribute) pair.

    Created only by a Registry; there is no public destroy.
    """

    def __init__(self, variable: Variable, attribute: str, map_fn: MapFn | None = None) -> None:
        self.variable = variable
        self.attribute = attribute
        self.map_fn: MapFn = map_fn or identity
        self.pulse = is_pulse(variable)
        self._handles: dict[ViewHandle, None] = {}
        self._lock = threading.Lock()
        self._unsubscribe: Unsubscribe | None = None
        self._disposed = False

    def _subscribe(self) -> None:
        self._unsubscribe = self.variable.subscribe(self.propagate)

    @property
    def handles(self) -> tuple[ViewHandle, ...]:
        """Attached handles, in attach order."""
        with self._lock:
            return tuple(self._handles)

    @property
    def disposed(self) -> bool:
        return self._disposed

    def attach(self, handle: ViewHandle) -> None:
        """Start delivering to handle. Attaching twice is a no-op."""
        with self._lock:
            if handle not in self._handles:
                self._handles[handle] = None
                logger.debug("attached %r to %r", handle, self)

    def detach(self, handle: ViewHandle) -> None:
        """Stop delivering to handle. Detaching an absent handle is a no-op."""
        with self._lock:
            if self._handles.pop(handle, _ABSENT) is not _ABSENT:
                logger.debug("detached %r from %r", handle, self)

    def propagate(self, cycle: Cycle | None = None) -> None:
        """Deliver the variable's current value to every handle not in cycle.

        The read happens for pulses too: it re-arms derived variables that
        only notify again after being read.
        """
        if cycle is None:
            cycle = Cycle()
        value = self.variable.get()
        for handle in self.handles:
            # A handle detached since the snapshot, by this pass or another thread, is skipped.
            with self._lock:
                if handle not in self._handles or handle in cycle:
                    continue
                cycle.add(handle)
            if self.pulse:
                handle.fire()
            else:
                handle.update(self.map_fn(value))

    def _dispose(self) -> None:
        """Tear down the subscription exactly once. Registry use only.

        Handles are left in place so a pass already running on this binding
        finishes against the views it started with.
        """
        with self._lock:
            if self._disposed:
                return
            self._disposed = True
            unsubscribe, self._unsubscribe = self._unsubscribe, None
        if unsubscribe is not None:
            unsubscribe()

    def __len__(self) -> int:
        return len(self._handles)

    def __repr__(self) -> str:
        kind = "pulse" if self.pulse else "value"
        return f"Binding(#{self.variable.id}.{self.attribute}, {kind}, {len(self._handles)} views)"


_ABSENT = object()

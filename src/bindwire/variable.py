"""Reactive variables — the values that bindings keep in sync.

Three kinds, all sharing one surface (get / set / public_set / subscribe):

- Observable: a plain value cell.
- Computed: a derived value, optionally writable through an inverse.
- Pulse: a stateless "bang" that carries no payload, only an occurrence.

Change callbacks receive the propagation Cycle of the change. A write made
outside any cycle gets a fresh one at the point where the variable notifies.

All state lives in _anchor; instances are thin handles holding an _id.
"""

from __future__ import annotations

from typing import Callable, Generic, Mapping, TypeVar

from bindwire import _anchor
from bindwire._tracking import current_derivation, track
from bindwire.cycle import Cycle

T = TypeVar("T")

OnChange = Callable[[Cycle], None]
Unsubscribe = Callable[[], None]

_UNSET = object()


class _Subscription:
    """Wraps a plain change callback so it can sit next to derivations."""

    __slots__ = ("_callback",)

    def __init__(self, callback: OnChange) -> None:
        self._callback = callback

    def _run(self, cycle: Cycle) -> None:
        self._callback(cycle)


class _Variable:
    __slots__ = ("_id",)

    @property
    def id(self) -> int:
        """Stable unique identity, used to key bindings."""
        return self._id

    def subscribe(self, on_change: OnChange) -> Unsubscribe:
        """Call on_change(cycle) after every change. Returns the unsubscribe function."""
        sub = _Subscription(on_change)
        self._add_subscriber(sub)

        def _unsubscribe() -> None:
            self._remove_subscriber(sub)

        return _unsubscribe

    def _add_subscriber(self, subscriber) -> None:
        _anchor.subscribers[self._id][subscriber] = None

    def _remove_subscriber(self, subscriber) -> None:
        _anchor.subscribers[self._id].pop(subscriber, None)

    def _notify(self, cycle: Cycle | None) -> None:
        if cycle is None:
            cycle = Cycle()
        current = _anchor.subscribers[self._id]
        for subscriber in list(current):
            # Skip anything unsubscribed by an earlier callback in this loop.
            if subscriber in current:
                subscriber._run(cycle)


class Observable(_Variable, Generic[T]):
    """A plain value cell. Notifies only when the value actually changes."""

    __slots__ = ()

    def __init__(self, value: T) -> None:
        self._id = _anchor.new_id()
        _anchor.values[self._id] = value
        _anchor.subscribers[self._id] = {}

    def get(self) -> T:
        """Read the value. If inside a computed, registers the dependency."""
        track(self)
        return _anchor.values[self._id]

    def set(self, value: T, cycle: Cycle | None = None) -> None:
        old = _anchor.values[self._id]
        if old is not value and old != value:
            _anchor.values[self._id] = value
            self._notify(cycle)

    # Nothing to route through for a plain cell.
    public_set = set

    def __repr__(self) -> str:
        return f"Observable({_anchor.values[self._id]!r})"


class Computed(_Variable, Generic[T]):
    """A derived value that auto-tracks dependencies and caches the result.

    With an ``inverse``, the computed is writable: ``public_set(value)`` calls
    ``inverse(value)``, which returns ``{source: new_value}``, and writes every
    source with the caller's cycle. The computed's own subscribers are told
    once, after all sources are written.

    A computed notifies when it goes from clean to dirty, so it only tells
    its subscribers again after someone has read it. Bindings read on every
    propagation, which keeps them armed.
    """

    __slots__ = ()

    def __init__(
        self,
        fn: Callable[[], T],
        inverse: Callable[[T], Mapping[_Variable, object]] | None = None,
    ) -> None:
        self._id = _anchor.new_id()
        _anchor.derivation_fns[self._id] = fn
        _anchor.inverses[self._id] = inverse
        _anchor.values[self._id] = _UNSET
        _anchor.dirty_flags[self._id] = True
        _anchor.dependencies[self._id] = {}
        _anchor.subscribers[self._id] = {}

    @property
    def _fn(self) -> Callable[[], T]:
        return _anchor.derivation_fns[self._id]

    @property
    def _dependencies(self) -> dict:
        return _anchor.dependencies[self._id]

    def get(self) -> T:
        """Read the computed value. Recomputes if dirty."""
        track(self)
        if _anchor.dirty_flags[self._id]:
            self._recompute()
        return _anchor.values[self._id]

    def _recompute(self) -> None:
        for dep in list(self._dependencies):
            dep._remove_subscriber(self)
        self._dependencies.clear()

        token = current_derivation.set(self)
        try:
            _anchor.values[self._id] = self._fn()
        finally:
            current_derivation.reset(token)

        _anchor.dirty_flags[self._id] = False

    def _run(self, cycle: Cycle) -> None:
        """Called when a dependency changed: mark dirty and pass the change on."""
        if _anchor.dirty_flags[self._id]:
            return
        _anchor.dirty_flags[self._id] = True
        if self._id in _anchor.held:
            _anchor.held[self._id] = True
        else:
            self._notify(cycle)

    def set(self, value: T, cycle: Cycle | None = None) -> None:
        """Override the cached value directly, bypassing the inverse.

        The override holds until a dependency changes again.
        """
        dirty = _anchor.dirty_flags[self._id]
        old = _anchor.values[self._id]
        _anchor.values[self._id] = value
        _anchor.dirty_flags[self._id] = False
        if dirty or (old is not value and old != value):
            self._notify(cycle)

    def public_set(self, value: T, cycle: Cycle | None = None) -> None:
        inverse = _anchor.inverses[self._id]
        if inverse is None:
            raise TypeError(f"{self!r} is read-only: it has no inverse")
        if cycle is None:
            cycle = Cycle()

        writes = inverse(value)
        _anchor.held[self._id] = False
        try:
            for source, source_value in writes.items():
                source.public_set(source_value, cycle)
        finally:
            changed = _anchor.held.pop(self._id)
        if changed:
            self._notify(cycle)

    def dispose(self) -> None:
        """Disconnect from all dependencies. The computed becomes inert."""
        for dep in list(self._dependencies):
            dep._remove_subscriber(self)
        self._dependencies.clear()
        _anchor.subscribers[self._id].clear()
        _anchor.dirty_flags[self._id] = True
        _anchor.values[self._id] = _UNSET

    def __repr__(self) -> str:
        dirty = _anchor.dirty_flags[self._id]
        val = _anchor.values[self._id]
        state = "dirty" if dirty else f"cached={val!r}"
        return f"Computed({getattr(self._fn, '__name__', 'fn')}, {state})"


class Pulse(_Variable):
    """A pulse-only ("bang") variable: it fires, it never holds a value."""

    __slots__ = ()

    def __init__(self) -> None:
        self._id = _anchor.new_id()
        _anchor.values[self._id] = None
        _anchor.subscribers[self._id] = {}

    def get(self) -> None:
        """Always None. Still registers the dependency inside a computed."""
        track(self)
        return None

    def pulse(self, cycle: Cycle | None = None) -> None:
        self._notify(cycle)

    def set(self, value: object = None, cycle: Cycle | None = None) -> None:
        """Fire. Any value is discarded."""
        self.pulse(cycle)

    public_set = set

    def __repr__(self) -> str:
        return f"Pulse(#{self._id})"


Variable = Observable | Computed | Pulse


def is_pulse(variable: object) -> bool:
    return isinstance(variable, Pulse)


def computed(fn: Callable[[], T]) -> Computed[T]:
    """Decorator/factory to create a read-only Computed from a function.

    Usage:
        counter = Observable(0)

        @computed
        def doubled():
            return counter.get() * 2

        doubled.get()  # 0
        counter.set(5)
        doubled.get()  # 10
    """
    return Computed(fn)

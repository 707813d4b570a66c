"""View — the attach/detach/update contract every widget follows.

A View binds itself to (variable, attribute) through a Registry, reads and
renders the initial value, attaches, and from then on:

- receives ``update(value)`` (or ``fire()`` for pulses) when the variable
  changes because of anything other than itself;
- pushes user-driven changes upstream with ``user_change(payload)``, seeding
  the cycle with itself so the change does not echo back into it;
- leaves with ``close()``. There is no other way to detach.

Subclasses implement ``render`` and, for pulse bindings, ``flash``.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Mapping

from bindwire.binding import MapFn
from bindwire.cycle import Cycle
from bindwire.registry import Registry
from bindwire.variable import Variable

logger = logging.getLogger("bindwire.view")


class _NoData:
    """Sentinel for an inbound event that carries nothing."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "NO_DATA"


NO_DATA = _NoData()


class View:
    """Base class for one widget instance bound to one variable."""

    def __init__(
        self,
        registry: Registry,
        variable: Variable,
        attribute: str = "value",
        map_fn: MapFn | None = None,
        coerce: Callable[[Any], Any] | None = None,
    ) -> None:
        self.variable = variable
        self.coerce = coerce
        self.binding = registry.get_or_create(variable, attribute, map_fn)
        # Reading before attaching also arms a derived variable's dependencies.
        self.initial = self.binding.map_fn(variable.get())
        if not self.binding.pulse:
            self.render(self.initial)
        self.binding.attach(self)

    # --- outbound (binding -> widget) ---

    def update(self, value: Any) -> None:
        self.render(value)

    def fire(self) -> None:
        self.flash()

    def render(self, value: Any) -> None:
        """Show value in the widget."""

    def flash(self) -> None:
        """Show that a pulse fired."""

    # --- inbound (widget -> variable) ---

    def extract(self, payload: Any) -> Any:
        """Pull the new value out of a decoded client event, or NO_DATA."""
        if not isinstance(payload, Mapping):
            return NO_DATA
        value = payload.get("value", NO_DATA)
        if value is None or value is NO_DATA:
            return NO_DATA
        if self.coerce is not None:
            try:
                value = self.coerce(value)
            except (TypeError, ValueError):
                return NO_DATA
        return value

    def user_change(self, payload: Any) -> None:
        """Handle a user-driven change event coming from the widget."""
        if self.binding.pulse:
            # A bang carries no value; only an empty event is ignored.
            value = NO_DATA if payload is None else payload
        else:
            value = self.extract(payload)
        if value is NO_DATA:
            logger.debug("%r ignored payload %r", self, payload)
            return
        cycle = Cycle(self)
        if self.binding.pulse:
            self.variable.pulse(cycle)
        else:
            self.variable.public_set(value, cycle)

    def close(self) -> None:
        """The widget's live instance went away."""
        self.binding.detach(self)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.binding.attribute}@#{self.variable.id})"


def bind_many(
    registry: Registry,
    variables: Iterable[Variable],
    view_factory: Callable[..., View],
    attribute: str = "value",
    map_fn: MapFn | None = None,
    **kwargs: Any,
) -> list[View]:
    """One view per variable, for composite widgets such as a channel strip.

    Bindings are fetched with ``get_or_create_many`` first, so every view's
    binding exists (and keeps the first map_fn) before any view attaches.

    view_factory is called as ``view_factory(registry, variable, attribute=...,
    map_fn=..., **kwargs)``. Views that need more, such as TextualView's app
    and widget, go through a small adapter:

        widgets = dict(zip(channels, faders))
        bind_many(registry, channels,
                  lambda reg, var, **kw: TextualView(app, reg, var, widgets[var], **kw))
    """
    variables = list(variables)
    registry.get_or_create_many(variables, attribute, map_fn)
    return [
        view_factory(registry, variable, attribute=attribute, map_fn=map_fn, **kwargs)
        for variable in variables
    ]

"""Textual integration for bindwire. Opt-in — requires textual.

// [LAW:single-enforcer] Guard + NoMatches + thread-marshal enforced here, not at callsites.
// [LAW:locality-or-seam] Textual coupling isolated in this module; core bindwire stays agnostic.
// [LAW:no-shared-mutable-globals] _paused_apps has single owner (this module), explicit API
//   (pause/is_safe), documented invariant (id present ↔ inside pause context).

Usage inside an App:

    def on_mount(self):
        self.volume_view = TextualView(
            self, registry, volume, self.query_one(Input),
            coerce=float, quiet=(Input.Changed,),
        )

    def on_input_changed(self, message):
        self.volume_view.on_message(message)
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Any, Callable

from textual.css.query import NoMatches

from bindwire.binding import MapFn
from bindwire.registry import Registry
from bindwire.variable import Variable
from bindwire.view import View

# Module-owned pause state, keyed by id(app) so multiple apps work in tests.
_paused_apps: set[int] = set()


@contextmanager
def pause(app):
    """Suspend delivery to this app's widgets during widget replacement."""
    key = id(app)
    _paused_apps.add(key)
    try:
        yield
    finally:
        _paused_apps.discard(key)


def is_safe(app) -> bool:
    """Is the widget tree in a queryable state?"""
    return app.is_running and id(app) not in _paused_apps


class TextualView(View):
    """A View that writes into one attribute of a Textual widget.

    Delivery is skipped while the app is paused or not running, marshaled
    via call_from_thread when the change comes from another thread, and
    NoMatches from a widget that is already gone is swallowed. Writes happen
    inside ``widget.prevent(*quiet)`` so the widget does not post its own
    change message back for a value it was given.
    """

    def __init__(
        self,
        app,
        registry: Registry,
        variable: Variable,
        widget,
        *,
        widget_attribute: str = "value",
        attribute: str = "value",
        map_fn: MapFn | None = None,
        coerce: Callable[[Any], Any] | None = None,
        quiet: tuple[type, ...] = (),
        on_fire: Callable[[Any], None] | None = None,
    ) -> None:
        self.app = app
        self.widget = widget
        self.widget_attribute = widget_attribute
        self.quiet = quiet
        self.on_fire = on_fire
        self._main = threading.get_ident()
        super().__init__(registry, variable, attribute, map_fn, coerce)

    def render(self, value: Any) -> None:
        if threading.get_ident() == self._main:
            self._deliver(self._write, value)
        else:
            # Re-read on the UI thread: a marshaled write may run after a newer change.
            self._deliver(self._write_current)

    def _write_current(self) -> None:
        self._write(self.binding.map_fn(self.variable.get()))

    def flash(self) -> None:
        if self.on_fire is not None:
            self._deliver(self.on_fire, self.widget)

    def _write(self, value: Any) -> None:
        if self.quiet:
            with self.widget.prevent(*self.quiet):
                setattr(self.widget, self.widget_attribute, value)
        else:
            setattr(self.widget, self.widget_attribute, value)

    def _deliver(self, fn: Callable, *args: Any) -> None:
        if not is_safe(self.app):
            return
        if threading.get_ident() != self._main:
            self.app.call_from_thread(self._safe, fn, *args)
        else:
            self._safe(fn, *args)

    @staticmethod
    def _safe(fn: Callable, *args: Any) -> None:
        try:
            fn(*args)
        except NoMatches:
            pass

    def on_message(self, message) -> None:
        """Feed a widget's Changed/Pressed message in as a user change."""
        if hasattr(message, "value"):
            self.user_change({"value": message.value})
        else:
            self.user_change({})

    def on_unmount(self) -> None:
        self.close()

"""Tests for bindwire.textual — Textual integration layer."""

import threading
from contextlib import contextmanager

import pytest
from textual.css.query import NoMatches

from bindwire import Observable, Pulse, Registry, bind_many
from bindwire import textual as btx


class _MockApp:
    """Minimal mock matching the Textual App interface btx needs."""

    def __init__(self, *, is_running=True):
        self.is_running = is_running
        self._call_from_thread_log = []

    def call_from_thread(self, fn, *args):
        self._call_from_thread_log.append((fn, args))
        fn(*args)


class _MockWidget:
    """Widget stand-in: a value attribute plus Textual's prevent() context."""

    def __init__(self, value=None):
        self.value = value
        self.prevented = []

    @contextmanager
    def prevent(self, *message_types):
        self.prevented.append(message_types)
        yield


class _Changed:
    def __init__(self, value):
        self.value = value


class _Pressed:
    pass


class TestTextualView:
    def test_writes_widget_attribute(self):
        app, r, v = _MockApp(), Registry(), Observable(1)
        w = _MockWidget()
        btx.TextualView(app, r, v, w)
        v.set(2)
        assert w.value == 2

    def test_custom_widget_attribute_and_map(self):
        app, r, v = _MockApp(), Registry(), Observable(0.5)
        w = _MockWidget()
        w.progress = 0
        btx.TextualView(app, r, v, w, widget_attribute="progress", map_fn=lambda x: x * 100)
        v.set(0.25)
        assert w.progress == 25.0

    def test_write_is_quiet(self):
        app, r, v = _MockApp(), Registry(), Observable(1)
        w = _MockWidget()
        btx.TextualView(app, r, v, w, quiet=(_Changed,))
        v.set(2)
        assert w.prevented == [(_Changed,), (_Changed,)]

    def test_message_feeds_variable_without_echo(self):
        app, r, v = _MockApp(), Registry(), Observable(1.0)
        box, other = _MockWidget("1.0"), _MockWidget(1.0)
        box_view = btx.TextualView(app, r, v, box, coerce=float)
        btx.TextualView(app, r, v, other)

        box_view.on_message(_Changed("3.5"))
        assert v.get() == 3.5
        assert other.value == 3.5
        assert box.value == 1.0  # starting value only, not written back

    def test_malformed_message_ignored(self):
        app, r, v = _MockApp(), Registry(), Observable(1.0)
        box_view = btx.TextualView(app, r, v, _MockWidget(), coerce=float)
        box_view.on_message(_Changed("abc"))
        box_view.on_message(_Pressed())
        assert v.get() == 1.0

    def test_pressed_fires_other_views(self):
        app, r, p = _MockApp(), Registry(), Pulse()
        fired = []
        button = btx.TextualView(app, r, p, _MockWidget(), on_fire=fired.append)
        lamp_widget = _MockWidget()
        btx.TextualView(app, r, p, lamp_widget, on_fire=fired.append)
        button.on_message(_Pressed())
        assert fired == [lamp_widget]

    def test_unmount_detaches(self):
        app, r, v = _MockApp(), Registry(), Observable(1)
        w = _MockWidget()
        view = btx.TextualView(app, r, v, w)
        view.on_unmount()
        v.set(2)
        assert w.value == 1
        assert view.binding.handles == ()

    def test_skips_when_not_running(self):
        app, r, v = _MockApp(is_running=False), Registry(), Observable(1)
        w = _MockWidget()
        btx.TextualView(app, r, v, w)
        v.set(2)
        assert w.value is None

    def test_skips_during_pause(self):
        app, r, v = _MockApp(), Registry(), Observable(1)
        w = _MockWidget()
        btx.TextualView(app, r, v, w)
        with btx.pause(app):
            v.set(2)
        assert w.value == 1
        v.set(3)
        assert w.value == 3

    def test_catches_nomatch(self):
        """NoMatches from widget queries are silently swallowed."""
        app, r, p = _MockApp(), Registry(), Pulse()
        fired = []

        def _raise_nomatch(widget):
            raise NoMatches("Lamp")

        btx.TextualView(app, r, p, _MockWidget(), on_fire=_raise_nomatch)
        btx.TextualView(app, r, p, _MockWidget(), on_fire=fired.append)
        # Should not raise, and later views still fire
        p.pulse()
        assert len(fired) == 1

    def test_propagates_real_errors(self):
        """Non-NoMatches exceptions propagate normally."""
        app, r, p = _MockApp(), Registry(), Pulse()

        def _raise_value_error(widget):
            raise ValueError("boom")

        btx.TextualView(app, r, p, _MockWidget(), on_fire=_raise_value_error)
        with pytest.raises(ValueError, match="boom"):
            p.pulse()

    def test_thread_marshal(self):
        """Changes from a background thread use call_from_thread."""
        app, r, v = _MockApp(), Registry(), Observable(1)
        w = _MockWidget()
        btx.TextualView(app, r, v, w)

        t = threading.Thread(target=lambda: v.set(2))
        t.start()
        t.join()

        assert w.value == 2
        assert len(app._call_from_thread_log) >= 1

    def test_starting_value_drawn(self):
        app, r, v = _MockApp(), Registry(), Observable(42)
        w = _MockWidget()
        btx.TextualView(app, r, v, w)
        assert w.value == 42

    def test_starting_value_mapped(self):
        app, r, v = _MockApp(), Registry(), Observable(0.5)
        w = _MockWidget()
        w.progress = 0
        btx.TextualView(app, r, v, w, widget_attribute="progress", map_fn=lambda x: x * 100)
        assert w.progress == 50.0

    def test_pulse_view_draws_nothing(self):
        app, r = _MockApp(), Registry()
        w = _MockWidget("label")
        btx.TextualView(app, r, Pulse(), w)
        assert w.value == "label"

    def test_parked_background_pass_does_not_block_ui_change(self):
        """A background write waiting in call_from_thread must not stall a UI-side change."""
        app = _BlockingApp()
        r, v = Registry(), Observable(0)
        ui_widget, other_widget = _MockWidget(), _MockWidget()
        views = {}
        built, go = threading.Event(), threading.Event()

        def _ui():
            # Views built here treat this thread as the UI thread.
            views["ui"] = btx.TextualView(app, r, v, ui_widget)
            views["other"] = btx.TextualView(app, r, v, other_widget)
            built.set()
            go.wait(timeout=5)
            views["other"].user_change({"value": 2})

        ui = threading.Thread(target=_ui)
        ui.start()
        assert built.wait(timeout=5)

        bg = threading.Thread(target=lambda: v.set(1))
        bg.start()
        assert app.entered.wait(timeout=5)

        go.set()
        ui.join(timeout=2)
        stalled = ui.is_alive()
        app.release.set()
        bg.join(timeout=5)
        ui.join(timeout=5)

        assert not stalled
        assert v.get() == 2
        # The parked write re-reads on delivery, so it cannot roll back to 1.
        assert ui_widget.value == 2
        assert other_widget.value == 2

    def test_bind_many_with_adapter(self):
        app, r = _MockApp(), Registry()
        channels = [Observable(0.1), Observable(0.2)]
        faders = [_MockWidget(), _MockWidget()]
        widgets = dict(zip(channels, faders))

        views = bind_many(
            r, channels,
            lambda reg, var, **kw: btx.TextualView(app, reg, var, widgets[var], **kw),
            map_fn=lambda x: round(x * 100),
        )
        assert [f.value for f in faders] == [10, 20]
        channels[1].set(0.5)
        assert [f.value for f in faders] == [10, 50]
        assert [view.widget for view in views] == faders


class _BlockingApp(_MockApp):
    """call_from_thread parks the caller until release is set, like a busy UI loop."""

    def __init__(self):
        super().__init__()
        self.entered = threading.Event()
        self.release = threading.Event()

    def call_from_thread(self, fn, *args):
        self.entered.set()
        self.release.wait(timeout=5)
        super().call_from_thread(fn, *args)


class TestPause:
    def test_pause_restores_on_exception(self):
        app = _MockApp()
        assert btx.is_safe(app)

        with pytest.raises(RuntimeError):
            with btx.pause(app):
                assert not btx.is_safe(app)
                raise RuntimeError("oops")

        # Restored despite exception
        assert btx.is_safe(app)

    def test_pause_does_not_mutate_app(self):
        """// [LAW:no-shared-mutable-globals] pause state lives in the module, not on the app."""
        app = _MockApp()
        attrs_before = set(vars(app))
        with btx.pause(app):
            attrs_during = set(vars(app))
        assert attrs_before == attrs_during
        assert attrs_before == set(vars(app))

    def test_multiple_apps_independent(self):
        """Pausing one app does not affect another."""
        app_a = _MockApp()
        app_b = _MockApp()
        with btx.pause(app_a):
            assert not btx.is_safe(app_a)
            assert btx.is_safe(app_b)

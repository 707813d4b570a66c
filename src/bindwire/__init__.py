"""bindwire: keep reactive variables and live widgets in sync, both ways."""

from importlib.metadata import version as _version

__version__ = _version("bindwire")

from bindwire.cycle import Cycle
from bindwire.variable import Observable, Computed, Pulse, computed, is_pulse
from bindwire.binding import Binding, ViewHandle
from bindwire.registry import Registry
from bindwire.view import NO_DATA, View, bind_many
# textual and hot_reload NOT auto-imported: opt-in only

__all__ = [
    "Cycle",
    "Observable",
    "Computed",
    "Pulse",
    "computed",
    "is_pulse",
    "Binding",
    "ViewHandle",
    "Registry",
    "View",
    "NO_DATA",
    "bind_many",
]

"""Dependency tracking for derived variables.

Uses contextvars to track which variables are read while a Computed is
evaluating, building the dependency graph automatically.
"""

from __future__ import annotations

import contextvars
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from bindwire.variable import Computed

# The currently-evaluating computed. When set, any variable .get() call
# registers itself as a dependency of it.
current_derivation: contextvars.ContextVar[Computed | None] = contextvars.ContextVar(
    "current_derivation", default=None
)


def track(variable) -> None:
    """Register `variable` as a dependency of the evaluating computed, if any."""
    derivation = current_derivation.get()
    if derivation is not None and derivation is not variable:
        variable._add_subscriber(derivation)
        derivation._dependencies[variable] = None

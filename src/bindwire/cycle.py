"""Propagation cycle context: the "already updated" set of one change.

A Cycle is created fresh for each top-level change notification, or
pre-seeded with the originating view when a widget pushes a user change.
It is passed explicitly down the setter and propagation path and dropped
when that call returns; nothing stores it between cycles.
"""

from __future__ import annotations

from typing import Hashable


class Cycle:
    """Set of view-handles that have already received this change."""

    __slots__ = ("_seen",)

    def __init__(self, *seed: Hashable) -> None:
        self._seen: set = set(seed)

    def add(self, handle: Hashable) -> None:
        self._seen.add(handle)

    def __contains__(self, handle: object) -> bool:
        return handle in self._seen

    def __len__(self) -> int:
        return len(self._seen)

    def __repr__(self) -> str:
        return f"Cycle({len(self._seen)} seen)"

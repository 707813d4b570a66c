"""Data anchor — plain Python structures that hold all variable state.

Variables are thin handles holding an id; their values, subscribers and
derivation bookkeeping live here. Separating data from behavior means the
behavior modules can be reloaded while the data persists.
"""

import itertools

# Variable state
values: dict[int, object] = {}
subscribers: dict[int, dict] = {}  # var_id -> ordered {subscriber: None}

# Derivation state (Computed)
dependencies: dict[int, dict] = {}  # deriv_id -> ordered {variable: None}
dirty_flags: dict[int, bool] = {}
derivation_fns: dict[int, object] = {}
inverses: dict[int, object] = {}
held: dict[int, bool] = {}  # deriv_id -> changed while its inverse is writing

# ID generation: itertools.count is thread-safe (C-level GIL atomic)
_id_counter = itertools.count(1)


def new_id() -> int:
    return next(_id_counter)

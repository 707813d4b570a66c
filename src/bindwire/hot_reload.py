"""Live-reload wiring. Opt-in — import only if you need hot-reload support."""

import logging

from bindwire.registry import Registry

logger = logging.getLogger("bindwire.hot_reload")


def reload_wiring(registry: Registry, setup_fn) -> bool:
    """Drop every binding, then rebuild them with setup_fn(registry).

    Variable values are untouched; only the bindings and their
    subscriptions are replaced. If setup_fn raises, the failure is logged
    and the registry stays cleared (degraded, no bindings). Returns whether
    setup succeeded.
    """
    old_count = len(registry)
    registry.clear_all()

    try:
        setup_fn(registry)
    except Exception:
        logger.exception("Failed to rebuild bindings during reload")
        return False

    logger.info("Reloaded: %d->%d bindings", old_count, len(registry))
    return True

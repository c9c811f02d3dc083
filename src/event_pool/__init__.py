"""Top-level package for event-pool, a weakly held publish/subscribe registry."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .config import load_config
    from .exceptions import (
        ConfigValidationError,
        EventPoolError,
        StaticClassInstantiationError,
    )
    from .logging_utils import configure_logging
    from .pool import DebugEntry, EventPool
    from .refs import HandlerRef, SubscriptionId

__all__ = [
    "ConfigValidationError",
    "DebugEntry",
    "EventPool",
    "EventPoolError",
    "HandlerRef",
    "StaticClassInstantiationError",
    "SubscriptionId",
    "configure_logging",
    "load_config",
]


def __getattr__(name: str) -> Any:
    """Lazily import symbols so ``import event_pool`` stays cheap."""
    if name in {"EventPool", "DebugEntry"}:
        from .pool import DebugEntry, EventPool

        return {"EventPool": EventPool, "DebugEntry": DebugEntry}[name]
    if name in {"HandlerRef", "SubscriptionId"}:
        from .refs import HandlerRef, SubscriptionId

        return {"HandlerRef": HandlerRef, "SubscriptionId": SubscriptionId}[name]
    if name in {
        "ConfigValidationError",
        "EventPoolError",
        "StaticClassInstantiationError",
    }:
        from .exceptions import (
            ConfigValidationError,
            EventPoolError,
            StaticClassInstantiationError,
        )

        return {
            "ConfigValidationError": ConfigValidationError,
            "EventPoolError": EventPoolError,
            "StaticClassInstantiationError": StaticClassInstantiationError,
        }[name]
    if name == "load_config":
        from .config import load_config

        return load_config
    if name == "configure_logging":
        from .logging_utils import configure_logging

        return configure_logging
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

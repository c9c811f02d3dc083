"""Process-wide event registry that holds its handlers weakly.

Usage:
    def on_saved(path):
        print(f"saved {path}")

    subscription_id = EventPool.subscribe("file.saved", on_saved)
    EventPool.emit("file.saved", "/tmp/report.txt")
    EventPool.unsubscribe_by_id(subscription_id)

The pool never keeps a handler alive. Once the caller drops its last reference
the handler is reclaimed, and the next ``emit`` for that event (or a
``sweep``) purges its entries.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
import logging
import threading
from typing import Any, ClassVar
import weakref

from pydantic import ValidationError

from .config import PoolConfig
from .exceptions import ConfigValidationError, StaticClassInstantiationError
from .refs import (
    Handler,
    HandlerRef,
    SubscriptionId,
    handler_key,
    lifetime_anchor,
)

LOGGER = logging.getLogger(__name__)

ReverseKey = int | tuple[int, int]

DUMP_HEADER = "======= EventPool.debug_dump() start ======="
DUMP_FOOTER = "======= EventPool.debug_dump() end ======="


@dataclass(frozen=True)
class DebugEntry:
    """One subscription as seen by ``EventPool.snapshot``."""

    event: str
    subscription_id: SubscriptionId
    handler_name: str | None  # None once the handler has been reclaimed


class _OnceHandler:
    """One-shot wrapper registered by ``EventPool.subscribe_once``.

    The pool pins the wrapper until it fires or is removed, and a finalizer on
    the wrapped handler unpins it, so the wrapper lives exactly as long as the
    handler it wraps.
    """

    __slots__ = ("_event", "_ref", "_fired", "_finalizer", "__weakref__")

    def __init__(self, event: str, handler: Handler) -> None:
        self._event = event
        self._ref = HandlerRef(handler)
        self._fired = False
        self._finalizer: weakref.finalize | None = None

    @property
    def name(self) -> str:
        return f"once({self._ref.name})"

    def track(self, handler: Handler, subscription_id: SubscriptionId) -> None:
        try:
            finalizer = weakref.finalize(
                lifetime_anchor(handler), EventPool._pinned.pop, subscription_id, None
            )
        except TypeError:
            # Not weakly referenceable: stays pinned until fired or removed.
            return
        finalizer.atexit = False
        self._finalizer = finalizer

    def detach(self) -> None:
        if self._finalizer is not None:
            self._finalizer.detach()
            self._finalizer = None

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        with EventPool._lock:
            if self._fired:
                return None
            handler = self._ref()
            if handler is None:
                return None
            self._fired = True
        try:
            return handler(*args, **kwargs)
        finally:
            EventPool.unsubscribe(self._event, self)


class EventPool:
    """Static publish/subscribe registry with weakly held handlers.

    Per event name the pool keeps a subscription table
    (``SubscriptionId -> HandlerRef``, insertion ordered) and a reverse table
    (handler identity -> ``SubscriptionId``) for removal by handler. Both are
    class level; the class cannot be instantiated.
    """

    _events: ClassVar[dict[str, dict[SubscriptionId, HandlerRef]]] = {}
    _handler_map: ClassVar[dict[str, dict[ReverseKey, SubscriptionId]]] = {}
    _pinned: ClassVar[dict[SubscriptionId, _OnceHandler]] = {}
    _lock: ClassVar[threading.RLock] = threading.RLock()
    _options: ClassVar[PoolConfig] = PoolConfig()

    def __new__(cls, *args: Any, **kwargs: Any) -> EventPool:
        raise StaticClassInstantiationError(
            "EventPool is a static class and cannot be instantiated."
        )

    # -- configuration -----------------------------------------------------

    @classmethod
    def configure(
        cls, options: PoolConfig | Mapping[str, Any] | None = None
    ) -> PoolConfig:
        """Apply a ``[pool]`` config section; ``None`` restores the defaults."""
        if options is None:
            resolved = PoolConfig()
        elif isinstance(options, PoolConfig):
            resolved = options
        else:
            try:
                resolved = PoolConfig.model_validate(dict(options))
            except ValidationError as exc:
                raise ConfigValidationError(f"Invalid pool options: {exc}") from exc
        with cls._lock:
            cls._options = resolved
        LOGGER.debug(
            "pool.configured",
            extra={"event": "pool.configured", **resolved.model_dump()},
        )
        return resolved

    @classmethod
    def options(cls) -> PoolConfig:
        return cls._options

    # -- subscription management -------------------------------------------

    @classmethod
    def _register(cls, event: str, handler: Handler, ref: HandlerRef) -> SubscriptionId:
        subscription_id = SubscriptionId(event)
        with cls._lock:
            cls._events.setdefault(event, {})[subscription_id] = ref
            # Same handler twice on one event: the newer id wins the reverse
            # entry and the older one is only reachable by id.
            cls._handler_map.setdefault(event, {})[handler_key(handler)] = (
                subscription_id
            )
        LOGGER.debug(
            "pool.subscribe",
            extra={
                "event": "pool.subscribe",
                "event_name": event,
                "handler": ref.name,
                "weak": ref.is_weak,
            },
        )
        return subscription_id

    @classmethod
    def subscribe(cls, event: str, handler: Handler) -> SubscriptionId:
        """Register ``handler`` for ``event`` and return its subscription id.

        Only a weak reference to ``handler`` is kept; the caller owns its
        lifetime. Lambdas and other callables without an outside reference
        are reclaimed as soon as this call returns.
        """
        return cls._register(event, handler, HandlerRef(handler))

    @classmethod
    def subscribe_once(cls, event: str, handler: Handler) -> SubscriptionId:
        """Register ``handler`` to run at most once, on the next emission.

        The returned id belongs to the one-shot wrapper and can cancel it
        through ``unsubscribe_by_id`` before it fires.
        """
        wrapper = _OnceHandler(event, handler)
        with cls._lock:
            subscription_id = cls._register(
                event, wrapper, HandlerRef(wrapper, name=wrapper.name)
            )
            cls._pinned[subscription_id] = wrapper
            wrapper.track(handler, subscription_id)
        return subscription_id

    @classmethod
    def unsubscribe(cls, event: str, handler: Handler) -> None:
        """Remove ``handler`` from ``event``. Unknown pairs are ignored."""
        with cls._lock:
            event_map = cls._events.get(event)
            handler_map = cls._handler_map.get(event)
            if event_map is None or handler_map is None:
                return
            key = handler_key(handler)
            subscription_id = handler_map.pop(key, None)
            if subscription_id is None:
                return
            event_map.pop(subscription_id, None)
            cls._release(subscription_id)
        LOGGER.debug(
            "pool.unsubscribe",
            extra={"event": "pool.unsubscribe", "event_name": event},
        )

    @classmethod
    def unsubscribe_by_id(cls, subscription_id: SubscriptionId) -> None:
        """Remove the subscription behind ``subscription_id``, if any."""
        if not isinstance(subscription_id, SubscriptionId):
            return
        with cls._lock:
            for event, event_map in cls._events.items():
                ref = event_map.pop(subscription_id, None)
                if ref is None:
                    continue
                handler_map = cls._handler_map.get(event)
                if handler_map is not None:
                    handler = ref()
                    key = handler_key(handler) if handler is not None else None
                    if key is not None and handler_map.get(key) is subscription_id:
                        del handler_map[key]
                    else:
                        cls._drop_reverse_entry(handler_map, subscription_id)
                cls._release(subscription_id)
                break
            else:
                return
        LOGGER.debug(
            "pool.unsubscribe_by_id",
            extra={"event": "pool.unsubscribe_by_id", "event_name": event},
        )

    @classmethod
    def remove_all_listeners(cls, event: str) -> None:
        """Drop both tables of ``event``."""
        with cls._lock:
            event_map = cls._events.pop(event, None)
            cls._handler_map.pop(event, None)
            if event_map is None:
                return
            for subscription_id in event_map:
                cls._release(subscription_id)
        LOGGER.debug(
            "pool.remove_all_listeners",
            extra={
                "event": "pool.remove_all_listeners",
                "event_name": event,
                "removed": len(event_map),
            },
        )

    @classmethod
    def remove_all(cls) -> None:
        """Drop every table of every event."""
        with cls._lock:
            cls._events.clear()
            cls._handler_map.clear()
            for wrapper in list(cls._pinned.values()):
                wrapper.detach()
            cls._pinned.clear()
        LOGGER.debug("pool.remove_all", extra={"event": "pool.remove_all"})

    @classmethod
    def _release(cls, subscription_id: SubscriptionId) -> None:
        wrapper = cls._pinned.pop(subscription_id, None)
        if wrapper is not None:
            wrapper.detach()

    @staticmethod
    def _drop_reverse_entry(
        handler_map: dict[ReverseKey, SubscriptionId], subscription_id: SubscriptionId
    ) -> None:
        for key, candidate in handler_map.items():
            if candidate is subscription_id:
                del handler_map[key]
                return

    # -- dead handler reconciliation ---------------------------------------

    @classmethod
    def _clean_dead_handlers(cls, event: str) -> int:
        """Purge entries of ``event`` whose handler was reclaimed.

        The caller must hold ``_lock``.
        """
        event_map = cls._events.get(event)
        handler_map = cls._handler_map.get(event)
        if event_map is None or handler_map is None:
            return 0

        dead = [
            subscription_id
            for subscription_id, ref in event_map.items()
            if ref() is None
        ]
        for subscription_id in dead:
            del event_map[subscription_id]
            cls._drop_reverse_entry(handler_map, subscription_id)
            cls._release(subscription_id)

        if dead:
            LOGGER.debug(
                "pool.clean",
                extra={"event": "pool.clean", "event_name": event, "purged": len(dead)},
            )
        return len(dead)

    @classmethod
    def sweep(cls) -> int:
        """Purge reclaimed handlers across all events; return how many."""
        with cls._lock:
            purged = sum(cls._clean_dead_handlers(event) for event in list(cls._events))
        LOGGER.debug("pool.sweep", extra={"event": "pool.sweep", "purged": purged})
        return purged

    # -- emission ----------------------------------------------------------

    @classmethod
    def emit(cls, event: str, /, *args: Any, **kwargs: Any) -> None:
        """Invoke every live handler of ``event`` in subscription order."""
        with cls._lock:
            cls._clean_dead_handlers(event)
            event_map = cls._events.get(event)
            if not event_map:
                return
            refs = list(event_map.values())
            log_errors = cls._options.handler_errors == "log"

        for ref in refs:
            handler = ref()
            if handler is None:
                continue
            if not log_errors:
                handler(*args, **kwargs)
                continue
            try:
                handler(*args, **kwargs)
            except Exception as exc:
                LOGGER.error(
                    "pool.emit.handler_failed",
                    exc_info=True,
                    extra={
                        "event": "pool.emit.handler_failed",
                        "event_name": event,
                        "handler": ref.name,
                        "error_type": type(exc).__name__,
                    },
                )

    # -- introspection -----------------------------------------------------

    @classmethod
    def listener_count(cls, event: str) -> int:
        """Number of live handlers subscribed to ``event``."""
        with cls._lock:
            event_map = cls._events.get(event, {})
            return sum(1 for ref in event_map.values() if ref() is not None)

    @classmethod
    def event_names(cls) -> list[str]:
        with cls._lock:
            return list(cls._events)

    @classmethod
    def snapshot(cls) -> list[DebugEntry]:
        with cls._lock:
            return [
                DebugEntry(
                    event=event,
                    subscription_id=subscription_id,
                    handler_name=ref.name if ref() is not None else None,
                )
                for event, event_map in cls._events.items()
                for subscription_id, ref in event_map.items()
            ]

    @classmethod
    def debug_dump(cls) -> str:
        """Render every subscription for diagnostics and log the listing."""
        label = cls._options.reclaimed_label
        entries = cls.snapshot()
        lines = [DUMP_HEADER]
        lines.extend(
            f"event: {entry.event} | subscription: {entry.subscription_id!r}"
            f" | handler: {entry.handler_name or label}"
            for entry in entries
        )
        lines.append(DUMP_FOOTER)
        report = "\n".join(lines)
        # The listing also travels as a field: structured output replaces the
        # message with the "event" extra.
        LOGGER.info(
            "pool.debug_dump\n%s",
            report,
            extra={
                "event": "pool.debug_dump",
                "report": report,
                "subscriptions": len(entries),
            },
        )
        return report

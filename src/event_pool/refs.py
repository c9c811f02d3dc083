"""Weak handler references and subscription identifiers.

A ``HandlerRef`` is a cell that yields the live handler, or ``None`` once the
garbage collector has reclaimed it. Bound methods need ``weakref.WeakMethod``
because the bound-method object itself is recreated on every attribute access.
"""

from __future__ import annotations

from collections.abc import Callable
import itertools
import threading
import types
from typing import Any
import weakref

Handler = Callable[..., Any]

ANONYMOUS_HANDLER_NAME = "anonymous function"

_serials = itertools.count(1)
_serial_lock = threading.Lock()


class SubscriptionId:
    """Opaque token identifying one subscription.

    Equality is identity: two ids are equal only if they are the same object,
    so a token cannot be reconstructed from its serial or description.
    """

    __slots__ = ("_serial", "_description")

    def __init__(self, description: str = "") -> None:
        with _serial_lock:
            self._serial = next(_serials)
        self._description = description

    @property
    def description(self) -> str:
        return self._description

    def __repr__(self) -> str:
        return f"SubscriptionId({self._serial}, {self._description!r})"


class HandlerRef:
    """Weak cell around a handler.

    Callables that do not support weak references (instances of ``__slots__``
    classes without ``__weakref__``) are held strongly instead; for those the subscription lives until it is removed.
    """

    __slots__ = ("_ref", "_strong", "_name")

    def __init__(self, handler: Handler, name: str | None = None) -> None:
        self._strong: Handler | None = None
        self._ref: weakref.ref[Any] | None = None
        self._name = name or handler_name(handler)
        try:
            if isinstance(handler, types.MethodType):
                self._ref = weakref.WeakMethod(handler)
            else:
                self._ref = weakref.ref(handler)
        except TypeError:
            self._strong = handler

    @property
    def is_weak(self) -> bool:
        return self._ref is not None

    @property
    def name(self) -> str:
        return self._name

    def __call__(self) -> Handler | None:
        if self._ref is None:
            return self._strong
        return self._ref()

    def __repr__(self) -> str:
        state = "live" if self() is not None else "reclaimed"
        return f"<HandlerRef {self._name} ({state})>"


def handler_key(handler: Handler) -> int | tuple[int, int]:
    """Return an identity key for ``handler`` that keeps nothing alive."""
    if isinstance(handler, types.MethodType):
        return (id(handler.__self__), id(handler.__func__))
    return id(handler)


def lifetime_anchor(handler: Handler) -> Any:
    """Return the object whose collection ends the handler's life."""
    if isinstance(handler, types.MethodType):
        return handler.__self__
    return handler


def handler_name(handler: Handler) -> str:
    name = getattr(handler, "__qualname__", None) or getattr(handler, "__name__", None)
    if not isinstance(name, str) or not name or name.endswith("<lambda>"):
        return ANONYMOUS_HANDLER_NAME
    return name

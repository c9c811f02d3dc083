"""Domain exception hierarchy for the event pool."""

from __future__ import annotations


class EventPoolError(RuntimeError):
    """Base class for all event pool errors."""


class StaticClassInstantiationError(EventPoolError):
    """Raised when code tries to create an instance of the static registry."""


class ConfigValidationError(EventPoolError):
    """Raised when configuration cannot be validated safely."""

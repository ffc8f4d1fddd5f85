"""
Portcullis Events - named event bus.

Guards report every authentication step here. Handlers are plain
callables receiving the event payload dict; a failing handler is logged
and never interrupts the guard or the remaining handlers.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable

EventHandler = Callable[[dict[str, Any]], None]

# Session guard events
AUTHENTICATION_ATTEMPTED = "authentication_attempted"
AUTHENTICATION_SUCCEEDED = "authentication_succeeded"
AUTHENTICATION_FAILED = "authentication_failed"
LOGIN_ATTEMPTED = "login_attempted"
LOGIN_SUCCEEDED = "login_succeeded"
LOGGED_OUT = "logged_out"

SESSION_GUARD_EVENTS = (
    AUTHENTICATION_ATTEMPTED,
    AUTHENTICATION_SUCCEEDED,
    AUTHENTICATION_FAILED,
    LOGIN_ATTEMPTED,
    LOGIN_SUCCEEDED,
    LOGGED_OUT,
)


class Emitter:
    """
    Synchronous named-event emitter.

    Example:
        >>> emitter = Emitter()
        >>> seen = []
        >>> emitter.on("authentication_failed", seen.append)
        >>> emitter.emit("authentication_failed", {"guard_name": "web"})
        >>> seen[0]["guard_name"]
        'web'
    """

    def __init__(self, logger: logging.Logger | None = None):
        self.logger = logger or logging.getLogger("portcullis.events")
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)
        self._any_handlers: list[Callable[[str, dict[str, Any]], None]] = []

    def on(self, event_name: str, handler: EventHandler) -> None:
        """Register ``handler`` for ``event_name``."""
        self._handlers[event_name].append(handler)

    def on_any(self, handler: Callable[[str, dict[str, Any]], None]) -> None:
        """Register ``handler`` for every event; receives (name, payload)."""
        self._any_handlers.append(handler)

    def off(self, event_name: str, handler: EventHandler) -> None:
        """Unregister a handler; unknown handlers are ignored."""
        handlers = self._handlers.get(event_name, [])
        if handler in handlers:
            handlers.remove(handler)

    def has_listeners(self, event_name: str) -> bool:
        return bool(self._handlers.get(event_name)) or bool(self._any_handlers)

    def emit(self, event_name: str, payload: dict[str, Any]) -> None:
        """
        Emit event to registered handlers.

        Args:
            event_name: Event name
            payload: Event data (passed as-is to handlers)
        """
        for handler in list(self._handlers.get(event_name, [])):
            try:
                handler(payload)
            except Exception as e:
                self.logger.error(f"Event handler error for {event_name}: {e}")

        for handler in list(self._any_handlers):
            try:
                handler(event_name, payload)
            except Exception as e:
                self.logger.error(f"Event handler error for {event_name}: {e}")

        self.logger.debug(f"Auth event: {event_name}")

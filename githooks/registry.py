"""
Hook Registry: accumulates in-process handlers per event.

Plugins receive the run's HookRegistry in their ``install(registry)`` and
attach handlers to events. Handlers fire in registration order; registering
the same callable twice for one event is a no-op.

Handler signature::

    def handler(session: Session, *args: str) -> HookResult | None

A handler rejects the event by raising (usually PolicyViolation) or by
returning ``HookResult.deny(...)``.
"""

import logging
from collections.abc import Callable
from typing import Any

from githooks.lib.hook_model import HookResult
from githooks.lib.hook_types import HookEvent

logger = logging.getLogger(__name__)

Handler = Callable[..., HookResult | None]


class HookRegistry:
    def __init__(self) -> None:
        # dicts keep insertion order and give identity de-duplication
        self._handlers: dict[HookEvent, dict[Handler, None]] = {}

    def register(self, event: HookEvent | str, handler: Handler) -> Handler:
        """Attach ``handler`` to ``event``. Returns the handler unchanged.

        Raises:
            ValueError: If ``event`` is not a known hook name.
        """
        hook_event = HookEvent(event)
        handlers = self._handlers.setdefault(hook_event, {})
        if handler in handlers:
            logger.debug("handler %s already registered for %s", _name(handler), hook_event)
        else:
            handlers[handler] = None
            logger.debug("registered %s for %s", _name(handler), hook_event)
        return handler

    def on(self, *events: HookEvent | str) -> Callable[[Handler], Handler]:
        """Decorator form of register(), accepting one or more events."""

        def decorator(handler: Handler) -> Handler:
            for event in events:
                self.register(event, handler)
            return handler

        return decorator

    def handlers_for(self, event: HookEvent | str) -> list[Handler]:
        """Handlers for ``event`` in registration order (empty if none)."""
        return list(self._handlers.get(HookEvent(event), {}))


def _name(handler: Any) -> str:
    return getattr(handler, "__qualname__", None) or repr(handler)


def handler_name(handler: Any) -> str:
    """Human-readable handler name for diagnostics (module.qualname)."""
    module = getattr(handler, "__module__", None)
    name = _name(handler)
    return f"{module}.{name}" if module else name

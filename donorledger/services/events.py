"""
In-process event bus.

Handlers subscribe to an event name and receive the payload as keyword
arguments. A failing handler is logged and skipped; it never affects the
ledger write that emitted the event.
"""
import inspect
import logging
from collections import defaultdict
from typing import Any, Callable

logger = logging.getLogger(__name__)

Handler = Callable[..., Any]


class EventBus:
    """Named-event publish/subscribe with sync or async handlers."""

    def __init__(self):
        self._handlers: dict[str, list[Handler]] = defaultdict(list)

    def subscribe(self, event: str, handler: Handler) -> None:
        if handler not in self._handlers[event]:
            self._handlers[event].append(handler)

    def unsubscribe(self, event: str, handler: Handler) -> bool:
        handlers = self._handlers.get(event, [])
        if handler in handlers:
            handlers.remove(handler)
            return True
        return False

    def handlers(self, event: str) -> list[Handler]:
        return list(self._handlers.get(event, []))

    async def emit(self, event: str, **payload: Any) -> int:
        """Call every handler for ``event``. Returns how many succeeded."""
        delivered = 0
        for handler in self.handlers(event):
            try:
                result = handler(**payload)
                if inspect.isawaitable(result):
                    await result
                delivered += 1
            except Exception:
                logger.exception("Event handler %r failed for %s", handler, event)
        return delivered

"""
In-process event bus for notification consumers.

Handlers subscribe per event kind (or to every kind with "*"). Delivery
happens after the engine's own writes have committed; a failing handler
is logged and skipped, never raised back into the engine.
"""

from collections import defaultdict
from collections.abc import Awaitable, Callable

from src.config import get_logger
from src.core.entities.events import DomainEvent
from src.core.interfaces.events import IEventPublisher

logger = get_logger(__name__)

EventHandler = Callable[[DomainEvent], Awaitable[None]]

ALL_KINDS = "*"


class InProcessEventBus(IEventPublisher):
    """Fire-and-forget fan-out to async handlers."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)

    def subscribe(self, kind: str, handler: EventHandler) -> None:
        self._handlers[kind].append(handler)

    def unsubscribe(self, kind: str, handler: EventHandler) -> None:
        if handler in self._handlers.get(kind, []):
            self._handlers[kind].remove(handler)

    async def publish(self, event: DomainEvent) -> None:
        handlers = [*self._handlers.get(event.kind, []), *self._handlers.get(ALL_KINDS, [])]
        logger.debug("event_published", kind=event.kind, handlers=len(handlers))
        for handler in handlers:
            try:
                await handler(event)
            except Exception as e:
                logger.warning(
                    "event_delivery_failed",
                    kind=event.kind,
                    handler=getattr(handler, "__qualname__", repr(handler)),
                    error=str(e),
                )


_event_bus: InProcessEventBus | None = None


def get_event_bus() -> InProcessEventBus:
    """Get singleton event bus."""
    global _event_bus
    if _event_bus is None:
        _event_bus = InProcessEventBus()
    return _event_bus


def reset_event_bus() -> None:
    global _event_bus
    _event_bus = None

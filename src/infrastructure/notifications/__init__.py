"""Notification delivery."""

from src.infrastructure.notifications.event_bus import (
    ALL_KINDS,
    EventHandler,
    InProcessEventBus,
    get_event_bus,
    reset_event_bus,
)

__all__ = [
    "ALL_KINDS",
    "EventHandler",
    "InProcessEventBus",
    "get_event_bus",
    "reset_event_bus",
]

"""Abstract interface for domain event delivery."""

from abc import ABC, abstractmethod

from src.core.entities.events import DomainEvent


class IEventPublisher(ABC):
    """Fire-and-forget delivery to notification consumers."""

    @abstractmethod
    async def publish(self, event: DomainEvent) -> None:
        """Deliver an event. Must not raise into engine code."""
        pass

"""Event bus port (interface).

Domain defines the port, infrastructure provides the implementation.
"""

from typing import Awaitable, Callable, Protocol, Type, TypeVar

from mealchat.domain.events.base import DomainEvent

TEvent = TypeVar("TEvent", bound=DomainEvent)

EventHandler = Callable[[TEvent], Awaitable[None]]


class IEventBus(Protocol):
    """
    Interface for event publishing and subscription.

    Example usage (application layer):
        >>> async def on_meal_saved(event: MealSaved) -> None:
        ...     print(f"Meal {event.meal_id} saved")
        ...
        >>> event_bus.subscribe(MealSaved, on_meal_saved)
        >>> await event_bus.publish(MealSaved.create(...))
    """

    def subscribe(self, event_type: Type[TEvent], handler: EventHandler[TEvent]) -> None:
        """Subscribe a handler to an event type."""
        ...

    async def publish(self, event: TEvent) -> None:
        """
        Publish an event to all subscribed handlers.

        Note:
            - Handlers are called in subscription order
            - If a handler fails, other handlers still execute
        """
        ...

    def unsubscribe(self, event_type: Type[TEvent], handler: EventHandler[TEvent]) -> bool:
        """Unsubscribe a handler; True if it was found and removed."""
        ...

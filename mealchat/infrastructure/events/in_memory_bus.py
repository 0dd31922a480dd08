"""In-memory event bus implementation.

Handlers are stored per event type and awaited in subscription order.
A handler subscribed to a base class (e.g. DomainEvent) receives every
subclass event as well.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Type, TypeVar

from mealchat.domain.events.base import DomainEvent

logger = logging.getLogger(__name__)

TEvent = TypeVar("TEvent", bound=DomainEvent)


def _handler_name(handler: Callable[..., Any]) -> str:
    return getattr(handler, "__name__", repr(handler))


class InMemoryEventBus:
    """
    In-memory implementation of IEventBus port.

    Error handling: a failing handler is logged and the remaining handlers
    still run; publish() never raises because of a handler.

    Example:
        >>> bus = InMemoryEventBus()
        >>>
        >>> async def on_saved(event: MealSaved) -> None:
        ...     print(f"Meal saved: {event.meal_id}")
        >>>
        >>> bus.subscribe(MealSaved, on_saved)
        >>> await bus.publish(MealSaved.create(...))
    """

    def __init__(self) -> None:
        """Initialize event bus with empty handler registry."""
        self._handlers: Dict[Type[DomainEvent], List[Callable[[Any], Awaitable[None]]]] = {}

    def subscribe(
        self,
        event_type: Type[TEvent],
        handler: Callable[[TEvent], Awaitable[None]],
    ) -> None:
        """
        Subscribe a handler to an event type (and its subclasses).

        The same handler subscribed twice is called twice.
        """
        self._handlers.setdefault(event_type, []).append(handler)

        logger.debug(
            "Handler subscribed",
            extra={"event_type": event_type.__name__, "handler": _handler_name(handler)},
        )

    async def publish(self, event: TEvent) -> None:
        """
        Publish an event to every handler subscribed to its type or a base type.

        Handlers for the most specific type run first.
        """
        event_type = type(event)
        handlers = [
            handler
            for cls in event_type.__mro__
            for handler in self._handlers.get(cls, [])
        ]

        if not handlers:
            logger.debug("No handlers for event", extra={"event_type": event_type.__name__})
            return

        logger.info(
            "Publishing event",
            extra={
                "event_type": event_type.__name__,
                "event_id": str(event.event_id),
                "handler_count": len(handlers),
            },
        )

        for handler in handlers:
            try:
                await handler(event)
            except Exception as e:
                logger.error(
                    "Event handler failed",
                    extra={
                        "event_type": event_type.__name__,
                        "event_id": str(event.event_id),
                        "handler": _handler_name(handler),
                        "error": str(e),
                    },
                    exc_info=True,
                )

    def unsubscribe(
        self,
        event_type: Type[TEvent],
        handler: Callable[[TEvent], Awaitable[None]],
    ) -> bool:
        """
        Remove the first subscription of handler for event_type.

        Returns:
            True if handler was found and removed, False otherwise
        """
        handlers = self._handlers.get(event_type, [])
        if handler not in handlers:
            return False

        handlers.remove(handler)
        return True

    def handler_count(self, event_type: Type[TEvent]) -> int:
        """Number of handlers subscribed directly to event_type."""
        return len(self._handlers.get(event_type, []))

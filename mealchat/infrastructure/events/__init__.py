"""Event bus implementations."""

from mealchat.infrastructure.events.in_memory_bus import InMemoryEventBus

__all__ = ["InMemoryEventBus"]

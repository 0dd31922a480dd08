"""Cache implementations."""

from mealchat.infrastructure.cache.in_memory_idempotency_cache import (
    InMemoryIdempotencyCache,
)

__all__ = [
    "InMemoryIdempotencyCache",
]

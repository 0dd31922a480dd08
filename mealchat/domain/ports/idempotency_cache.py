"""
Idempotency cache port.

Caches the server-assigned meal id produced for a client idempotency key so
a retried create does not produce a duplicate meal.
"""

from typing import Optional, Protocol


class IIdempotencyCache(Protocol):
    """Port for idempotency cache implementation.

    Implementations should provide TTL support to prevent infinite cache growth.
    """

    async def get(self, key: str) -> Optional[str]:
        """Get cached meal id for an idempotency key, None if missing or expired."""
        ...

    async def set(self, key: str, meal_id: str, ttl_seconds: int = 3600) -> None:
        """Cache a meal id for an idempotency key."""
        ...

    async def delete(self, key: str) -> None:
        """Delete an idempotency key from cache."""
        ...

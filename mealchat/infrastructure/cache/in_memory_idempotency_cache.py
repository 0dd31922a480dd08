"""
In-memory idempotency cache implementation.

Maps idempotency keys to the meal id created for them, with a TTL.
Single process only.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional, Tuple

logger = logging.getLogger(__name__)


class InMemoryIdempotencyCache:
    """In-memory implementation of IIdempotencyCache.

    Stores meal IDs with expiration times so a repeated create with the
    same key returns the original meal.
    """

    def __init__(self) -> None:
        """Initialize empty cache."""
        # Storage: key -> (meal_id, expiration_time)
        self._cache: Dict[str, Tuple[str, datetime]] = {}

    async def get(self, key: str) -> Optional[str]:
        """Get cached meal ID for an idempotency key.

        Args:
            key: The idempotency key

        Returns:
            The cached meal ID if found and not expired, None otherwise
        """
        if key not in self._cache:
            logger.debug("Idempotency cache miss", extra={"key": key})
            return None

        meal_id, expiration = self._cache[key]

        if datetime.now(timezone.utc) > expiration:
            del self._cache[key]
            logger.debug("Idempotency entry expired", extra={"key": key})
            return None

        logger.debug("Idempotency cache hit", extra={"key": key, "meal_id": meal_id})
        return meal_id

    async def set(self, key: str, meal_id: str, ttl_seconds: int = 3600) -> None:
        """Cache a meal ID for an idempotency key.

        Args:
            key: The idempotency key
            meal_id: The meal ID to cache
            ttl_seconds: Time-to-live in seconds (default: 1 hour)
        """
        expiration = datetime.now(timezone.utc) + timedelta(seconds=ttl_seconds)
        self._cache[key] = (meal_id, expiration)

    async def delete(self, key: str) -> None:
        """Delete an idempotency key from cache."""
        self._cache.pop(key, None)

    def cleanup_expired(self) -> int:
        """Remove all expired entries from cache.

        Returns:
            Number of expired entries removed
        """
        now = datetime.now(timezone.utc)
        expired_keys = [key for key, (_, expiration) in self._cache.items() if now > expiration]

        for key in expired_keys:
            del self._cache[key]

        if expired_keys:
            logger.debug("Expired idempotency entries removed", extra={"count": len(expired_keys)})

        return len(expired_keys)

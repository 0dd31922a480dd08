"""In-memory meal API - implements IMealApi port.

Behaves like the remote persistence API without the network: server ids,
idempotent creates, favorite templates and injectable failures.
"""

import itertools
import logging
from dataclasses import replace
from typing import Dict, List, Optional

from mealchat.domain.meals.entities import (
    FavoriteMeal,
    MealRecord,
    MealTemplate,
    RemoteMeal,
)
from mealchat.domain.ports.idempotency_cache import IIdempotencyCache
from mealchat.domain.shared.errors import ExternalServiceError
from mealchat.infrastructure.cache.in_memory_idempotency_cache import InMemoryIdempotencyCache

logger = logging.getLogger(__name__)


class InMemoryMealApi:
    """
    In-memory implementation of IMealApi for tests and offline use.

    Args:
        idempotency_cache: Key -> meal id cache used to dedupe creates
        idempotency_ttl_s: TTL of idempotency entries
        favorites: Initial favorites

    Attributes:
        fail_creates: Number of upcoming create_meal calls that fail
        fail_deletes: Number of upcoming delete_meal calls that fail
        fail_status: Status code carried by injected failures
    """

    def __init__(
        self,
        idempotency_cache: Optional[IIdempotencyCache] = None,
        idempotency_ttl_s: int = 3600,
        favorites: Optional[List[FavoriteMeal]] = None,
    ) -> None:
        self._cache = idempotency_cache or InMemoryIdempotencyCache()
        self._ttl_s = idempotency_ttl_s
        self._ids = itertools.count(1)
        self.meals: Dict[str, RemoteMeal] = {}
        self.favorites: Dict[str, FavoriteMeal] = {f.id: f for f in favorites or []}
        self.fail_creates = 0
        self.fail_deletes = 0
        self.fail_status = 503
        self.create_calls = 0

    async def create_meal(
        self, record: MealRecord, idempotency_key: Optional[str] = None
    ) -> RemoteMeal:
        self.create_calls += 1

        if self.fail_creates > 0:
            self.fail_creates -= 1
            raise ExternalServiceError("Injected create failure", status_code=self.fail_status)

        if idempotency_key:
            existing = await self._cache.get(idempotency_key)
            if existing is not None and existing in self.meals:
                logger.info(
                    "Idempotent create replayed",
                    extra={"idempotency_key": idempotency_key, "meal_id": existing},
                )
                return self.meals[existing]

        meal = RemoteMeal(
            id=f"meal-{next(self._ids)}",
            description=record.description,
            timestamp=record.timestamp,
            protein_g=record.protein_g,
            calories=record.calories,
            source=record.source.value,
            ai_estimated=record.ai_estimated,
            tags=list(record.tags),
        )
        self.meals[meal.id] = meal

        if idempotency_key:
            await self._cache.set(idempotency_key, meal.id, ttl_seconds=self._ttl_s)

        return meal

    async def delete_meal(self, meal_id: str) -> None:
        if self.fail_deletes > 0:
            self.fail_deletes -= 1
            raise ExternalServiceError("Injected delete failure", status_code=self.fail_status)

        if meal_id not in self.meals:
            raise ExternalServiceError(f"Meal {meal_id} not found", status_code=404)

        del self.meals[meal_id]

    async def use_favorite(self, favorite_id: str) -> MealTemplate:
        favorite = self.favorites.get(favorite_id)
        if favorite is None:
            raise ExternalServiceError(f"Favorite {favorite_id} not found", status_code=404)

        self.favorites[favorite_id] = replace(favorite, use_count=favorite.use_count + 1)

        return MealTemplate(
            description=favorite.description,
            protein_g=favorite.protein_g,
            calories=favorite.calories,
            tags=list(favorite.tags),
        )

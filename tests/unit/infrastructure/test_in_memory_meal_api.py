"""Unit tests for InMemoryMealApi.

Tests focus on:
- Server id assignment
- Idempotent create replay
- Injected failures and missing rows
"""

from datetime import datetime, timezone

import pytest

from mealchat.domain.meals.entities import FavoriteMeal, MealRecord, MealSource
from mealchat.domain.shared.errors import ExternalServiceError
from mealchat.infrastructure.stub import InMemoryMealApi

RECORD = MealRecord(
    description="2 eggs and toast",
    timestamp=datetime(2026, 10, 19, 8, 30, tzinfo=timezone.utc),
    protein_g=15,
    calories=221,
    source=MealSource.TEXT,
    ai_estimated=True,
)


class TestCreate:
    """Test create_meal()."""

    @pytest.mark.asyncio
    async def test_assigns_server_ids(self, meal_api: InMemoryMealApi) -> None:
        first = await meal_api.create_meal(RECORD)
        second = await meal_api.create_meal(RECORD)

        assert (first.id, second.id) == ("meal-1", "meal-2")
        assert first.source == "text"
        assert first.protein_g == 15

    @pytest.mark.asyncio
    async def test_same_key_replays(self, meal_api: InMemoryMealApi) -> None:
        first = await meal_api.create_meal(RECORD, idempotency_key="abc")
        second = await meal_api.create_meal(RECORD, idempotency_key="abc")

        assert second == first
        assert len(meal_api.meals) == 1
        assert meal_api.create_calls == 2

    @pytest.mark.asyncio
    async def test_failed_create_not_cached(self, meal_api: InMemoryMealApi) -> None:
        meal_api.fail_creates = 1

        with pytest.raises(ExternalServiceError) as exc_info:
            await meal_api.create_meal(RECORD, idempotency_key="abc")

        assert exc_info.value.status_code == 503
        meal = await meal_api.create_meal(RECORD, idempotency_key="abc")
        assert meal.id == "meal-1"


class TestDeleteAndFavorites:
    """Test delete_meal() and use_favorite()."""

    @pytest.mark.asyncio
    async def test_delete(self, meal_api: InMemoryMealApi) -> None:
        meal = await meal_api.create_meal(RECORD)

        await meal_api.delete_meal(meal.id)

        assert meal_api.meals == {}

    @pytest.mark.asyncio
    async def test_delete_missing(self, meal_api: InMemoryMealApi) -> None:
        with pytest.raises(ExternalServiceError) as exc_info:
            await meal_api.delete_meal("meal-9")

        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_injected_delete_failure(self, meal_api: InMemoryMealApi) -> None:
        meal = await meal_api.create_meal(RECORD)
        meal_api.fail_deletes = 1

        with pytest.raises(ExternalServiceError):
            await meal_api.delete_meal(meal.id)

        assert meal.id in meal_api.meals

    @pytest.mark.asyncio
    async def test_use_favorite(self) -> None:
        api = InMemoryMealApi(
            favorites=[FavoriteMeal(id="f1", name="Oats", description="Oats with milk", protein_g=16.2, tags=["am"])]
        )

        template = await api.use_favorite("f1")

        assert template.description == "Oats with milk"
        assert template.tags == ["am"]
        assert api.favorites["f1"].use_count == 1

    @pytest.mark.asyncio
    async def test_unknown_favorite(self, meal_api: InMemoryMealApi) -> None:
        with pytest.raises(ExternalServiceError):
            await meal_api.use_favorite("missing")

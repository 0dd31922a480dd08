"""Port (interface) for the remote meal persistence API."""

from typing import Optional, Protocol

from mealchat.domain.meals.entities import MealRecord, MealTemplate, RemoteMeal


class IMealApi(Protocol):
    """
    Interface for the remote persistence API.

    Implementations can be:
    - HTTP client (httpx + retry + circuit breaker)
    - In-memory API (tests, offline use)
    """

    async def create_meal(
        self, record: MealRecord, idempotency_key: Optional[str] = None
    ) -> RemoteMeal:
        """
        Create a meal and return the echoed row with its server id.

        Args:
            record: Clamped, rounded meal payload
            idempotency_key: Client key; repeated keys return the same row

        Raises:
            ExternalServiceError: On any remote failure
        """
        ...

    async def delete_meal(self, meal_id: str) -> None:
        """
        Delete a meal by server id.

        Raises:
            ExternalServiceError: On any remote failure
        """
        ...

    async def use_favorite(self, favorite_id: str) -> MealTemplate:
        """
        Mark a favorite as used and return its meal template.

        Raises:
            ExternalServiceError: On any remote failure
        """
        ...

"""Delete meal command and handler.

Removes a meal optimistically from the local state store, then deletes it
remotely. A failed remote delete puts the entry back with an error marker.
"""

from dataclasses import dataclass
import logging

from mealchat.application.local_state import LocalStateStore
from mealchat.domain.events import MealDeleted
from mealchat.domain.meals.entities import SyncStatus
from mealchat.domain.ports.event_bus import IEventBus
from mealchat.domain.ports.meal_api import IMealApi
from mealchat.domain.shared.errors import PersistenceFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeleteMealCommand:
    """
    Command: Delete meal.

    Attributes:
        meal_id: Server id of the meal to delete
    """
    meal_id: str


class DeleteMealCommandHandler:
    """Handler for DeleteMealCommand."""

    def __init__(
        self,
        meal_api: IMealApi,
        store: LocalStateStore,
        event_bus: IEventBus
    ):
        """
        Initialize handler.

        Args:
            meal_api: Remote persistence port
            store: Local state store
            event_bus: Event bus port
        """
        self._api = meal_api
        self._store = store
        self._event_bus = event_bus

    async def handle(self, command: DeleteMealCommand) -> bool:
        """
        Execute delete command.

        Flow:
        1. Remove the entry from the local store
        2. Delete remotely
        3. On failure restore the entry with a failed marker
        4. Publish MealDeleted event if successful

        Args:
            command: DeleteMealCommand

        Returns:
            True if deleted, False if the meal is not in the local store

        Raises:
            ValueError: If the meal is still being saved
            PersistenceFailure: If the remote delete failed (entry restored)
        """
        logger.info(
            "Deleting meal",
            extra={"meal_id": command.meal_id},
        )

        meal = self._store.get(command.meal_id)
        if meal is None:
            logger.info(
                "Meal not found for deletion",
                extra={"meal_id": command.meal_id},
            )
            return False

        if meal.sync_status is SyncStatus.PENDING:
            raise ValueError(f"Meal {command.meal_id} is still being saved")

        # 1. Optimistic removal
        self._store.remove(command.meal_id)

        # 2. Remote delete
        try:
            await self._api.delete_meal(command.meal_id)
        except Exception as e:
            self._store.restore(meal, error=f"Delete failed: {e}")
            logger.warning(
                "Meal deletion failed, entry restored",
                extra={"meal_id": command.meal_id, "error": str(e)},
            )
            raise PersistenceFailure(
                f"Could not delete meal: {e}",
                local_id=command.meal_id,
                operation="delete",
            ) from e

        logger.info(
            "Meal deleted",
            extra={"meal_id": command.meal_id},
        )

        # 3. Publish MealDeleted event
        await self._event_bus.publish(MealDeleted.create(meal_id=command.meal_id))

        return True

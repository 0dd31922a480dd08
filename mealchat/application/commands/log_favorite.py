"""Log favorite command and handler.

Reuses a saved favorite: the remote API returns the meal template, which
then goes through the same optimistic insert / remote create cycle as a
confirmed estimate.
"""

from dataclasses import dataclass
import logging

from mealchat.application.local_state import LocalStateStore
from mealchat.application.reconciler import AnalysisReconciler
from mealchat.domain.meals.entities import MealEntry, MealSource
from mealchat.domain.ports.meal_api import IMealApi
from mealchat.domain.shared.errors import PersistenceFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LogFavoriteCommand:
    """
    Command: Log a meal from a favorite.

    Attributes:
        favorite_id: Favorite to reuse
    """
    favorite_id: str


class LogFavoriteCommandHandler:
    """Handler for LogFavoriteCommand."""

    def __init__(
        self,
        meal_api: IMealApi,
        reconciler: AnalysisReconciler,
        store: LocalStateStore,
    ):
        self._api = meal_api
        self._reconciler = reconciler
        self._store = store

    async def handle(self, command: LogFavoriteCommand) -> MealEntry:
        """
        Execute the command.

        Returns:
            The synced MealEntry

        Raises:
            PersistenceFailure: If the template lookup or the create failed
        """
        logger.info("Logging favorite", extra={"favorite_id": command.favorite_id})

        try:
            template = await self._api.use_favorite(command.favorite_id)
        except Exception as e:
            logger.warning(
                "Favorite lookup failed",
                extra={"favorite_id": command.favorite_id, "error": str(e)},
            )
            raise PersistenceFailure(f"Could not use favorite: {e}") from e

        entry = await self._reconciler.persist_template(template, source=MealSource.FAVORITE)
        self._store.record_favorite_use(command.favorite_id)

        logger.info(
            "Favorite logged",
            extra={"favorite_id": command.favorite_id, "meal_id": entry.id},
        )
        return entry

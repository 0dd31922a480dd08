"""Local state store.

In-memory cache of meals, favorites and settings rendered by the UI.
Mutated only by the analysis reconciler and the meal CRUD commands.
"""

import logging
from dataclasses import replace
from datetime import date
from typing import Dict, List, Optional

from mealchat.domain.meals.entities import (
    DailyProgress,
    FavoriteMeal,
    MealEntry,
    RemoteMeal,
    SyncStatus,
    UserSettings,
)
from mealchat.domain.shared.errors import MealNotFoundError

logger = logging.getLogger(__name__)


class LocalStateStore:
    """
    Meals keyed by id (local "tmp-N" or server id).

    Invariant: an entry is SYNCED (server id), PENDING (one reconciliation
    in flight) or FAILED (explicit error marker). Nothing else is stored.

    Example:
        >>> store = LocalStateStore()
        >>> store.insert_pending(entry)
        >>> store.confirm_remote_id("tmp-1", remote)
        >>> [m.id for m in store.meals()]
        ['meal-42']
    """

    def __init__(self, settings: Optional[UserSettings] = None) -> None:
        self._meals: Dict[str, MealEntry] = {}
        self._favorites: List[FavoriteMeal] = []
        self._settings = settings or UserSettings()

    # ═══════════════════════════════════════════════════════════
    # MEALS
    # ═══════════════════════════════════════════════════════════

    def insert_pending(self, entry: MealEntry) -> MealEntry:
        """
        Optimistically insert an entry awaiting remote confirmation.

        Raises:
            ValueError: If the id is already present or the entry is not PENDING
        """
        if entry.id in self._meals:
            raise ValueError(f"Meal {entry.id} already in local state")
        if entry.sync_status is not SyncStatus.PENDING:
            raise ValueError(f"Expected a pending entry, got {entry.sync_status.value}")

        self._meals[entry.id] = entry
        logger.debug("Pending meal inserted", extra={"meal_id": entry.id})
        return entry

    def confirm_remote_id(self, local_id: str, remote: RemoteMeal) -> MealEntry:
        """
        Swap a pending entry's local id for the server id.

        The entry keeps its position; values echoed by the server win.

        Raises:
            MealNotFoundError: If local_id is not present
        """
        pending = self._require(local_id)

        confirmed = replace(
            pending,
            id=remote.id,
            description=remote.description or pending.description,
            sync_status=SyncStatus.SYNCED,
            error=None,
        )

        # rebuild to keep insertion order
        self._meals = {
            (confirmed.id if key == local_id else key): (confirmed if key == local_id else value)
            for key, value in self._meals.items()
        }

        logger.debug(
            "Local id confirmed",
            extra={"local_id": local_id, "meal_id": remote.id},
        )
        return confirmed

    def remove(self, meal_id: str) -> MealEntry:
        """
        Remove and return an entry.

        Raises:
            MealNotFoundError: If meal_id is not present
        """
        entry = self._require(meal_id)
        del self._meals[meal_id]
        logger.debug("Meal removed", extra={"meal_id": meal_id})
        return entry

    def restore(self, entry: MealEntry, error: Optional[str] = None) -> MealEntry:
        """Put an entry back, optionally with a FAILED marker."""
        if error:
            entry = replace(entry, sync_status=SyncStatus.FAILED, error=error)
        self._meals[entry.id] = entry
        logger.debug(
            "Meal restored",
            extra={"meal_id": entry.id, "sync_status": entry.sync_status.value},
        )
        return entry

    def mark_failed(self, meal_id: str, error: str) -> MealEntry:
        """
        Attach an explicit error marker to an entry.

        Raises:
            MealNotFoundError: If meal_id is not present
        """
        entry = replace(self._require(meal_id), sync_status=SyncStatus.FAILED, error=error)
        self._meals[meal_id] = entry
        return entry

    def get(self, meal_id: str) -> Optional[MealEntry]:
        return self._meals.get(meal_id)

    def meals(self) -> List[MealEntry]:
        """All entries, most recent first."""
        return sorted(self._meals.values(), key=lambda m: m.timestamp, reverse=True)

    def __len__(self) -> int:
        return len(self._meals)

    def __contains__(self, meal_id: object) -> bool:
        return meal_id in self._meals

    # ═══════════════════════════════════════════════════════════
    # FAVORITES & SETTINGS
    # ═══════════════════════════════════════════════════════════

    def favorites(self) -> List[FavoriteMeal]:
        """Favorites, most used first."""
        return sorted(self._favorites, key=lambda f: f.use_count, reverse=True)

    def set_favorites(self, favorites: List[FavoriteMeal]) -> None:
        self._favorites = list(favorites)

    def get_favorite(self, favorite_id: str) -> Optional[FavoriteMeal]:
        return next((f for f in self._favorites if f.id == favorite_id), None)

    def record_favorite_use(self, favorite_id: str) -> None:
        """Bump the local use counter of a favorite (no-op when unknown)."""
        self._favorites = [
            replace(f, use_count=f.use_count + 1) if f.id == favorite_id else f
            for f in self._favorites
        ]

    @property
    def settings(self) -> UserSettings:
        return self._settings

    def update_settings(
        self,
        protein_goal_g: Optional[int] = None,
        calorie_goal: Optional[int] = None,
    ) -> UserSettings:
        """Partial settings update; None leaves a goal unchanged."""
        self._settings = UserSettings(
            protein_goal_g=protein_goal_g if protein_goal_g is not None else self._settings.protein_goal_g,
            calorie_goal=calorie_goal if calorie_goal is not None else self._settings.calorie_goal,
        )
        logger.info(
            "Settings updated",
            extra={
                "protein_goal_g": self._settings.protein_goal_g,
                "calorie_goal": self._settings.calorie_goal,
            },
        )
        return self._settings

    def daily_progress(self, day: date) -> DailyProgress:
        """
        Totals for a UTC day. FAILED entries are not counted.

        Example:
            >>> store.daily_progress(date(2026, 10, 19)).protein_percent
            45.0
        """
        meals = [
            m for m in self._meals.values()
            if m.local_day() == day and m.sync_status is not SyncStatus.FAILED
        ]
        return DailyProgress(
            day=day,
            protein_g=sum(m.protein_g for m in meals),
            calories=sum(m.calories or 0 for m in meals),
            protein_goal_g=self._settings.protein_goal_g,
            calorie_goal=self._settings.calorie_goal,
            meal_count=len(meals),
        )

    def _require(self, meal_id: str) -> MealEntry:
        entry = self._meals.get(meal_id)
        if entry is None:
            raise MealNotFoundError(f"Meal {meal_id} not found in local state")
        return entry

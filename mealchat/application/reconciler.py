"""Analysis reconciler.

Turns a confirmed estimate into a durable meal entry:
optimistic local insert -> remote create -> swap to the server id, or
roll back and surface a PersistenceFailure.
"""

import asyncio
import itertools
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional, Set
from uuid import uuid4

from mealchat.application.local_state import LocalStateStore
from mealchat.domain.conversation.estimate import NutritionEstimate
from mealchat.domain.conversation.turns import Modality
from mealchat.domain.events import MealSaved, MealSaveFailed
from mealchat.domain.meals.entities import (
    MealEntry,
    MealRecord,
    MealSource,
    MealTemplate,
    SyncStatus,
)
from mealchat.domain.meals.numeric import (
    CALORIES_MAX,
    CARBS_MAX_G,
    FAT_MAX_G,
    PROTEIN_MAX_G,
    clamp_optional,
    clamp_round,
)
from mealchat.domain.ports.event_bus import IEventBus
from mealchat.domain.ports.meal_api import IMealApi
from mealchat.domain.shared.errors import (
    ConfirmationInProgressError,
    NoCurrentEstimateError,
    PersistenceFailure,
)

logger = logging.getLogger(__name__)

_MODALITY_SOURCES = {
    Modality.TEXT: MealSource.TEXT,
    Modality.VOICE: MealSource.VOICE,
    Modality.PHOTO: MealSource.IMAGE,
    Modality.BARCODE: MealSource.BARCODE,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class StagedEstimate:
    """
    The current estimate of a conversation, awaiting confirmation.

    The idempotency key is generated once and reused by every save attempt
    of this estimate.
    """

    estimate: NutritionEstimate
    modality: Modality
    idempotency_key: str = field(default_factory=lambda: uuid4().hex)
    staged_at: datetime = field(default_factory=_utcnow)

    @property
    def source(self) -> MealSource:
        if self.estimate.is_manual:
            return MealSource.MANUAL
        return _MODALITY_SOURCES[self.modality]

    @property
    def ai_estimated(self) -> bool:
        return self.source in (MealSource.TEXT, MealSource.VOICE, MealSource.IMAGE)


class AnalysisReconciler:
    """
    Reconciles confirmed estimates with the remote persistence API.

    Holds at most one current estimate: staging a new one supersedes the
    previous. A failed save keeps the estimate current so it can be retried.

    Example:
        >>> reconciler = AnalysisReconciler(api, store, bus)
        >>> reconciler.stage(estimate, Modality.TEXT)
        >>> entry = await reconciler.confirm()
        >>> entry.sync_status
        <SyncStatus.SYNCED: 'synced'>
    """

    def __init__(
        self,
        meal_api: IMealApi,
        store: LocalStateStore,
        event_bus: IEventBus,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._api = meal_api
        self._store = store
        self._event_bus = event_bus
        self._clock = clock
        self._current: Optional[StagedEstimate] = None
        self._in_flight: Set[str] = set()
        self._local_ids = itertools.count(1)

    @property
    def current(self) -> Optional[StagedEstimate]:
        return self._current

    def stage(self, estimate: NutritionEstimate, modality: Modality) -> StagedEstimate:
        """Make an estimate current, superseding any previous one."""
        self._current = StagedEstimate(estimate=estimate, modality=modality)
        logger.debug(
            "Estimate staged",
            extra={"modality": modality.value, "idempotency_key": self._current.idempotency_key},
        )
        return self._current

    def discard(self) -> None:
        """Drop the current estimate. Never touches the store; idempotent."""
        if self._current is not None:
            logger.debug("Estimate discarded", extra={"idempotency_key": self._current.idempotency_key})
        self._current = None

    async def confirm(self, estimate: Optional[NutritionEstimate] = None) -> MealEntry:
        """
        Persist the current estimate.

        Args:
            estimate: Estimate to stage and persist (text modality) instead of
                      the current one

        Returns:
            The synced MealEntry keyed by the server id

        Raises:
            NoCurrentEstimateError: Nothing staged
            ConfirmationInProgressError: A save of this estimate is in flight
            PersistenceFailure: Remote create failed; the local insert was rolled back
        """
        if estimate is not None and (self._current is None or self._current.estimate is not estimate):
            self.stage(estimate, Modality.TEXT)

        staged = self._current
        if staged is None:
            raise NoCurrentEstimateError("No estimate to save")

        if staged.idempotency_key in self._in_flight:
            raise ConfirmationInProgressError("A save of this estimate is already in progress")

        record = self._to_record(staged)
        self._in_flight.add(staged.idempotency_key)
        try:
            entry = await self._persist(record, staged.idempotency_key)
        finally:
            self._in_flight.discard(staged.idempotency_key)

        if self._current is staged:
            self._current = None
        return entry

    async def persist_template(self, template: MealTemplate, source: MealSource = MealSource.FAVORITE) -> MealEntry:
        """Run the optimistic insert / remote create cycle for a meal template."""
        record = MealRecord(
            description=template.description,
            timestamp=self._clock(),
            protein_g=clamp_round("protein_g", template.protein_g, PROTEIN_MAX_G),
            calories=clamp_optional("calories", template.calories, CALORIES_MAX),
            source=source,
            ai_estimated=False,
            tags=list(template.tags),
            carbs_g=clamp_optional("carbs_g", template.carbs_g, CARBS_MAX_G),
            fat_g=clamp_optional("fat_g", template.fat_g, FAT_MAX_G),
        )
        return await self._persist(record, idempotency_key=uuid4().hex)

    async def _persist(self, record: MealRecord, idempotency_key: str) -> MealEntry:
        local_id = f"tmp-{next(self._local_ids)}"
        self._store.insert_pending(
            MealEntry(
                id=local_id,
                timestamp=record.timestamp,
                description=record.description,
                protein_g=record.protein_g,
                calories=record.calories,
                source=record.source,
                ai_estimated=record.ai_estimated,
                tags=list(record.tags),
                sync_status=SyncStatus.PENDING,
            )
        )

        logger.info(
            "Saving meal",
            extra={
                "local_id": local_id,
                "source": record.source.value,
                "protein_g": record.protein_g,
                "idempotency_key": idempotency_key,
            },
        )

        try:
            remote = await self._api.create_meal(record, idempotency_key=idempotency_key)
        except asyncio.CancelledError:
            self._store.remove(local_id)
            logger.warning("Meal save cancelled, rolled back", extra={"local_id": local_id})
            raise
        except Exception as e:
            self._store.remove(local_id)
            logger.warning(
                "Meal save failed, rolled back",
                extra={
                    "local_id": local_id,
                    "error": str(e),
                    "status_code": getattr(e, "status_code", None),
                },
            )
            await self._event_bus.publish(MealSaveFailed.create(local_id=local_id, reason=str(e)))
            raise PersistenceFailure(f"Could not save meal: {e}", local_id=local_id) from e

        entry = self._store.confirm_remote_id(local_id, remote)

        logger.info("Meal saved", extra={"local_id": local_id, "meal_id": entry.id})
        await self._event_bus.publish(
            MealSaved.create(
                local_id=local_id,
                meal_id=entry.id,
                protein_g=entry.protein_g,
                calories=entry.calories,
                source=entry.source.value,
            )
        )
        return entry

    def _to_record(self, staged: StagedEstimate) -> MealRecord:
        estimate = staged.estimate
        return MealRecord(
            description=estimate.description,
            timestamp=self._clock(),
            protein_g=clamp_round("protein_g", estimate.protein_g, PROTEIN_MAX_G),
            calories=clamp_optional("calories", estimate.calories, CALORIES_MAX),
            source=staged.source,
            ai_estimated=staged.ai_estimated,
            tags=[],
            carbs_g=clamp_optional("carbs_g", estimate.carbs_g, CARBS_MAX_G),
            fat_g=clamp_optional("fat_g", estimate.fat_g, FAT_MAX_G),
        )

"""Meal reconciliation events.

Raised by the analysis reconciler and the meal CRUD commands.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from .base import DomainEvent


@dataclass(frozen=True)
class MealSaved(DomainEvent):
    """Domain event: an optimistic meal entry was confirmed by the remote API.

    Attributes:
        local_id: Temporary identifier used for the optimistic insert.
        meal_id: Server-assigned identifier now used by the local entry.
        protein_g: Persisted protein grams (clamped, rounded).
        calories: Persisted calories, if any.
        source: Source modality of the entry.
    """

    local_id: str
    meal_id: str
    protein_g: int
    calories: Optional[int]
    source: str

    @classmethod
    def create(
        cls,
        local_id: str,
        meal_id: str,
        protein_g: int,
        calories: Optional[int],
        source: str,
    ) -> "MealSaved":
        return cls(
            event_id=uuid4(),
            occurred_at=datetime.now(timezone.utc),
            local_id=local_id,
            meal_id=meal_id,
            protein_g=protein_g,
            calories=calories,
            source=source,
        )


@dataclass(frozen=True)
class MealSaveFailed(DomainEvent):
    """Domain event: remote create failed and the optimistic entry was rolled back.

    Attributes:
        local_id: Temporary identifier of the rolled-back entry.
        reason: Error description surfaced to the user.
    """

    local_id: str
    reason: str

    @classmethod
    def create(cls, local_id: str, reason: str) -> "MealSaveFailed":
        return cls(
            event_id=uuid4(),
            occurred_at=datetime.now(timezone.utc),
            local_id=local_id,
            reason=reason,
        )


@dataclass(frozen=True)
class MealDeleted(DomainEvent):
    """Domain event: a meal was deleted locally and remotely."""

    meal_id: str

    @classmethod
    def create(cls, meal_id: str) -> "MealDeleted":
        if not meal_id:
            raise ValueError("meal_id cannot be empty")

        return cls(
            event_id=uuid4(),
            occurred_at=datetime.now(timezone.utc),
            meal_id=meal_id,
        )

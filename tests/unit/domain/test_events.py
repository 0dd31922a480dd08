"""Unit tests for domain events."""

import dataclasses
from datetime import datetime
from uuid import uuid4

import pytest

from mealchat.domain.events import (
    ClarificationRequested,
    DomainEvent,
    EstimateFinalized,
    MealDeleted,
    MealSaved,
    MealSaveFailed,
)


class TestDomainEvents:
    """Test event factories and invariants."""

    def test_naive_timestamp_rejected(self) -> None:
        with pytest.raises(ValueError):
            DomainEvent(event_id=uuid4(), occurred_at=datetime(2026, 1, 1))

    def test_estimate_finalized(self) -> None:
        event = EstimateFinalized.create("voice", 46.5, 0.9)

        assert event.modality == "voice"
        assert event.occurred_at.tzinfo is not None

    def test_estimate_finalized_confidence_range(self) -> None:
        with pytest.raises(ValueError):
            EstimateFinalized.create("text", 10.0, 1.2)

    def test_clarification_negative_count(self) -> None:
        with pytest.raises(ValueError):
            ClarificationRequested.create("quantity", "text", -1)

    def test_meal_saved(self) -> None:
        event = MealSaved.create("tmp-1", "meal-1", 15, 221, "text")

        assert event.local_id == "tmp-1"
        assert event.meal_id == "meal-1"

    def test_meal_deleted_requires_id(self) -> None:
        with pytest.raises(ValueError):
            MealDeleted.create("")

    def test_events_are_frozen_and_unique(self) -> None:
        first = MealSaveFailed.create("tmp-1", "boom")
        second = MealSaveFailed.create("tmp-1", "boom")

        assert first.event_id != second.event_id
        with pytest.raises(dataclasses.FrozenInstanceError):
            first.reason = "other"  # type: ignore[misc]

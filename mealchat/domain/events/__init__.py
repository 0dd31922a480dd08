"""Domain events for the conversation engine and meal reconciliation."""

from .base import DomainEvent
from .conversation_events import ClarificationRequested, EstimateFinalized
from .meal_events import MealDeleted, MealSaved, MealSaveFailed

__all__ = [
    "DomainEvent",
    "ClarificationRequested",
    "EstimateFinalized",
    "MealDeleted",
    "MealSaved",
    "MealSaveFailed",
]

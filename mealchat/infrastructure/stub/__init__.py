"""Stub adapters: deterministic scorer and in-memory meal API."""

from mealchat.infrastructure.stub.in_memory_meal_api import InMemoryMealApi
from mealchat.infrastructure.stub.stub_scorer import StubNutritionScorer

__all__ = ["InMemoryMealApi", "StubNutritionScorer"]

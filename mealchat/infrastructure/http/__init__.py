"""HTTP adapters for the analysis and meal persistence APIs."""

from mealchat.infrastructure.http.meal_api_client import MealApiClient
from mealchat.infrastructure.http.scoring_client import HttpNutritionScorer

__all__ = ["HttpNutritionScorer", "MealApiClient"]

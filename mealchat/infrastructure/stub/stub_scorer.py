"""Stub nutrition scorer for testing.

Deterministic keyword lookup; never calls external APIs. Useful for
offline runs and end-to-end tests of the conversation flow.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from mealchat.domain.conversation.context import ConversationContext
from mealchat.domain.conversation.estimate import NutritionEstimate
from mealchat.domain.conversation.quantity import QuantityParse, parse_quantity
from mealchat.domain.conversation.turns import (
    BarcodeTurn,
    PhotoTurn,
    TextTurn,
    Turn,
    VoiceTurn,
)
from mealchat.domain.shared.errors import ScoringFailure


@dataclass(frozen=True)
class _Food:
    name: str
    keywords: Tuple[str, ...]
    protein: float
    calories: float
    carbs: float
    fat: float
    unit_g: float


# Per 100 g; unit_g is the typical single portion
FOODS: Tuple[_Food, ...] = (
    _Food("chicken", ("chicken", "poulet"), 31.0, 165.0, 0.0, 3.6, 150.0),
    _Food("egg", ("egg", "oeuf", "œuf"), 13.0, 155.0, 1.1, 11.0, 50.0),
    _Food("toast", ("toast", "bread", "pain", "tartine"), 9.0, 265.0, 49.0, 3.2, 25.0),
    _Food("pasta", ("pasta", "pâtes", "spaghetti", "penne"), 5.0, 140.0, 27.5, 1.0, 150.0),
    _Food("rice", ("rice", "riz"), 2.7, 130.0, 28.0, 0.3, 150.0),
    _Food("salad", ("salad", "salade"), 1.5, 20.0, 4.0, 0.2, 150.0),
    _Food("salmon", ("salmon", "saumon"), 20.0, 208.0, 0.0, 13.0, 150.0),
    _Food("tuna", ("tuna", "thon"), 26.0, 132.0, 0.0, 1.0, 100.0),
    _Food("beef", ("beef", "steak", "boeuf", "bœuf"), 26.0, 250.0, 0.0, 15.0, 150.0),
    _Food("tofu", ("tofu",), 8.0, 76.0, 1.9, 4.8, 150.0),
    _Food("lentils", ("lentil", "lentille"), 9.0, 116.0, 20.0, 0.4, 150.0),
    _Food("yogurt", ("yogurt", "yoghurt", "yaourt", "skyr"), 10.0, 59.0, 3.6, 0.4, 125.0),
    _Food("cheese", ("cheese", "fromage"), 25.0, 402.0, 1.3, 33.0, 30.0),
    _Food("milk", ("milk", "lait"), 3.4, 42.0, 5.0, 1.0, 250.0),
    _Food("oats", ("oat", "porridge", "avoine"), 13.0, 389.0, 66.0, 7.0, 40.0),
    _Food("apple", ("apple", "pomme"), 0.3, 52.0, 14.0, 0.2, 150.0),
    _Food("banana", ("banana", "banane"), 1.1, 89.0, 23.0, 0.3, 120.0),
)

_PATTERNS: List[Tuple[_Food, "re.Pattern[str]"]] = [
    (food, re.compile(r"\b(?:" + "|".join(re.escape(k) for k in food.keywords) + r")(?:e?s)?\b"))
    for food in FOODS
]

QUANTIFIED_CONFIDENCE = 0.9
UNQUANTIFIED_CONFIDENCE = 0.4
UNKNOWN_CONFIDENCE = 0.2

PHOTO_ESTIMATE = NutritionEstimate(
    description="Grilled chicken with salad",
    detected_foods=["chicken", "salad"],
    protein_g=48.0,
    calories=285.0,
    carbs_g=6.0,
    fat_g=5.7,
    confidence=0.7,
    estimated_weight_g=300.0,
)


class StubNutritionScorer:
    """
    Stub implementation of INutritionScorer for testing.

    Returns hardcoded nutrition based on food keywords found in the text.
    Photos always return the same plate; barcodes use the product record.

    Args:
        failures: Number of upcoming calls that raise ScoringFailure
    """

    def __init__(self, failures: int = 0) -> None:
        self.failures = failures
        self.calls: List[Turn] = []

    async def estimate(self, turn: Turn, context: ConversationContext) -> NutritionEstimate:
        self.calls.append(turn)

        if self.failures > 0:
            self.failures -= 1
            raise ScoringFailure("Stub scorer failure")

        if isinstance(turn, BarcodeTurn):
            return NutritionEstimate.from_product(turn.product)
        if isinstance(turn, PhotoTurn):
            return PHOTO_ESTIMATE
        if isinstance(turn, TextTurn):
            return self._from_text(turn.text, voice=False)
        if isinstance(turn, VoiceTurn):
            return self._from_text(turn.transcript, voice=True)
        raise ScoringFailure(f"Unsupported turn: {turn!r}")

    def _from_text(self, text: str, voice: bool) -> NutritionEstimate:
        lowered = text.lower()
        found: List[Tuple[int, _Food]] = []
        for food, pattern in _PATTERNS:
            match = pattern.search(lowered)
            if match:
                found.append((match.start(), food))
        foods = [food for _, food in sorted(found, key=lambda item: item[0])]

        if not foods:
            return NutritionEstimate(
                description=text,
                detected_foods=[],
                protein_g=0.0,
                confidence=UNKNOWN_CONFIDENCE,
                suggestions=["Try naming the food, e.g. \"grilled chicken\""],
            )

        quantity = parse_quantity(text)
        grams = [self._portion(food, quantity if i == 0 else None) for i, food in enumerate(foods)]
        total = sum(grams)
        quantified = quantity.has_quantity()

        return NutritionEstimate(
            description=text,
            detected_foods=[food.name for food in foods],
            protein_g=sum(f.protein * g / 100.0 for f, g in zip(foods, grams)),
            calories=sum(f.calories * g / 100.0 for f, g in zip(foods, grams)),
            carbs_g=sum(f.carbs * g / 100.0 for f, g in zip(foods, grams)),
            fat_g=sum(f.fat * g / 100.0 for f, g in zip(foods, grams)),
            confidence=QUANTIFIED_CONFIDENCE if quantified else UNQUANTIFIED_CONFIDENCE,
            completeness=(90.0 if quantified else 60.0) if voice else None,
            estimated_weight_g=total,
        )

    @staticmethod
    def _portion(food: _Food, quantity: Optional[QuantityParse]) -> float:
        if quantity is None or not quantity.has_quantity():
            return food.unit_g
        if quantity.unit_type == "weight":
            return quantity.grams
        return (quantity.count or 1.0) * food.unit_g

"""
Nutrition estimate model.

Structured output of the external scoring collaborator. Read-only to the
conversation engine: rescaling produces a new instance.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from mealchat.domain.conversation.turns import BarcodeProduct


class NutritionEstimate(BaseModel):
    """
    Nutrition estimate for one described meal.

    Values refer to ``estimated_weight_g`` grams of food (100 g unless the
    scorer says otherwise).

    Example:
        >>> estimate = NutritionEstimate(
        ...     description="2 eggs and toast",
        ...     detected_foods=["eggs", "toast"],
        ...     protein_g=14,
        ...     calories=250,
        ...     confidence=0.9,
        ... )
        >>> estimate.primary_food()
        'eggs'
    """

    model_config = ConfigDict(frozen=True)

    description: str = Field(..., description="Human readable meal description")
    detected_foods: list[str] = Field(default_factory=list, description="Ordered food names")
    protein_g: float = Field(..., description="Protein in grams")
    calories: Optional[float] = Field(default=None, description="Energy in kcal")
    carbs_g: Optional[float] = None
    fat_g: Optional[float] = None
    confidence: float = Field(..., ge=0.0, le=1.0, description="Scorer confidence 0-1")
    completeness: Optional[float] = Field(
        default=None, ge=0.0, le=100.0, description="Voice description completeness %"
    )
    suggestions: list[str] = Field(default_factory=list, description="Free-text hints")
    estimated_weight_g: float = Field(default=100.0, gt=0, description="Portion the values refer to")
    is_manual: bool = False

    @field_validator("detected_foods")
    @classmethod
    def strip_foods(cls, v: list[str]) -> list[str]:
        """Drop blank food names."""
        return [food.strip() for food in v if food and food.strip()]

    def primary_food(self) -> Optional[str]:
        """First detected food, if any."""
        return self.detected_foods[0] if self.detected_foods else None

    def scaled(self, factor: float, description: Optional[str] = None) -> NutritionEstimate:
        """
        Return a copy with nutrient values and weight multiplied by factor.

        Precision is kept; rounding happens at the reconciliation boundary.
        """
        return self.model_copy(
            update={
                "description": description or self.description,
                "protein_g": self.protein_g * factor,
                "calories": None if self.calories is None else self.calories * factor,
                "carbs_g": None if self.carbs_g is None else self.carbs_g * factor,
                "fat_g": None if self.fat_g is None else self.fat_g * factor,
                "estimated_weight_g": self.estimated_weight_g * factor,
            }
        )

    def per_100g(self) -> NutritionEstimate:
        """Normalize values to a 100 g portion."""
        if self.estimated_weight_g == 100.0:
            return self
        return self.scaled(100.0 / self.estimated_weight_g)

    @classmethod
    def from_product(cls, product: BarcodeProduct) -> NutritionEstimate:
        """Convert a barcode product record (per 100 g) into an estimate."""
        return cls(
            description=f"{product.display_name()} (per 100g)",
            detected_foods=[product.name],
            protein_g=product.protein_100g,
            calories=product.calories_100g,
            carbs_g=product.carbs_100g,
            fat_g=product.fat_100g,
            confidence=product.confidence,
            estimated_weight_g=100.0,
        )

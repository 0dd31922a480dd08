"""Wire models for the remote meal API.

Response envelopes are ``{"success": bool, "data": {...}, "message": str}``.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from mealchat.domain.conversation.estimate import NutritionEstimate
from mealchat.domain.meals.entities import MealRecord, MealTemplate, RemoteMeal


class AnalysisPayload(BaseModel):
    """``data.analysis`` of POST /meals/analyze."""

    model_config = ConfigDict(extra="ignore")

    input_text: Optional[str] = None
    detected_foods: List[str] = Field(default_factory=list)
    confidence_score: float = Field(..., ge=0.0, le=1.0)
    estimated_protein: Optional[float] = Field(default=None, ge=0.0)
    estimated_calories: Optional[float] = Field(default=None, ge=0.0)
    estimated_completeness: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    estimated_weight_g: Optional[float] = Field(default=None, gt=0.0)
    suggestions: List[str] = Field(default_factory=list)

    def to_estimate(self) -> NutritionEstimate:
        foods = [f for f in self.detected_foods if f and f.strip()]
        description = self.input_text or ", ".join(foods) or "Unidentified meal"
        return NutritionEstimate(
            description=description,
            detected_foods=foods,
            protein_g=self.estimated_protein or 0.0,
            calories=self.estimated_calories,
            confidence=self.confidence_score,
            completeness=(
                None if self.estimated_completeness is None else self.estimated_completeness * 100.0
            ),
            suggestions=self.suggestions,
            estimated_weight_g=self.estimated_weight_g or 100.0,
        )


class MealPayload(BaseModel):
    """``data.meal`` of POST /meals."""

    model_config = ConfigDict(extra="ignore")

    id: str
    description: str = ""
    meal_timestamp: datetime
    protein_grams: float = 0.0
    calories: Optional[float] = None
    source_type: Optional[str] = None
    ai_estimated: bool = False
    tags: List[str] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> str:
        return str(v)

    def to_remote(self) -> RemoteMeal:
        return RemoteMeal(
            id=self.id,
            description=self.description,
            timestamp=self.meal_timestamp,
            protein_g=self.protein_grams,
            calories=self.calories,
            source=self.source_type,
            ai_estimated=self.ai_estimated,
            tags=list(self.tags),
        )


class MealTemplatePayload(BaseModel):
    """``data.mealTemplate`` of POST /meals/favorites/{id}/use."""

    model_config = ConfigDict(extra="ignore")

    description: str
    protein_grams: float = 0.0
    calories: Optional[float] = None
    carbs_grams: Optional[float] = None
    fat_grams: Optional[float] = None
    tags: List[str] = Field(default_factory=list)

    def to_template(self) -> MealTemplate:
        return MealTemplate(
            description=self.description,
            protein_g=self.protein_grams,
            calories=self.calories,
            carbs_g=self.carbs_grams,
            fat_g=self.fat_grams,
            tags=list(self.tags),
        )


def meal_record_to_json(record: MealRecord) -> Dict[str, Any]:
    """Create-meal request body; absent optional values are omitted."""
    body: Dict[str, Any] = {
        "description": record.description,
        "meal_timestamp": record.timestamp.isoformat(),
        "protein_grams": record.protein_g,
        "source_type": record.source.value,
        "ai_estimated": record.ai_estimated,
        "tags": list(record.tags),
    }
    if record.calories is not None:
        body["calories"] = record.calories
    if record.carbs_g is not None:
        body["carbs_grams"] = record.carbs_g
    if record.fat_g is not None:
        body["fat_grams"] = record.fat_g
    return body

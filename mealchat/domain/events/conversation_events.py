"""Conversation events.

Raised by the conversation session when a turn ends in a clarification
request or a finalized estimate.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import uuid4

from .base import DomainEvent


@dataclass(frozen=True)
class EstimateFinalized(DomainEvent):
    """Domain event: a turn produced a finalized nutrition estimate.

    Attributes:
        modality: Modality of the turn that produced the estimate.
        protein_g: Estimated protein (unrounded).
        confidence: Scorer confidence.
    """

    modality: str
    protein_g: float
    confidence: float

    @classmethod
    def create(cls, modality: str, protein_g: float, confidence: float) -> "EstimateFinalized":
        if not 0.0 <= confidence <= 1.0:
            raise ValueError(f"confidence must be between 0.0 and 1.0, got {confidence}")

        return cls(
            event_id=uuid4(),
            occurred_at=datetime.now(timezone.utc),
            modality=modality,
            protein_g=protein_g,
            confidence=confidence,
        )


@dataclass(frozen=True)
class ClarificationRequested(DomainEvent):
    """Domain event: the engine asked the user to disambiguate.

    Attributes:
        kind: "quantity" or "identification".
        modality: Modality of the turn that needed clarification.
        suggestion_count: Number of suggestions offered.
    """

    kind: str
    modality: str
    suggestion_count: int

    @classmethod
    def create(cls, kind: str, modality: str, suggestion_count: int) -> "ClarificationRequested":
        if suggestion_count < 0:
            raise ValueError(f"suggestion_count cannot be negative, got {suggestion_count}")

        return cls(
            event_id=uuid4(),
            occurred_at=datetime.now(timezone.utc),
            kind=kind,
            modality=modality,
            suggestion_count=suggestion_count,
        )

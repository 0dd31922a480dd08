"""Turn variants - one normalized unit of user input.

A Turn is a tagged variant: TextTurn | VoiceTurn | PhotoTurn | BarcodeTurn.
Consumers dispatch on the concrete type and end with ``assert_never`` so a new
modality cannot be added without touching every consumer.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union


class Modality(str, Enum):
    """Input modality of a turn."""

    TEXT = "text"
    VOICE = "voice"
    PHOTO = "photo"
    BARCODE = "barcode"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class BarcodeProduct:
    """
    Product record resolved from a barcode by an external lookup.

    Nutrition values are per 100 g, as returned by product databases
    such as OpenFoodFacts.

    Example:
        >>> product = BarcodeProduct(
        ...     barcode="3017620422003",
        ...     name="Nutella",
        ...     brand="Ferrero",
        ...     protein_100g=6.3,
        ...     calories_100g=539.0,
        ... )
        >>> product.display_name()
        'Nutella (Ferrero)'
    """

    barcode: str
    name: str
    brand: Optional[str] = None
    protein_100g: float = 0.0
    calories_100g: Optional[float] = None
    carbs_100g: Optional[float] = None
    fat_100g: Optional[float] = None
    fiber_100g: Optional[float] = None
    serving_size_g: Optional[float] = None
    confidence: float = 0.9

    def __post_init__(self) -> None:
        """Validate product invariants."""
        if not self.barcode or not self.barcode.strip():
            raise ValueError("Barcode cannot be empty")

        if not self.name or not self.name.strip():
            raise ValueError("Product name cannot be empty")

        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Confidence must be between 0 and 1, got {self.confidence}")

    def display_name(self) -> str:
        """Name with brand in parentheses when known."""
        if self.brand:
            return f"{self.name} ({self.brand})"
        return self.name


@dataclass(frozen=True)
class TextTurn:
    """Free text typed by the user (or a selected suggestion value)."""

    text: str
    timestamp: datetime = field(default_factory=_utcnow)

    @property
    def modality(self) -> Modality:
        return Modality.TEXT


@dataclass(frozen=True)
class VoiceTurn:
    """Transcript produced by an external speech-to-text engine."""

    transcript: str
    timestamp: datetime = field(default_factory=_utcnow)

    @property
    def modality(self) -> Modality:
        return Modality.VOICE


@dataclass(frozen=True)
class PhotoTurn:
    """Captured image, carried as an opaque reference (bytes, data URL or URL)."""

    image: Union[bytes, str]
    media_type: Optional[str] = None
    timestamp: datetime = field(default_factory=_utcnow)

    @property
    def modality(self) -> Modality:
        return Modality.PHOTO

    def __repr__(self) -> str:
        size = len(self.image)
        return f"PhotoTurn(media_type={self.media_type!r}, size={size})"


@dataclass(frozen=True)
class BarcodeTurn:
    """Pre-resolved barcode product."""

    product: BarcodeProduct
    timestamp: datetime = field(default_factory=_utcnow)

    @property
    def modality(self) -> Modality:
        return Modality.BARCODE


Turn = Union[TextTurn, VoiceTurn, PhotoTurn, BarcodeTurn]


def turn_text(turn: Turn) -> Optional[str]:
    """Return the textual payload of a text or voice turn, None otherwise."""
    if isinstance(turn, TextTurn):
        return turn.text
    if isinstance(turn, VoiceTurn):
        return turn.transcript
    return None

"""Input normalizer - capture payloads to canonical turns.

Pure transform: no I/O, no network. Barcode products are resolved by an
external lookup before the turn is constructed.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional, Union

from mealchat.domain.conversation.turns import (
    BarcodeProduct,
    BarcodeTurn,
    Modality,
    PhotoTurn,
    TextTurn,
    Turn,
    VoiceTurn,
)
from mealchat.domain.shared.errors import EmptyInputError

logger = logging.getLogger(__name__)


class InputNormalizer:
    """
    Converts one of four input shapes into a Turn.

    Example:
        >>> normalizer = InputNormalizer()
        >>> normalizer.normalize_text("  2 eggs and toast ")
        TextTurn(text='2 eggs and toast', ...)
    """

    def normalize_text(self, text: Optional[str], timestamp: Optional[datetime] = None) -> TextTurn:
        """
        Normalize typed text.

        Raises:
            EmptyInputError: If text is None, empty or whitespace only
        """
        cleaned = self._clean(text, Modality.TEXT)
        return TextTurn(text=cleaned, timestamp=timestamp or _utcnow())

    def normalize_voice(
        self, transcript: Optional[str], timestamp: Optional[datetime] = None
    ) -> VoiceTurn:
        """
        Normalize a speech-to-text transcript.

        Raises:
            EmptyInputError: If transcript is None, empty or whitespace only
        """
        cleaned = self._clean(transcript, Modality.VOICE)
        return VoiceTurn(transcript=cleaned, timestamp=timestamp or _utcnow())

    def normalize_photo(
        self,
        image: Union[bytes, str, None],
        media_type: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> PhotoTurn:
        """
        Wrap a captured image without decoding it.

        Raises:
            EmptyInputError: If the image reference is missing or zero-length
        """
        if image is None or len(image) == 0:
            raise EmptyInputError(Modality.PHOTO.value)

        return PhotoTurn(image=image, media_type=media_type, timestamp=timestamp or _utcnow())

    def normalize_barcode(
        self, product: Optional[BarcodeProduct], timestamp: Optional[datetime] = None
    ) -> BarcodeTurn:
        """
        Wrap a pre-resolved product record as-is.

        Raises:
            EmptyInputError: If no product was resolved
        """
        if product is None:
            raise EmptyInputError(Modality.BARCODE.value)

        return BarcodeTurn(product=product, timestamp=timestamp or _utcnow())

    def normalize(self, modality: Union[Modality, str], payload: Any) -> Turn:
        """Dispatch on modality name."""
        modality = Modality(modality)

        if modality is Modality.TEXT:
            return self.normalize_text(payload)
        if modality is Modality.VOICE:
            return self.normalize_voice(payload)
        if modality is Modality.PHOTO:
            return self.normalize_photo(payload)
        if modality is Modality.BARCODE:
            return self.normalize_barcode(payload)

        raise ValueError(f"Unsupported modality: {modality}")

    @staticmethod
    def _clean(value: Optional[str], modality: Modality) -> str:
        cleaned = (value or "").strip()
        if not cleaned:
            logger.debug("Rejected empty input", extra={"modality": modality.value})
            raise EmptyInputError(modality.value)
        return cleaned


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)

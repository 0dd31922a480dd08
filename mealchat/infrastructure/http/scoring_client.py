"""HTTP nutrition scorer - implements INutritionScorer port.

Posts text, voice and photo turns to the analysis endpoint. Barcode turns
carry a resolved product record and are converted locally.

No retries: the dialogue surfaces a retry action instead.
"""

import base64
from typing import Any, Dict, Optional

import httpx
import structlog
from pydantic import ValidationError

from mealchat.domain.conversation.context import ConversationContext
from mealchat.domain.conversation.estimate import NutritionEstimate
from mealchat.domain.conversation.turns import (
    BarcodeTurn,
    PhotoTurn,
    TextTurn,
    Turn,
    VoiceTurn,
)
from mealchat.domain.shared.errors import ScoringFailure
from mealchat.infrastructure.http.models import AnalysisPayload

logger = structlog.get_logger(__name__)


class HttpNutritionScorer:
    """
    Scorer backed by POST /meals/analyze.

    Example:
        >>> async with HttpNutritionScorer("https://host/api", token="...") as scorer:
        ...     estimate = await scorer.estimate(TextTurn("2 eggs"), ConversationContext())
    """

    TIMEOUT_S = 8.0

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout_s: float = TIMEOUT_S,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._timeout_s = timeout_s
        self._transport = transport
        self._session: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "HttpNutritionScorer":
        """Async context manager entry."""
        self._session = self._build_session()
        return self

    async def __aexit__(self, *args: object) -> None:
        """Async context manager exit."""
        await self.aclose()

    async def aclose(self) -> None:
        if self._session:
            await self._session.aclose()
            self._session = None

    async def estimate(self, turn: Turn, context: ConversationContext) -> NutritionEstimate:
        """
        Estimate nutrition for a turn.

        Raises:
            ScoringFailure: Timeout, HTTP error or malformed response
        """
        if isinstance(turn, BarcodeTurn):
            return NutritionEstimate.from_product(turn.product)

        body = self._request_body(turn, context)
        session = self._session or self._ensure_session()

        try:
            response = await session.post("/meals/analyze", json=body)
        except httpx.TimeoutException as e:
            logger.warning("Scorer timeout", input_type=body["input_type"])
            raise ScoringFailure("Analysis timed out") from e
        except httpx.HTTPError as e:
            logger.error("Scorer transport error", input_type=body["input_type"], error=str(e))
            raise ScoringFailure(f"Analysis service unreachable: {e}") from e

        if response.status_code >= 400:
            logger.warning(
                "Scorer rejected request",
                input_type=body["input_type"],
                status_code=response.status_code,
            )
            raise ScoringFailure(f"Analysis failed with status {response.status_code}")

        try:
            payload = response.json()
            analysis = AnalysisPayload.model_validate(payload["data"]["analysis"])
        except (ValueError, KeyError, TypeError, ValidationError) as e:
            logger.error("Malformed analysis response", error=str(e))
            raise ScoringFailure("Malformed analysis response") from e

        estimate = analysis.to_estimate()
        logger.info(
            "Turn scored",
            input_type=body["input_type"],
            confidence=estimate.confidence,
            detected_foods=len(estimate.detected_foods),
        )
        return estimate

    @staticmethod
    def _request_body(turn: Turn, context: ConversationContext) -> Dict[str, Any]:
        body: Dict[str, Any]
        if isinstance(turn, TextTurn):
            body = {"input_type": "text", "input_text": turn.text}
        elif isinstance(turn, VoiceTurn):
            body = {"input_type": "voice", "input_text": turn.transcript}
        elif isinstance(turn, PhotoTurn):
            body = {"input_type": "image", "photo_data": _encode_image(turn)}
        else:
            raise ScoringFailure(f"Unsupported turn for analysis: {turn!r}")

        body["context"] = {
            "current_product": context.current_product,
            "detected_foods": list(context.detected_foods),
            "last_quantity": context.last_quantity,
        }
        return body

    def _ensure_session(self) -> httpx.AsyncClient:
        self._session = self._build_session()
        return self._session

    def _build_session(self) -> httpx.AsyncClient:
        headers = {"Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return httpx.AsyncClient(
            base_url=self._base_url,
            headers=headers,
            timeout=httpx.Timeout(self._timeout_s),
            transport=self._transport,
        )


def _encode_image(turn: PhotoTurn) -> str:
    """Bytes become a base64 data URL; string references pass through."""
    if isinstance(turn.image, str):
        return turn.image
    media_type = turn.media_type or "image/jpeg"
    return f"data:{media_type};base64,{base64.b64encode(turn.image).decode('ascii')}"

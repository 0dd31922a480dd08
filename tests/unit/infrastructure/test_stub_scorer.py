"""Unit tests for StubNutritionScorer."""

import pytest

from mealchat.domain.conversation.context import ConversationContext
from mealchat.domain.conversation.turns import BarcodeTurn, PhotoTurn, TextTurn, VoiceTurn
from mealchat.domain.shared.errors import ScoringFailure
from mealchat.infrastructure.stub import StubNutritionScorer
from mealchat.infrastructure.stub.stub_scorer import PHOTO_ESTIMATE

CONTEXT = ConversationContext()


class TestStubNutritionScorer:
    """Test deterministic estimates."""

    @pytest.mark.asyncio
    async def test_quantified_text(self, scorer: StubNutritionScorer) -> None:
        estimate = await scorer.estimate(TextTurn("2 eggs and toast"), CONTEXT)

        assert estimate.detected_foods == ["egg", "toast"]
        assert estimate.protein_g == pytest.approx(15.25)
        assert estimate.estimated_weight_g == pytest.approx(125.0)
        assert estimate.confidence == 0.9
        assert estimate.completeness is None

    @pytest.mark.asyncio
    async def test_unquantified_text(self, scorer: StubNutritionScorer) -> None:
        estimate = await scorer.estimate(TextTurn("chicken"), CONTEXT)

        assert estimate.protein_g == pytest.approx(46.5)
        assert estimate.estimated_weight_g == 150.0
        assert estimate.confidence == 0.4

    @pytest.mark.asyncio
    async def test_french_keywords(self, scorer: StubNutritionScorer) -> None:
        estimate = await scorer.estimate(TextTurn("200g de poulet"), CONTEXT)

        assert estimate.detected_foods == ["chicken"]
        assert estimate.protein_g == pytest.approx(62.0)

    @pytest.mark.asyncio
    async def test_voice_completeness(self, scorer: StubNutritionScorer) -> None:
        quantified = await scorer.estimate(VoiceTurn("150g salmon"), CONTEXT)
        vague = await scorer.estimate(VoiceTurn("salmon"), CONTEXT)

        assert quantified.completeness == 90.0
        assert vague.completeness == 60.0

    @pytest.mark.asyncio
    async def test_unknown_food(self, scorer: StubNutritionScorer) -> None:
        estimate = await scorer.estimate(TextTurn("mystery stew"), CONTEXT)

        assert estimate.detected_foods == []
        assert estimate.confidence == 0.2
        assert estimate.suggestions

    @pytest.mark.asyncio
    async def test_photo_and_barcode(self, scorer: StubNutritionScorer, nutella) -> None:
        assert await scorer.estimate(PhotoTurn(b"img"), CONTEXT) == PHOTO_ESTIMATE

        product = await scorer.estimate(BarcodeTurn(nutella), CONTEXT)
        assert product.description == "Nutella (Ferrero) (per 100g)"

    @pytest.mark.asyncio
    async def test_injected_failures(self) -> None:
        scorer = StubNutritionScorer(failures=1)

        with pytest.raises(ScoringFailure):
            await scorer.estimate(TextTurn("chicken"), CONTEXT)

        assert (await scorer.estimate(TextTurn("chicken"), CONTEXT)).detected_foods == ["chicken"]
        assert len(scorer.calls) == 2

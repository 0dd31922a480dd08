"""Unit tests for DialogueStateMachine.

Tests focus on:
- Finalizing quantified descriptions
- Quantity disambiguation and local resolution of answers
- Scorer failures leaving the context untouched
- Structured commands and back-references
"""

from unittest.mock import AsyncMock

import pytest

from mealchat.domain.conversation.context import ConversationContextStore
from mealchat.domain.conversation.dialogue import HELP_TEXT, DialogueStateMachine
from mealchat.domain.conversation.estimate import NutritionEstimate
from mealchat.domain.conversation.messages import ChatAction, DialogueState
from mealchat.domain.conversation.turns import BarcodeTurn, PhotoTurn, TextTurn, VoiceTurn
from mealchat.domain.shared.errors import ScoringFailure
from mealchat.infrastructure.stub.stub_scorer import StubNutritionScorer


class TestConstruction:
    """Test constructor validation."""

    def test_starts_idle(self, machine: DialogueStateMachine) -> None:
        assert machine.state is DialogueState.IDLE
        assert machine.confidence_threshold == 0.5

    @pytest.mark.parametrize("threshold", [-0.1, 1.1])
    def test_threshold_out_of_range(self, scorer, context_store, threshold: float) -> None:
        with pytest.raises(ValueError):
            DialogueStateMachine(scorer, context_store, confidence_threshold=threshold)


class TestFinalize:
    """Quantified, confident estimates are final."""

    @pytest.mark.asyncio
    async def test_eggs_and_toast_finalized(
        self, machine: DialogueStateMachine, context_store: ConversationContextStore
    ) -> None:
        outcome = await machine.process(TextTurn("2 eggs and toast"))

        assert outcome.state is DialogueState.FINALIZED
        assert outcome.is_final
        assert outcome.estimate.protein_g == pytest.approx(15.25)
        assert outcome.message.actions == (ChatAction.SAVE, ChatAction.MODIFY)
        assert outcome.message.content.startswith("2 eggs and toast: 15 g protein")
        assert machine.state is DialogueState.FINALIZED

        context = context_store.read()
        assert context.detected_foods == ("egg", "toast")
        assert context.current_product == "egg"
        assert context.last_estimate == outcome.estimate
        assert context.pending_quantity is False

    @pytest.mark.asyncio
    async def test_text_completeness_dropped(self, context_store) -> None:
        scorer = AsyncMock()
        scorer.estimate.return_value = NutritionEstimate(
            description="200g salmon",
            detected_foods=["salmon"],
            protein_g=40,
            confidence=0.9,
            completeness=80,
        )
        machine = DialogueStateMachine(scorer, context_store)

        outcome = await machine.process(TextTurn("200g salmon"))

        assert outcome.estimate.completeness is None
        assert "completeness" not in outcome.message.content

    @pytest.mark.asyncio
    async def test_voice_completeness_kept(self, machine: DialogueStateMachine) -> None:
        outcome = await machine.process(VoiceTurn("2 eggs and toast"))

        assert outcome.estimate.completeness == 90.0
        assert "Description completeness: 90%" in outcome.message.content


class TestQuantityDisambiguation:
    """Missing portions trigger AwaitingQuantity."""

    @pytest.mark.asyncio
    async def test_chicken_asks_quantity(
        self, machine: DialogueStateMachine, context_store: ConversationContextStore
    ) -> None:
        outcome = await machine.process(VoiceTurn("chicken"))

        assert outcome.state is DialogueState.AWAITING_QUANTITY
        assert outcome.clarification == "quantity"
        assert outcome.message.content == "How much chicken did you have?"
        labels = [s.label for s in outcome.message.suggestions]
        assert labels == ["Small portion (100g)", "Large portion (200g)"]
        assert outcome.message.suggestions[0].is_default

        context = context_store.read()
        assert context.pending_quantity is True
        assert context.pending_estimate.protein_g == pytest.approx(31.0)
        assert context.current_product == "chicken"

    @pytest.mark.asyncio
    async def test_quantity_answer_resolved_locally(
        self, machine: DialogueStateMachine, scorer: StubNutritionScorer, context_store
    ) -> None:
        await machine.process(VoiceTurn("chicken"))

        outcome = await machine.process(TextTurn("150g"))

        assert outcome.state is DialogueState.FINALIZED
        assert outcome.derived is True
        assert outcome.estimate.protein_g == pytest.approx(46.5)
        assert outcome.estimate.description == "150g chicken"
        assert len(scorer.calls) == 1

        context = context_store.read()
        assert context.pending_quantity is False
        assert context.pending_estimate is None
        assert context.last_quantity == "150g"

    @pytest.mark.asyncio
    async def test_suggestion_value_answers(self, machine: DialogueStateMachine) -> None:
        first = await machine.process(TextTurn("chicken"))

        outcome = await machine.process(TextTurn(first.message.suggestions[1].value))

        assert outcome.estimate.protein_g == pytest.approx(62.0)

    @pytest.mark.asyncio
    async def test_unparseable_answer_reprompts(self, machine: DialogueStateMachine) -> None:
        await machine.process(TextTurn("chicken"))

        outcome = await machine.process(TextTurn("0g"))

        assert outcome.state is DialogueState.AWAITING_QUANTITY
        assert outcome.message.content.startswith("Sorry, I didn't get the quantity")
        assert outcome.message.suggestions[0].is_default

    @pytest.mark.asyncio
    async def test_new_description_supersedes_pending(
        self, machine: DialogueStateMachine, scorer: StubNutritionScorer
    ) -> None:
        await machine.process(TextTurn("chicken"))

        outcome = await machine.process(TextTurn("2 eggs and toast"))

        assert outcome.state is DialogueState.FINALIZED
        assert outcome.derived is False
        assert outcome.estimate.detected_foods == ["egg", "toast"]
        assert len(scorer.calls) == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["some rice", "150g rice", "two slices of ham"])
    async def test_other_food_with_amount_supersedes_pending(
        self, machine: DialogueStateMachine, scorer: StubNutritionScorer, text: str
    ) -> None:
        await machine.process(VoiceTurn("chicken"))

        outcome = await machine.process(TextTurn(text))

        assert outcome.derived is False
        assert len(scorer.calls) == 2
        assert scorer.calls[-1].text == text

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text,grams", [("about 150g", 150), ("150g of chicken", 150), ("some", 300)])
    async def test_answer_naming_pending_food(
        self, machine: DialogueStateMachine, scorer: StubNutritionScorer, text: str, grams: float
    ) -> None:
        await machine.process(VoiceTurn("chicken"))

        outcome = await machine.process(TextTurn(text))

        assert outcome.derived is True
        assert outcome.estimate.estimated_weight_g == pytest.approx(grams)
        assert len(scorer.calls) == 1

    @pytest.mark.asyncio
    async def test_barcode_asks_quantity(self, machine: DialogueStateMachine, nutella) -> None:
        outcome = await machine.process(BarcodeTurn(nutella))

        assert outcome.state is DialogueState.AWAITING_QUANTITY
        assert outcome.estimate.protein_g == 6.3

        answer = await machine.process(TextTurn("30g"))

        assert answer.estimate.protein_g == pytest.approx(1.89)
        assert answer.estimate.description == "30g Nutella"

    @pytest.mark.asyncio
    async def test_photo_without_portion_asks_quantity(self, machine: DialogueStateMachine) -> None:
        outcome = await machine.process(PhotoTurn(b"\xff\xd8"))

        assert outcome.state is DialogueState.AWAITING_QUANTITY
        assert outcome.estimate.protein_g == pytest.approx(16.0)


class TestFailures:
    """Scorer failures and unidentified food."""

    @pytest.mark.asyncio
    async def test_scorer_failure(self, context_store: ConversationContextStore) -> None:
        machine = DialogueStateMachine(StubNutritionScorer(failures=1), context_store)

        outcome = await machine.process(TextTurn("2 eggs and toast"))

        assert outcome.state is DialogueState.FAILED
        assert outcome.message.actions == (ChatAction.RETRY,)
        assert outcome.estimate is None
        assert context_store.read().turn_count == 0

    @pytest.mark.asyncio
    async def test_failure_keeps_pending_quantity(self, context_store: ConversationContextStore) -> None:
        scorer = StubNutritionScorer()
        machine = DialogueStateMachine(scorer, context_store)
        await machine.process(TextTurn("chicken"))
        before = context_store.read()
        scorer.failures = 1

        outcome = await machine.process(TextTurn("pasta"))

        assert outcome.state is DialogueState.FAILED
        assert context_store.read() == before

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_failed(self, context_store) -> None:
        scorer = AsyncMock()
        scorer.estimate.side_effect = RuntimeError("boom")
        machine = DialogueStateMachine(scorer, context_store)

        outcome = await machine.process(TextTurn("chicken"))

        assert outcome.state is DialogueState.FAILED

    @pytest.mark.asyncio
    async def test_unidentified_food(self, machine: DialogueStateMachine) -> None:
        outcome = await machine.process(TextTurn("mystery stew"))

        assert outcome.state is DialogueState.AWAITING_IDENTIFICATION
        assert outcome.clarification == "identification"
        assert outcome.message.actions == (ChatAction.RETRY, ChatAction.MODIFY)

    @pytest.mark.asyncio
    async def test_failed_state_accepts_next_turn(self, context_store) -> None:
        scorer = StubNutritionScorer(failures=1)
        machine = DialogueStateMachine(scorer, context_store)
        await machine.process(TextTurn("2 eggs and toast"))

        outcome = await machine.process(TextTurn("2 eggs and toast"))

        assert outcome.state is DialogueState.FINALIZED


class TestCommands:
    """help and manual entry."""

    @pytest.mark.asyncio
    async def test_help(self, machine: DialogueStateMachine, scorer: StubNutritionScorer) -> None:
        outcome = await machine.process(TextTurn("help"))

        assert outcome.state is DialogueState.IDLE
        assert outcome.message.content == HELP_TEXT
        assert scorer.calls == []

    @pytest.mark.asyncio
    async def test_manual_entry(self, machine: DialogueStateMachine, scorer: StubNutritionScorer) -> None:
        outcome = await machine.process(
            TextTurn("manual entry: grilled chicken | protein: 30 | calories: 250")
        )

        assert outcome.state is DialogueState.FINALIZED
        assert outcome.estimate.is_manual
        assert outcome.estimate.description == "grilled chicken"
        assert outcome.estimate.protein_g == 30.0
        assert outcome.estimate.calories == 250.0
        assert outcome.estimate.confidence == 1.0
        assert scorer.calls == []

    @pytest.mark.asyncio
    async def test_french_manual_entry_decimal_comma(self, machine: DialogueStateMachine) -> None:
        outcome = await machine.process(TextTurn("entrée manuelle: skyr | protéines: 12,5"))

        assert outcome.estimate.protein_g == 12.5
        assert outcome.estimate.calories is None

    @pytest.mark.asyncio
    async def test_malformed_manual_entry(self, machine: DialogueStateMachine) -> None:
        outcome = await machine.process(TextTurn("manual entry: toast"))

        assert outcome.state is DialogueState.IDLE
        assert "couldn't read that manual entry" in outcome.message.content


class TestReferences:
    """Back-references to the current food."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text,protein", [("double", 30.5), ("half", 7.625), ("make it 3", 22.875)])
    async def test_rescale_last_estimate(
        self, machine: DialogueStateMachine, scorer: StubNutritionScorer, text: str, protein: float
    ) -> None:
        await machine.process(TextTurn("2 eggs and toast"))

        outcome = await machine.process(TextTurn(text))

        assert outcome.state is DialogueState.FINALIZED
        assert outcome.derived is True
        assert outcome.estimate.protein_g == pytest.approx(protein)
        assert len(scorer.calls) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["double it", "half of it", "deux fois", "double the eggs"])
    async def test_modifier_phrasings_rescale(
        self, machine: DialogueStateMachine, scorer: StubNutritionScorer, text: str
    ) -> None:
        await machine.process(TextTurn("2 eggs and toast"))

        outcome = await machine.process(TextTurn(text))

        assert outcome.derived is True
        assert len(scorer.calls) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["half a pizza", "double cheeseburger", "a double espresso"])
    async def test_modifier_with_new_food_is_scored(
        self, machine: DialogueStateMachine, scorer: StubNutritionScorer, text: str
    ) -> None:
        await machine.process(TextTurn("2 eggs and toast"))

        outcome = await machine.process(TextTurn(text))

        assert outcome.derived is False
        assert len(scorer.calls) == 2
        assert scorer.calls[-1].text == text

    @pytest.mark.asyncio
    async def test_pronoun_rewritten_before_scoring(
        self, machine: DialogueStateMachine, scorer: StubNutritionScorer
    ) -> None:
        await machine.process(TextTurn("250ml milk"))

        outcome = await machine.process(TextTurn("a cup of it"))

        assert scorer.calls[-1].text == "a cup of milk"
        assert outcome.state is DialogueState.FINALIZED
        assert outcome.derived is False

    @pytest.mark.asyncio
    async def test_modifier_without_history_is_scored(
        self, machine: DialogueStateMachine, scorer: StubNutritionScorer
    ) -> None:
        outcome = await machine.process(TextTurn("double"))

        assert outcome.state is DialogueState.AWAITING_IDENTIFICATION
        assert len(scorer.calls) == 1


class TestScorerErrorType:
    """ScoringFailure and the scorer port."""

    @pytest.mark.asyncio
    async def test_scoring_failure_is_logged_not_raised(self, context_store, caplog) -> None:
        scorer = AsyncMock()
        scorer.estimate.side_effect = ScoringFailure("timeout")
        machine = DialogueStateMachine(scorer, context_store)

        with caplog.at_level("WARNING", logger="mealchat"):
            await machine.process(TextTurn("chicken"))

        assert any(r.getMessage() == "Scoring failed" for r in caplog.records)

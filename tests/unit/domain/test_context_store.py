"""Unit tests for ConversationContextStore.

Tests focus on:
- Additive merge semantics
- Explicit clears vs untouched fields
- Snapshot immutability
"""

import dataclasses

import pytest

from mealchat.domain.conversation.context import (
    ContextUpdate,
    ConversationContext,
    ConversationContextStore,
    UNSET,
)
from mealchat.domain.conversation.messages import ChatAction
from mealchat.domain.conversation.turns import Modality, PhotoTurn, TextTurn, VoiceTurn


class TestMerge:
    """Test merge()."""

    def test_starts_empty(self, context_store: ConversationContextStore) -> None:
        context = context_store.read()

        assert context == ConversationContext()
        assert context.turn_count == 0
        assert context.detected_foods == ()

    def test_turn_sets_modality_and_count(self, context_store: ConversationContextStore) -> None:
        context_store.merge(TextTurn("hello"))
        context = context_store.merge(VoiceTurn("chicken"))

        assert context.last_modality is Modality.VOICE
        assert context.turn_count == 2

    def test_estimate_sets_foods_and_product(
        self, context_store: ConversationContextStore, eggs_estimate
    ) -> None:
        context = context_store.merge(TextTurn("2 eggs and toast"), estimate=eggs_estimate)

        assert context.detected_foods == ("egg", "toast")
        assert context.current_product == "egg"

    def test_estimate_without_foods_keeps_previous(
        self, context_store: ConversationContextStore, eggs_estimate
    ) -> None:
        context_store.merge(TextTurn("2 eggs and toast"), estimate=eggs_estimate)
        empty = eggs_estimate.model_copy(update={"detected_foods": []})

        context = context_store.merge(PhotoTurn(b"img"), estimate=empty)

        assert context.detected_foods == ("egg", "toast")
        assert context.current_product == "egg"

    def test_unspecified_fields_persist(self, context_store: ConversationContextStore) -> None:
        context_store.merge(None, updates=ContextUpdate(current_product="pasta", last_quantity="150g"))

        context = context_store.merge(None, updates=ContextUpdate(pending_quantity=True))

        assert context.current_product == "pasta"
        assert context.last_quantity == "150g"
        assert context.pending_quantity is True

    def test_explicit_none_clears(self, context_store: ConversationContextStore, eggs_estimate) -> None:
        context_store.merge(None, updates=ContextUpdate(pending_estimate=eggs_estimate, detected_foods=["egg"]))

        context = context_store.merge(None, updates=ContextUpdate(pending_estimate=None, detected_foods=None))

        assert context.pending_estimate is None
        assert context.detected_foods == ()

    def test_action_only_merge_keeps_turn_count(self, context_store: ConversationContextStore) -> None:
        context_store.merge(TextTurn("chicken"))

        context = context_store.merge(None, updates=ContextUpdate(last_action=ChatAction.SAVE))

        assert context.turn_count == 1
        assert context.last_action is ChatAction.SAVE

    def test_snapshot_is_frozen(self, context_store: ConversationContextStore) -> None:
        snapshot = context_store.read()

        with pytest.raises(dataclasses.FrozenInstanceError):
            snapshot.turn_count = 5  # type: ignore[misc]

    def test_previous_snapshot_unchanged(self, context_store: ConversationContextStore) -> None:
        before = context_store.read()

        context_store.merge(TextTurn("rice"))

        assert before.turn_count == 0

    def test_reset(self, context_store: ConversationContextStore) -> None:
        context_store.merge(TextTurn("rice"), updates=ContextUpdate(current_product="rice"))

        context_store.reset()

        assert context_store.read() == ConversationContext()


class TestContextUpdate:
    """Test ContextUpdate.provided()."""

    def test_only_set_fields_provided(self) -> None:
        update = ContextUpdate(pending_quantity=False, last_quantity=None)

        assert update.provided() == {"pending_quantity": False, "last_quantity": None}

    def test_unset_is_falsy_singleton(self) -> None:
        assert not UNSET
        assert ContextUpdate().current_product is UNSET

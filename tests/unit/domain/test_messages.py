"""Unit tests for chat messages and the message stream."""

import dataclasses
from typing import List

import pytest

from mealchat.domain.conversation.messages import (
    Author,
    ChatAction,
    ChatMessage,
    DialogueState,
    MessageStream,
)
from mealchat.domain.conversation.turns import Modality


class TestChatMessage:
    """Test message factories."""

    def test_from_user(self) -> None:
        message = ChatMessage.from_user("[photo]", attachment=Modality.PHOTO)

        assert message.author is Author.USER
        assert message.attachment is Modality.PHOTO
        assert message.actions == ()

    def test_from_bot_converts_sequences(self) -> None:
        message = ChatMessage.from_bot(
            "Saved", state=DialogueState.FINALIZED, actions=[ChatAction.SAVE]
        )

        assert message.author is Author.BOT
        assert message.actions == (ChatAction.SAVE,)
        assert message.timestamp.tzinfo is not None

    def test_unique_ids(self) -> None:
        assert ChatMessage.from_user("a").id != ChatMessage.from_user("a").id

    def test_immutable(self) -> None:
        message = ChatMessage.from_user("a")

        with pytest.raises(dataclasses.FrozenInstanceError):
            message.content = "b"  # type: ignore[misc]


class TestMessageStream:
    """Test append-only stream."""

    def test_append_and_snapshot(self) -> None:
        stream = MessageStream()
        first = stream.append(ChatMessage.from_user("a"))
        stream.append(ChatMessage.from_bot("b"))

        assert len(stream) == 2
        assert stream.snapshot()[0] is first
        assert stream.last().content == "b"

    def test_empty_last(self) -> None:
        assert MessageStream().last() is None

    def test_listeners_called_in_order(self) -> None:
        stream = MessageStream()
        seen: List[str] = []
        stream.subscribe(lambda m: seen.append(f"1:{m.content}"))
        stream.subscribe(lambda m: seen.append(f"2:{m.content}"))

        stream.append(ChatMessage.from_user("x"))

        assert seen == ["1:x", "2:x"]

    def test_snapshot_unaffected_by_later_appends(self) -> None:
        stream = MessageStream()
        stream.append(ChatMessage.from_user("a"))
        snapshot = stream.snapshot()

        stream.append(ChatMessage.from_user("b"))

        assert len(snapshot) == 1
        assert [m.content for m in stream] == ["a", "b"]

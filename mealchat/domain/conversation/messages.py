"""Chat transcript types.

ChatMessage entries are append-only: the stream never mutates or removes
a message once it has been appended.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Iterator, List, Optional, Tuple
from uuid import uuid4

from mealchat.domain.conversation.estimate import NutritionEstimate
from mealchat.domain.conversation.turns import Modality


class Author(str, Enum):
    USER = "user"
    BOT = "bot"


class ChatAction(str, Enum):
    """Actions offered to the user on a bot message."""

    SAVE = "save"
    MODIFY = "modify"
    RETRY = "retry"


class DialogueState(str, Enum):
    """States of the dialogue state machine."""

    IDLE = "idle"
    PROCESSING = "processing"
    AWAITING_QUANTITY = "awaiting_quantity"
    AWAITING_IDENTIFICATION = "awaiting_identification"
    FINALIZED = "finalized"
    FAILED = "failed"


@dataclass(frozen=True)
class QuantitySuggestion:
    """
    Disambiguation choice offered when a portion is missing.

    Attributes:
        label: Text shown to the user (e.g., "Small portion (100g)")
        value: Text submitted as the next turn when selected (e.g., "100g")
        weight: Grams represented; tie-break ordering hint
        is_default: Most likely portion, always rendered first
    """

    label: str
    value: str
    weight: float
    is_default: bool = False


@dataclass(frozen=True)
class ChatMessage:
    """Transcript entry shown to the user."""

    author: Author
    content: str
    id: str = field(default_factory=lambda: uuid4().hex)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    attachment: Optional[Modality] = None
    estimate: Optional[NutritionEstimate] = None
    suggestions: Tuple[QuantitySuggestion, ...] = ()
    actions: Tuple[ChatAction, ...] = ()
    state: Optional[DialogueState] = None

    @classmethod
    def from_user(cls, content: str, attachment: Optional[Modality] = None) -> "ChatMessage":
        return cls(author=Author.USER, content=content, attachment=attachment)

    @classmethod
    def from_bot(
        cls,
        content: str,
        state: Optional[DialogueState] = None,
        estimate: Optional[NutritionEstimate] = None,
        suggestions: Tuple[QuantitySuggestion, ...] = (),
        actions: Tuple[ChatAction, ...] = (),
    ) -> "ChatMessage":
        return cls(
            author=Author.BOT,
            content=content,
            state=state,
            estimate=estimate,
            suggestions=tuple(suggestions),
            actions=tuple(actions),
        )


MessageListener = Callable[[ChatMessage], None]


class MessageStream:
    """
    Append-only ChatMessage stream exposed to the rendering layer.

    Listeners are called synchronously, in subscription order, for every
    appended message.
    """

    def __init__(self) -> None:
        self._messages: List[ChatMessage] = []
        self._listeners: List[MessageListener] = []

    def append(self, message: ChatMessage) -> ChatMessage:
        self._messages.append(message)
        for listener in self._listeners:
            listener(message)
        return message

    def subscribe(self, listener: MessageListener) -> None:
        self._listeners.append(listener)

    def snapshot(self) -> Tuple[ChatMessage, ...]:
        return tuple(self._messages)

    def last(self) -> Optional[ChatMessage]:
        return self._messages[-1] if self._messages else None

    def __iter__(self) -> Iterator[ChatMessage]:
        return iter(tuple(self._messages))

    def __len__(self) -> int:
        return len(self._messages)

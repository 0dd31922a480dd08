"""Conversation context store.

Session-scoped, never persisted. The context has a closed set of typed
fields; the store merges each turn's outcome into it additively.
"""

import logging
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Optional, Tuple

from mealchat.domain.conversation.estimate import NutritionEstimate
from mealchat.domain.conversation.messages import ChatAction
from mealchat.domain.conversation.turns import Modality, Turn

logger = logging.getLogger(__name__)


class _Unset:
    """Marker for ContextUpdate fields that were not provided."""

    _instance: Optional["_Unset"] = None

    def __new__(cls) -> "_Unset":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


@dataclass(frozen=True)
class ConversationContext:
    """
    Snapshot of the accumulated conversation state.

    Attributes:
        last_modality: Modality of the most recent turn
        pending_quantity: True while a quantity answer is expected
        detected_foods: Foods detected by the last scored turn
        last_action: Last action selected by the user
        current_product: Food the conversation is currently about
        last_quantity: Last quantity text applied
        pending_estimate: Per-100g estimate waiting for a quantity
        last_estimate: Last finalized estimate (for "double", "half", ...)
        turn_count: Number of turns merged so far
    """

    last_modality: Optional[Modality] = None
    pending_quantity: bool = False
    detected_foods: Tuple[str, ...] = ()
    last_action: Optional[ChatAction] = None
    current_product: Optional[str] = None
    last_quantity: Optional[str] = None
    pending_estimate: Optional[NutritionEstimate] = None
    last_estimate: Optional[NutritionEstimate] = None
    turn_count: int = 0


@dataclass(frozen=True)
class ContextUpdate:
    """
    Explicit state updates produced by the dialogue state machine.

    Fields left as UNSET are not touched by the merge; setting a field to
    None clears it.
    """

    pending_quantity: Any = UNSET
    detected_foods: Any = UNSET
    last_action: Any = UNSET
    current_product: Any = UNSET
    last_quantity: Any = UNSET
    pending_estimate: Any = UNSET
    last_estimate: Any = UNSET

    def provided(self) -> Dict[str, Any]:
        """Fields explicitly set on this update."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not UNSET
        }


class ConversationContextStore:
    """
    Accumulating per-session context.

    Merge is additive: new values overwrite, values never explicitly cleared
    persist until overwritten or the session ends.
    """

    def __init__(self) -> None:
        self._context = ConversationContext()

    def read(self) -> ConversationContext:
        """Current snapshot (immutable)."""
        return self._context

    def merge(
        self,
        turn: Optional[Turn],
        estimate: Optional[NutritionEstimate] = None,
        updates: Optional[ContextUpdate] = None,
    ) -> ConversationContext:
        """
        Fold a turn's outcome into the context.

        Args:
            turn: Turn just processed (None for action-only merges)
            estimate: Estimate produced for the turn, if any
            updates: Explicit field updates from the state machine

        Returns:
            The new context snapshot
        """
        changes: Dict[str, Any] = {}

        if turn is not None:
            changes["last_modality"] = turn.modality
            changes["turn_count"] = self._context.turn_count + 1

        if estimate is not None and estimate.detected_foods:
            changes["detected_foods"] = tuple(estimate.detected_foods)
            changes["current_product"] = estimate.detected_foods[0]

        if updates is not None:
            provided = updates.provided()
            if "detected_foods" in provided:
                provided["detected_foods"] = tuple(provided["detected_foods"] or ())
            changes.update(provided)

        self._context = replace(self._context, **changes)

        logger.debug(
            "Context merged",
            extra={
                "changed_fields": sorted(changes),
                "turn_count": self._context.turn_count,
                "pending_quantity": self._context.pending_quantity,
            },
        )

        return self._context

    def reset(self) -> None:
        """Drop all context (session teardown)."""
        self._context = ConversationContext()

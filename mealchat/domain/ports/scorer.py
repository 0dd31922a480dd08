"""Port (interface) for the nutrition scoring collaborator.

The scorer is opaque to the conversation engine: it receives a turn and
the current context and returns a structured estimate.
"""

from typing import Protocol

from mealchat.domain.conversation.context import ConversationContext
from mealchat.domain.conversation.estimate import NutritionEstimate
from mealchat.domain.conversation.turns import Turn


class INutritionScorer(Protocol):
    """
    Interface for nutrition scorers.

    Implementations can be:
    - HTTP scorer backed by the analysis API
    - Stub scorer (deterministic, for tests and offline use)
    """

    async def estimate(self, turn: Turn, context: ConversationContext) -> NutritionEstimate:
        """
        Estimate nutrition for a turn.

        Args:
            turn: Normalized user input
            context: Current conversation context snapshot

        Returns:
            NutritionEstimate

        Raises:
            Exception: Any failure (network, timeout, malformed response).
                       The dialogue state machine treats every exception
                       as a scoring failure; no retry is implied.
        """
        ...

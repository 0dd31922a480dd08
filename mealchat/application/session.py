"""Conversation session - the engine's entry points.

One explicitly constructed session per conversation. Owns the message
stream and wires the normalizer, the dialogue state machine, the context
store and the analysis reconciler together.
"""

import logging
from typing import Callable, Optional, Union, assert_never

from mealchat.application.reconciler import AnalysisReconciler
from mealchat.domain.conversation.context import ContextUpdate, ConversationContextStore
from mealchat.domain.conversation.dialogue import DialogueOutcome, DialogueStateMachine
from mealchat.domain.conversation.messages import (
    ChatAction,
    ChatMessage,
    DialogueState,
    MessageStream,
)
from mealchat.domain.conversation.normalizer import InputNormalizer
from mealchat.domain.conversation.turns import (
    BarcodeProduct,
    BarcodeTurn,
    Modality,
    PhotoTurn,
    TextTurn,
    Turn,
    VoiceTurn,
)
from mealchat.domain.events import ClarificationRequested, EstimateFinalized
from mealchat.domain.ports.event_bus import IEventBus
from mealchat.domain.shared.errors import (
    EmptyInputError,
    NoCurrentEstimateError,
    PersistenceFailure,
    TurnInProgressError,
)

logger = logging.getLogger(__name__)

REPROMPTS = {
    Modality.TEXT.value: "I didn't catch that. What did you eat?",
    Modality.VOICE.value: "I didn't hear anything. Could you describe your meal again?",
    Modality.PHOTO.value: "The photo is empty. Please take another one.",
    Modality.BARCODE.value: "No product found for that barcode. Scan again or describe it.",
}

MODIFY_PROMPT = "What would you like to change? You can adjust the quantity or add details."
RETRY_PROMPT = "No problem! Describe your meal again or use another method."
NOTHING_TO_SAVE = "There is nothing to save yet. Describe your meal first."


class ConversationSession:
    """
    Conversational meal logging session.

    Turns are processed one at a time: submitting while a turn is being
    processed raises TurnInProgressError.

    Example:
        >>> session = ConversationSession(
        ...     normalizer=InputNormalizer(),
        ...     machine=DialogueStateMachine(scorer, context_store),
        ...     context_store=context_store,
        ...     reconciler=AnalysisReconciler(api, store, bus),
        ...     event_bus=bus,
        ... )
        >>> reply = await session.submit_text("2 eggs and toast")
        >>> reply.actions
        (<ChatAction.SAVE: 'save'>, <ChatAction.MODIFY: 'modify'>)
        >>> await session.action_selected(ChatAction.SAVE)
    """

    def __init__(
        self,
        normalizer: InputNormalizer,
        machine: DialogueStateMachine,
        context_store: ConversationContextStore,
        reconciler: AnalysisReconciler,
        event_bus: IEventBus,
        stream: Optional[MessageStream] = None,
    ):
        self._normalizer = normalizer
        self._machine = machine
        self._context = context_store
        self._reconciler = reconciler
        self._event_bus = event_bus
        self._stream = stream or MessageStream()
        self._busy = False
        self._last_turn: Optional[Turn] = None
        # modality of the turn that produced the estimate being refined
        self._origin_modality: Optional[Modality] = None

    @property
    def messages(self) -> MessageStream:
        return self._stream

    @property
    def state(self) -> DialogueState:
        return self._machine.state

    @property
    def is_processing(self) -> bool:
        return self._busy

    # ═══════════════════════════════════════════════════════════
    # INPUT ENTRY POINTS
    # ═══════════════════════════════════════════════════════════

    async def submit_text(self, text: Optional[str]) -> ChatMessage:
        return await self._submit(lambda: self._normalizer.normalize_text(text))

    async def submit_voice(self, transcript: Optional[str]) -> ChatMessage:
        return await self._submit(lambda: self._normalizer.normalize_voice(transcript))

    async def submit_photo(
        self, image: Union[bytes, str, None], media_type: Optional[str] = None
    ) -> ChatMessage:
        return await self._submit(lambda: self._normalizer.normalize_photo(image, media_type))

    async def submit_barcode(self, product: Optional[BarcodeProduct]) -> ChatMessage:
        return await self._submit(lambda: self._normalizer.normalize_barcode(product))

    async def suggestion_selected(self, value: str) -> ChatMessage:
        """A tapped QuantitySuggestion is submitted as a text turn."""
        return await self.submit_text(value)

    # ═══════════════════════════════════════════════════════════
    # ACTIONS
    # ═══════════════════════════════════════════════════════════

    async def action_selected(self, action: Union[ChatAction, str]) -> ChatMessage:
        """
        Handle a tapped action.

        - save: confirm the current estimate through the reconciler
        - modify: discard the estimate and ask what to change
        - retry: discard the estimate and reprocess the last turn

        Raises:
            TurnInProgressError: A turn is being processed
            ConfirmationInProgressError: The same estimate is already being saved
        """
        action = ChatAction(action)
        if self._busy:
            raise TurnInProgressError("A turn is already being processed")

        self._context.merge(None, updates=ContextUpdate(last_action=action))
        logger.info("Action selected", extra={"action": action.value})

        if action is ChatAction.SAVE:
            return await self._save()

        if action is ChatAction.MODIFY:
            self._reconciler.discard()
            return self._stream.append(ChatMessage.from_bot(MODIFY_PROMPT))

        if action is ChatAction.RETRY:
            self._reconciler.discard()
            if self._last_turn is None:
                return self._stream.append(ChatMessage.from_bot(RETRY_PROMPT))
            return await self._run(self._last_turn)

        raise ValueError(f"Unsupported action: {action}")

    def reset(self) -> None:
        """Forget the conversation context and any current estimate."""
        self._context.reset()
        self._reconciler.discard()
        self._last_turn = None
        self._origin_modality = None

    # ═══════════════════════════════════════════════════════════
    # INTERNALS
    # ═══════════════════════════════════════════════════════════

    async def _submit(self, normalize: Callable[[], Turn]) -> ChatMessage:
        if self._busy:
            raise TurnInProgressError("A turn is already being processed")

        try:
            turn = normalize()
        except EmptyInputError as e:
            logger.info("Empty input re-prompted", extra={"modality": e.modality})
            return self._stream.append(ChatMessage.from_bot(REPROMPTS[e.modality]))

        attachment = None if isinstance(turn, TextTurn) else turn.modality
        self._stream.append(ChatMessage.from_user(_user_content(turn), attachment=attachment))
        return await self._run(turn)

    async def _run(self, turn: Turn) -> ChatMessage:
        # Held until the reply is in the transcript, event publication included
        self._busy = True
        try:
            self._reconciler.discard()
            self._last_turn = turn
            outcome = await self._machine.process(turn)
            await self._after_outcome(turn, outcome)
            return self._stream.append(outcome.message)
        finally:
            self._busy = False

    async def _after_outcome(self, turn: Turn, outcome: DialogueOutcome) -> None:
        if outcome.estimate is not None and not outcome.derived:
            self._origin_modality = turn.modality

        if outcome.state is DialogueState.FINALIZED and outcome.estimate is not None:
            modality = turn.modality
            if outcome.derived and self._origin_modality is not None:
                modality = self._origin_modality

            self._reconciler.stage(outcome.estimate, modality)
            await self._event_bus.publish(
                EstimateFinalized.create(
                    modality=modality.value,
                    protein_g=outcome.estimate.protein_g,
                    confidence=outcome.estimate.confidence,
                )
            )
        elif outcome.clarification is not None:
            await self._event_bus.publish(
                ClarificationRequested.create(
                    kind=outcome.clarification,
                    modality=turn.modality.value,
                    suggestion_count=len(outcome.message.suggestions),
                )
            )

    async def _save(self) -> ChatMessage:
        try:
            entry = await self._reconciler.confirm()
        except NoCurrentEstimateError:
            return self._stream.append(ChatMessage.from_bot(NOTHING_TO_SAVE))
        except PersistenceFailure as e:
            staged = self._reconciler.current
            return self._stream.append(
                ChatMessage.from_bot(
                    f"Sorry, the meal couldn't be saved ({e}). Try again?",
                    state=DialogueState.FINALIZED,
                    estimate=staged.estimate if staged else None,
                    actions=(ChatAction.SAVE, ChatAction.MODIFY),
                )
            )

        content = f"Saved: {entry.description} ({entry.protein_g} g protein"
        content += f", {entry.calories} kcal)" if entry.calories is not None else ")"
        return self._stream.append(ChatMessage.from_bot(content))


def _user_content(turn: Turn) -> str:
    if isinstance(turn, TextTurn):
        return turn.text
    if isinstance(turn, VoiceTurn):
        return turn.transcript
    if isinstance(turn, PhotoTurn):
        return "[photo]"
    if isinstance(turn, BarcodeTurn):
        return turn.product.display_name()
    assert_never(turn)

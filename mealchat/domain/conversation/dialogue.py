"""Dialogue state machine.

Decides, for each turn, whether the estimate is final or needs a
clarification, and produces the bot reply.

States:
    Idle -> Processing -> AwaitingQuantity | AwaitingIdentification
                          | Finalized | Failed

Every resting state accepts the next turn exactly like Idle.
"""

import logging
import re
from dataclasses import dataclass, replace
from typing import List, Optional, Sequence, Tuple, assert_never

from mealchat.domain.conversation.context import (
    ContextUpdate,
    ConversationContext,
    ConversationContextStore,
)
from mealchat.domain.conversation.estimate import NutritionEstimate
from mealchat.domain.conversation.messages import (
    ChatAction,
    ChatMessage,
    DialogueState,
)
from mealchat.domain.conversation.quantity import (
    ARTICLES,
    FRACTIONS,
    NUMBER_WORDS,
    QuantityParse,
    extract_food_type,
    parse_quantity,
)
from mealchat.domain.conversation.suggestions import suggest_portions
from mealchat.domain.conversation.turns import (
    BarcodeTurn,
    Modality,
    PhotoTurn,
    TextTurn,
    Turn,
    VoiceTurn,
    turn_text,
)
from mealchat.domain.meals.numeric import safe_number
from mealchat.domain.ports.scorer import INutritionScorer

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE_THRESHOLD = 0.5

HELP_TEXT = (
    "Describe what you ate (\"2 eggs and toast\"), send a photo or scan a barcode.\n"
    "Manual entry: manual entry: <description> | protein: <g> | calories: <kcal>"
)

MANUAL_ENTRY_FORMAT = "manual entry: grilled chicken | protein: 30 | calories: 250"

_HELP_RE = re.compile(r"^\s*(?:help|aide|\?)\s*[!.]?\s*$", re.IGNORECASE)
_MANUAL_RE = re.compile(r"^\s*(?:manual entry|entr[ée]e manuelle)\s*:\s*(?P<body>.*)$", re.IGNORECASE)
_NUMBER_RE = re.compile(r"\d+(?:[.,]\d+)?")
_PER_100G_RE = re.compile(r"\(?\s*(?:per|pour)\s+100\s*g\s*\)?", re.IGNORECASE)
_DIGIT_RE = re.compile(r"\d")

# Back-references to the food currently discussed
_PRONOUN_RE = re.compile(r"\b(?:it|that|this|ça|cela)\b", re.IGNORECASE)

_MAKE_COUNT_RE = re.compile(
    r"^\s*(?:make|change)\s+(?:it|that|this)\s+(?:to\s+)?(?P<count>\d+|[a-z]+)\s*[!.]?\s*$",
    re.IGNORECASE,
)

_MODIFIERS: Tuple[Tuple["re.Pattern[str]", float], ...] = (
    (re.compile(r"\b(?:double|twice|deux fois)\b", re.IGNORECASE), 2.0),
    (re.compile(r"\b(?:triple|three times|trois fois)\b", re.IGNORECASE), 3.0),
    (re.compile(r"\b(?:half|moitié)\b", re.IGNORECASE), 0.5),
)

# Portion words that never name a food on their own
_GENERIC_UNITS = frozenset(
    {
        "portion", "serving", "plate", "assiette", "bowl", "bol", "cup", "tasse",
        "slice", "tranche", "tbsp", "tsp",
    }
)

# Words a quantity answer or a rescale may carry besides numbers and units
_FILLER_WORDS = frozenset(
    {
        "g", "gr", "gram", "grams", "gramme", "grammes", "kg", "kilo", "kilos",
        "kilogram", "kilograms", "kilogramme", "kilogrammes", "mg", "milligram",
        "milligrams", "ml", "milliliter", "milliliters", "millilitre", "millilitres",
        "l", "liter", "liters", "litre", "litres", "oz", "ounce", "ounces", "lb",
        "lbs", "pound", "pounds",
        "the", "of", "de", "du", "des", "d", "la", "le", "les", "and", "et",
        "about", "around", "roughly", "approximately", "just", "only", "environ",
        "it", "that", "this", "them", "ça", "cela",
        "make", "change", "to", "times", "fois", "twice", "double", "triple",
        "please",
    }
)
_LETTERS_RE = re.compile(r"[^\W\d_]+")


@dataclass(frozen=True)
class DialogueOutcome:
    """
    Result of processing one turn.

    Attributes:
        state: Resting state after the turn
        message: Bot reply to append to the transcript
        estimate: Finalized (or pending, per 100 g) estimate, if any
        clarification: "quantity" or "identification" when the bot asked
        derived: Estimate was computed from an earlier one (quantity answer,
            "double it") rather than scored for this turn
    """

    state: DialogueState
    message: ChatMessage
    estimate: Optional[NutritionEstimate] = None
    clarification: Optional[str] = None
    derived: bool = False

    @property
    def is_final(self) -> bool:
        return self.state is DialogueState.FINALIZED


class DialogueStateMachine:
    """
    Turn-by-turn dialogue controller.

    Rules, first match wins:
    1. Structured commands (help, manual entry)
    2. Answer to a pending quantity question, resolved locally
    3. Back-references to the current food ("double", "a cup of it")
    4. Scorer call; any failure -> Failed with a retry action
    5. Nothing identified -> AwaitingIdentification
    6. Low confidence or no portion -> AwaitingQuantity (per 100 g pending)
    7. Otherwise -> Finalized with save/modify actions

    Example:
        >>> machine = DialogueStateMachine(scorer, ConversationContextStore())
        >>> outcome = await machine.process(TextTurn("2 eggs and toast"))
        >>> outcome.state
        <DialogueState.FINALIZED: 'finalized'>
    """

    def __init__(
        self,
        scorer: INutritionScorer,
        context_store: ConversationContextStore,
        confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
    ):
        if not 0.0 <= confidence_threshold <= 1.0:
            raise ValueError(
                f"confidence_threshold must be between 0.0 and 1.0, got {confidence_threshold}"
            )

        self._scorer = scorer
        self._context = context_store
        self._threshold = confidence_threshold
        self._state = DialogueState.IDLE

    @property
    def state(self) -> DialogueState:
        return self._state

    @property
    def confidence_threshold(self) -> float:
        return self._threshold

    async def process(self, turn: Turn) -> DialogueOutcome:
        """
        Process one normalized turn.

        Never raises for scorer failures: they end in the Failed state.
        """
        self._state = DialogueState.PROCESSING
        context = self._context.read()

        logger.info(
            "Processing turn",
            extra={
                "modality": turn.modality.value,
                "turn_count": context.turn_count,
                "pending_quantity": context.pending_quantity,
            },
        )

        outcome = await self._dispatch(turn, context)
        self._state = outcome.state

        logger.info(
            "Turn processed",
            extra={
                "modality": turn.modality.value,
                "state": outcome.state.value,
                "clarification": outcome.clarification,
            },
        )
        return outcome

    async def _dispatch(self, turn: Turn, context: ConversationContext) -> DialogueOutcome:
        if isinstance(turn, (TextTurn, VoiceTurn)):
            text = turn_text(turn) or ""

            command = self._run_command(turn, text)
            if command is not None:
                return command

            if context.pending_quantity and context.pending_estimate is not None:
                answer = self._answer_quantity(turn, text, context)
                if answer is not None:
                    return answer

            if context.current_product and not context.pending_quantity:
                rescaled = self._rescale_reference(turn, text, context)
                if rescaled is not None:
                    return rescaled
                turn = self._rewrite_reference(turn, text, context.current_product)

            return await self._score(turn, context)

        if isinstance(turn, (PhotoTurn, BarcodeTurn)):
            return await self._score(turn, context)

        assert_never(turn)

    # ═══════════════════════════════════════════════════════════
    # COMMANDS
    # ═══════════════════════════════════════════════════════════

    def _run_command(self, turn: Turn, text: str) -> Optional[DialogueOutcome]:
        if _HELP_RE.match(text):
            self._context.merge(turn)
            return DialogueOutcome(
                state=DialogueState.IDLE,
                message=ChatMessage.from_bot(HELP_TEXT, state=DialogueState.IDLE),
            )

        match = _MANUAL_RE.match(text)
        if match is None:
            return None

        estimate = _parse_manual_entry(match.group("body"))
        if estimate is None:
            self._context.merge(turn)
            return DialogueOutcome(
                state=DialogueState.IDLE,
                message=ChatMessage.from_bot(
                    f"I couldn't read that manual entry. Try: {MANUAL_ENTRY_FORMAT}",
                    state=DialogueState.IDLE,
                ),
            )

        return self._finalize(turn, estimate, last_quantity=None)

    # ═══════════════════════════════════════════════════════════
    # QUANTITY ANSWERS
    # ═══════════════════════════════════════════════════════════

    def _answer_quantity(
        self, turn: Turn, text: str, context: ConversationContext
    ) -> Optional[DialogueOutcome]:
        parse = parse_quantity(text)
        pending = context.pending_estimate
        product = context.current_product or (pending.primary_food() if pending else None)

        if (
            not _is_quantity_like(text, parse)
            or _names_other_food(parse, product)
            or _content_words(text, product)
        ):
            logger.debug("Turn supersedes pending quantity", extra={"text": text})
            return None

        if not parse.is_quantity_answer() or parse.grams <= 0:
            self._context.merge(turn)
            return self._ask_quantity(
                pending,
                product,
                f"Sorry, I didn't get the quantity. How much {product or 'of it'} did you have?",
            )

        description = parse.original_text
        if product and product.lower() not in text.lower():
            description = f"{parse.original_text} {product}"
        estimate = pending.scaled(parse.grams / pending.estimated_weight_g, description=description)

        logger.info(
            "Quantity answer applied",
            extra={"grams": parse.grams, "confidence": parse.confidence, "product": product},
        )
        return self._finalize(turn, estimate, last_quantity=parse.original_text, derived=True)

    # ═══════════════════════════════════════════════════════════
    # REFERENCE RESOLUTION
    # ═══════════════════════════════════════════════════════════

    def _rescale_reference(
        self, turn: Turn, text: str, context: ConversationContext
    ) -> Optional[DialogueOutcome]:
        last = context.last_estimate
        if last is None:
            return None

        factor = _reference_factor(text, last, context.current_product)
        if factor is None:
            return None

        estimate = last.scaled(factor, description=f"{last.description} (x{factor:g})")
        logger.info("Reference rescale", extra={"factor": factor, "product": context.current_product})
        return self._finalize(turn, estimate, last_quantity=text, derived=True)

    @staticmethod
    def _rewrite_reference(turn: Turn, text: str, product: str) -> Turn:
        if not _PRONOUN_RE.search(text) or not parse_quantity(text).is_quantity_answer():
            return turn

        rewritten = _PRONOUN_RE.sub(product, text, count=1)
        logger.debug("Back-reference rewritten", extra={"text": text, "rewritten": rewritten})

        if isinstance(turn, TextTurn):
            return replace(turn, text=rewritten)
        if isinstance(turn, VoiceTurn):
            return replace(turn, transcript=rewritten)
        return turn

    # ═══════════════════════════════════════════════════════════
    # SCORING
    # ═══════════════════════════════════════════════════════════

    async def _score(self, turn: Turn, context: ConversationContext) -> DialogueOutcome:
        try:
            estimate = await self._scorer.estimate(turn, context)
        except Exception as e:
            logger.warning(
                "Scoring failed",
                extra={"modality": turn.modality.value, "error": str(e), "error_type": type(e).__name__},
            )
            return DialogueOutcome(
                state=DialogueState.FAILED,
                message=ChatMessage.from_bot(
                    "Sorry, I couldn't analyze that. Please try again.",
                    state=DialogueState.FAILED,
                    actions=(ChatAction.RETRY,),
                ),
            )

        if turn.modality is not Modality.VOICE and estimate.completeness is not None:
            estimate = estimate.model_copy(update={"completeness": None})

        if not estimate.detected_foods:
            self._context.merge(
                turn,
                updates=ContextUpdate(pending_quantity=False, pending_estimate=None),
            )
            return DialogueOutcome(
                state=DialogueState.AWAITING_IDENTIFICATION,
                message=ChatMessage.from_bot(
                    "I couldn't identify the food. Could you describe it?",
                    state=DialogueState.AWAITING_IDENTIFICATION,
                    estimate=estimate,
                    actions=(ChatAction.RETRY, ChatAction.MODIFY),
                ),
                estimate=estimate,
                clarification="identification",
            )

        text = turn_text(turn)
        if estimate.confidence < self._threshold or not _has_portion(text, estimate):
            pending = estimate.per_100g()
            self._context.merge(turn, estimate=estimate)
            product = estimate.primary_food()
            return self._ask_quantity(pending, product, f"How much {product} did you have?")

        quantity = parse_quantity(text) if text else None
        return self._finalize(
            turn,
            estimate,
            last_quantity=quantity.original_text if quantity and quantity.has_quantity() else None,
            merge_estimate=True,
        )

    # ═══════════════════════════════════════════════════════════
    # OUTCOMES
    # ═══════════════════════════════════════════════════════════

    def _ask_quantity(
        self, pending: NutritionEstimate, product: Optional[str], prompt: str
    ) -> DialogueOutcome:
        suggestions = suggest_portions(product)
        self._context.merge(
            None,
            updates=ContextUpdate(pending_quantity=True, pending_estimate=pending),
        )
        return DialogueOutcome(
            state=DialogueState.AWAITING_QUANTITY,
            message=ChatMessage.from_bot(
                prompt,
                state=DialogueState.AWAITING_QUANTITY,
                estimate=pending,
                suggestions=tuple(suggestions),
            ),
            estimate=pending,
            clarification="quantity",
        )

    def _finalize(
        self,
        turn: Turn,
        estimate: NutritionEstimate,
        last_quantity: Optional[str],
        merge_estimate: bool = False,
        derived: bool = False,
    ) -> DialogueOutcome:
        self._context.merge(
            turn,
            estimate=estimate if merge_estimate else None,
            updates=ContextUpdate(
                pending_quantity=False,
                pending_estimate=None,
                last_estimate=estimate,
                last_quantity=last_quantity,
                current_product=estimate.primary_food() or self._context.read().current_product,
            ),
        )
        return DialogueOutcome(
            state=DialogueState.FINALIZED,
            message=ChatMessage.from_bot(
                _summarize(estimate),
                state=DialogueState.FINALIZED,
                estimate=estimate,
                actions=(ChatAction.SAVE, ChatAction.MODIFY),
            ),
            estimate=estimate,
            derived=derived,
        )


def _summarize(estimate: NutritionEstimate) -> str:
    lines: List[str] = [f"{estimate.description}: {estimate.protein_g:.0f} g protein"]
    if estimate.calories is not None:
        lines[0] += f", {estimate.calories:.0f} kcal"
    if estimate.completeness is not None:
        lines.append(f"Description completeness: {estimate.completeness:.0f}%")
    if estimate.suggestions:
        lines.append(f"Tip: {estimate.suggestions[0]}")
    return "\n".join(lines)


def _has_portion(text: Optional[str], estimate: NutritionEstimate) -> bool:
    """True when the turn text or the estimate description states a portion."""
    if text and parse_quantity(text).has_quantity():
        return True
    description = _PER_100G_RE.sub(" ", estimate.description)
    return parse_quantity(description).has_quantity()


def _is_quantity_like(text: str, parse: QuantityParse) -> bool:
    return parse.is_quantity_answer() or bool(_DIGIT_RE.search(text)) or extract_food_type(text) is not None


def _names_other_food(parse: QuantityParse, product: Optional[str]) -> bool:
    """True for "2 eggs" while the pending food is pasta."""
    food = parse.food_type
    if not food or food in _GENERIC_UNITS:
        return False
    return not product or food not in product.lower()


def _content_words(text: str, product: Optional[str]) -> List[str]:
    """Words naming something other than an amount of the current product."""
    known = (product or "").lower()
    words: List[str] = []
    for word in _LETTERS_RE.findall(text.lower()):
        if word in _FILLER_WORDS or word in NUMBER_WORDS or word in ARTICLES or word in FRACTIONS:
            continue
        if extract_food_type(word) in _GENERIC_UNITS:
            continue
        if known and (word in known or word.rstrip("s") in known):
            continue
        words.append(word)
    return words


def _reference_factor(
    text: str, last: NutritionEstimate, product: Optional[str]
) -> Optional[float]:
    match = _MAKE_COUNT_RE.match(text)
    if match:
        raw = match.group("count").lower()
        count = NUMBER_WORDS.get(raw) if not raw.isdigit() else float(raw)
        if not count:
            return None
        previous = parse_quantity(last.description).count or 1.0
        return count / previous

    if _content_words(text, product):
        return None

    parse = parse_quantity(text)
    if parse.unit_type == "weight" or (parse.food_type and parse.food_type not in _GENERIC_UNITS):
        return None

    for pattern, factor in _MODIFIERS:
        if pattern.search(text):
            return factor
    return None


def _parse_manual_entry(body: str) -> Optional[NutritionEstimate]:
    """Parse "<description> | protein: <g> | calories: <kcal>"."""
    parts: Sequence[str] = [part.strip() for part in body.split("|")]
    description = parts[0] if parts else ""
    protein: Optional[float] = None
    calories: Optional[float] = None

    for part in parts[1:]:
        key, _, value = part.partition(":")
        number = _NUMBER_RE.search(value)
        if number is None:
            continue
        key = key.strip().lower()
        if key.startswith("prot"):
            protein = safe_number(number.group(0))
        elif key in ("calories", "kcal", "cal"):
            calories = safe_number(number.group(0))

    if not description or protein is None:
        return None

    return NutritionEstimate(
        description=description,
        detected_foods=[description],
        protein_g=protein,
        calories=calories,
        confidence=1.0,
        is_manual=True,
    )

"""Quantity parsing for portion disambiguation.

Parses free-text quantities ("150g", "2 slices", "half a bowl", "deux
tranches") into grams with a confidence score. Parsers are tried from the
most to the least precise; the first one above its confidence bar wins.
"""

import re
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

# Typical weight in grams of one unit/portion
PORTION_WEIGHTS: Dict[str, float] = {
    # biscuits & cakes
    "biscuit": 20, "cookie": 20, "gâteau": 50, "cake": 50, "madeleine": 15,
    # bread
    "tranche": 25, "slice": 25, "tartine": 30, "toast": 25, "croissant": 60,
    "pain": 40, "baguette": 200,
    # dairy & eggs
    "yaourt": 125, "yogurt": 125, "fromage": 30, "cheese": 30, "lait": 250,
    "milk": 250, "egg": 50, "oeuf": 50, "œuf": 50,
    # standard portions
    "portion": 100, "serving": 100, "assiette": 150, "plate": 150, "bol": 200,
    "bowl": 200, "tasse": 240, "cup": 240, "tbsp": 15, "tsp": 5,
    # fruit & vegetables
    "pomme": 150, "apple": 150, "banane": 120, "banana": 120, "orange": 180,
    "tomate": 100, "tomato": 100,
}

NUMBER_WORDS: Dict[str, float] = {
    # english
    "one": 1, "two": 2, "three": 3, "four": 4, "five": 5, "six": 6, "seven": 7,
    "eight": 8, "nine": 9, "ten": 10, "eleven": 11, "twelve": 12, "twenty": 20,
    "few": 2, "some": 3, "several": 4, "many": 8,
    # french
    "un": 1, "une": 1, "deux": 2, "trois": 3, "quatre": 4, "cinq": 5, "sept": 7,
    "huit": 8, "neuf": 9, "dix": 10, "douze": 12, "vingt": 20, "quelques": 3,
    "plusieurs": 4, "beaucoup": 8,
}

# Articles only count as "1" when a unit word follows ("a cup of it")
ARTICLES: Dict[str, float] = {"a": 1, "an": 1}

FRACTIONS: Dict[str, float] = {
    "1/2": 0.5, "½": 0.5, "half": 0.5, "demi": 0.5, "moitié": 0.5,
    "1/3": 1 / 3, "⅓": 1 / 3, "third": 1 / 3, "tiers": 1 / 3,
    "1/4": 0.25, "¼": 0.25, "quarter": 0.25, "quart": 0.25,
    "2/3": 2 / 3, "⅔": 2 / 3, "3/4": 0.75, "¾": 0.75,
}

_UNIT_GRAMS: Tuple[Tuple[str, float], ...] = (
    (r"kilo(?:gram|gramme)s?|kg", 1000.0),
    (r"milligrams?|mg", 0.001),
    (r"grams?|grammes?|gr|g", 1.0),
    (r"millilit(?:er|re)s?|ml", 1.0),
    (r"lit(?:er|re)s?|l", 1000.0),
    (r"ounces?|oz", 28.35),
    (r"pounds?|lbs?|lb", 453.59),
)

_NUMBER = r"(\d+(?:[.,]\d+)?)"
_WEIGHT_RE = [
    (re.compile(rf"{_NUMBER}\s*(?:{unit})\b", re.IGNORECASE), grams) for unit, grams in _UNIT_GRAMS
]
_LEADING_NUMBER_RE = re.compile(rf"{_NUMBER}\s*(.*)")
_WORD_RE = re.compile(r"[a-zàâäéèêëîïôöùûüÿçœ/½⅓¼⅔¾-]+|\d+/\d+", re.IGNORECASE)

# Bare numbers below this are read as portions, above as grams
BARE_NUMBER_GRAMS_THRESHOLD = 10

HAS_QUANTITY_CONFIDENCE = 0.5
QUANTITY_ANSWER_CONFIDENCE = 0.3


@dataclass(frozen=True)
class QuantityParse:
    """
    Parsed quantity.

    Attributes:
        grams: Portion weight in grams
        confidence: 0.0-1.0; 0.3 means nothing was recognized
        original_text: Input as given
        unit_type: "weight" | "portion" | "piece" | None
        food_type: Portion word recognized (e.g., "slice"), if any
        count: Numeric count or fraction parsed, if any
    """

    grams: float
    confidence: float
    original_text: str
    unit_type: Optional[str] = None
    food_type: Optional[str] = None
    count: Optional[float] = None

    @property
    def multiplier(self) -> float:
        """Ratio against a 100 g base."""
        return self.grams / 100.0

    def has_quantity(self) -> bool:
        """True when the text states an explicit quantity."""
        return self.confidence > HAS_QUANTITY_CONFIDENCE

    def is_quantity_answer(self) -> bool:
        """True when the text can answer a quantity prompt."""
        return self.confidence > QUANTITY_ANSWER_CONFIDENCE


def parse_quantity(text: str) -> QuantityParse:
    """
    Parse a quantity from free text.

    Example:
        >>> parse_quantity("150g").grams
        150.0
        >>> parse_quantity("2 slices").grams
        50.0
        >>> parse_quantity("chicken").has_quantity()
        False
    """
    normalized = text.lower().strip()

    for parser, bar in (
        (_parse_weight, 0.8),
        (_parse_fraction, 0.7),
        (_parse_numeric, 0.5),
        (_parse_number_words, 0.5),
    ):
        result = parser(normalized, text)
        if result is not None and result.confidence > bar:
            return result

    return QuantityParse(grams=100.0, confidence=0.3, original_text=text)


def extract_food_type(text: str) -> Optional[str]:
    """Return the first portion word in text, singularized."""
    for word in _WORD_RE.findall(text.lower()):
        for candidate in (word, word.rstrip("s"), word[:-2] if word.endswith("es") else word):
            if candidate in PORTION_WEIGHTS:
                return candidate
    return None


def _base_weight(food_type: Optional[str]) -> float:
    return PORTION_WEIGHTS.get(food_type, 100.0) if food_type else 100.0


def _to_float(raw: str) -> float:
    return float(raw.replace(",", "."))


def _parse_weight(text: str, original: str) -> Optional[QuantityParse]:
    for pattern, grams_per_unit in _WEIGHT_RE:
        match = pattern.search(text)
        if match:
            value = _to_float(match.group(1))
            return QuantityParse(
                grams=value * grams_per_unit,
                confidence=0.9,
                original_text=original,
                unit_type="weight",
                count=value,
            )
    return None


def _parse_fraction(text: str, original: str) -> Optional[QuantityParse]:
    words = _WORD_RE.findall(text)
    for fraction, value in FRACTIONS.items():
        if fraction in words or (not fraction.isalpha() and fraction in text):
            food_type = extract_food_type(text)
            return QuantityParse(
                grams=value * _base_weight(food_type),
                confidence=0.8,
                original_text=original,
                unit_type="portion",
                food_type=food_type,
                count=value,
            )
    return None


def _parse_numeric(text: str, original: str) -> Optional[QuantityParse]:
    match = _LEADING_NUMBER_RE.search(text)
    if not match:
        return None

    number = _to_float(match.group(1))
    food_type = extract_food_type(match.group(2) or "")

    if food_type:
        return QuantityParse(
            grams=number * _base_weight(food_type),
            confidence=0.7,
            original_text=original,
            unit_type="piece",
            food_type=food_type,
            count=number,
        )

    grams = number if number >= BARE_NUMBER_GRAMS_THRESHOLD else number * 100.0
    return QuantityParse(
        grams=grams,
        confidence=0.6,
        original_text=original,
        unit_type="portion",
        count=number,
    )


def _parse_number_words(text: str, original: str) -> Optional[QuantityParse]:
    words = _WORD_RE.findall(text)
    food_type = extract_food_type(text)

    for word in words:
        value = NUMBER_WORDS.get(word)
        if value is None and food_type:
            value = ARTICLES.get(word)
        if value is not None:
            return QuantityParse(
                grams=value * _base_weight(food_type),
                confidence=0.7,
                original_text=original,
                unit_type="piece",
                food_type=food_type,
                count=value,
            )
    return None

"""Portion heuristics for quantity disambiguation.

Each heuristic returns suggestions in its own order of likelihood;
``order_suggestions`` then enforces the rendering rule: the default
suggestion first, everything else in heuristic order.
"""

from typing import Iterable, List, Optional, Sequence, Tuple

from mealchat.domain.conversation.messages import QuantitySuggestion

S = QuantitySuggestion

_PASTA = (
    S("100g", "100g", 100, is_default=True),
    S("150g", "150g", 150),
    S("200g", "200g", 200),
    S("1 portion", "1 portion", 150),
)

_SALAD = (
    S("1 portion", "1 portion", 200, is_default=True),
    S("200g", "200g", 200),
    S("300g", "300g", 300),
)

_CHIPS = (
    S("30g", "30g", 30, is_default=True),
    S("50g", "50g", 50),
    S("75g", "75g", 75),
)

_BISCUITS = (
    S("1 biscuit (~20g)", "1 biscuit", 20, is_default=True),
    S("2 biscuits (~40g)", "2 biscuits", 40),
    S("3 biscuits (~60g)", "3 biscuits", 60),
    S("100g", "100g", 100),
)

_DRINKS = (
    S("1 glass (250ml)", "250ml", 250, is_default=True),
    S("1 cup (240ml)", "1 cup", 240),
    S("500ml", "500ml", 500),
)

DEFAULT_SUGGESTIONS: Tuple[QuantitySuggestion, ...] = (
    S("Small portion (100g)", "100g", 100, is_default=True),
    S("Large portion (200g)", "200g", 200),
)

# (keywords, suggestions) checked in order against the lowercased food name
HEURISTICS: Sequence[Tuple[Tuple[str, ...], Tuple[QuantitySuggestion, ...]]] = (
    (("pasta", "pâtes", "spaghetti", "penne", "rice", "riz"), _PASTA),
    (("salad", "salade"), _SALAD),
    (("chips", "crisps", "pringles"), _CHIPS),
    (("biscuit", "cookie", "oreo", "petit beurre"), _BISCUITS),
    (("milk", "lait", "juice", "jus", "smoothie", "shake"), _DRINKS),
)


def suggest_portions(food_name: Optional[str]) -> List[QuantitySuggestion]:
    """
    Generate ordered portion suggestions for a food.

    Example:
        >>> [s.label for s in suggest_portions("chicken")]
        ['Small portion (100g)', 'Large portion (200g)']
    """
    name = (food_name or "").lower()
    for keywords, suggestions in HEURISTICS:
        if any(keyword in name for keyword in keywords):
            return order_suggestions(suggestions)
    return order_suggestions(DEFAULT_SUGGESTIONS)


def order_suggestions(suggestions: Iterable[QuantitySuggestion]) -> List[QuantitySuggestion]:
    """
    Apply the rendering order.

    - Exactly one suggestion keeps ``is_default``; when several claim it,
      the highest weight wins (first one on equal weight).
    - The default suggestion is first regardless of weight.
    - Remaining suggestions keep their heuristic order (stable sort).
    """
    items = list(suggestions)
    defaults = [s for s in items if s.is_default]
    if not defaults:
        return items

    winner = max(defaults, key=lambda s: s.weight)
    normalized = [
        s if s is winner or not s.is_default else S(s.label, s.value, s.weight, is_default=False)
        for s in items
    ]
    return sorted(normalized, key=lambda s: not s.is_default)

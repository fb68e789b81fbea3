"""
Entity extraction for store chat messages.

Supports:
- Order numbers behind an "order" or "#" marker
- Budgets with ceiling / floor detection (under 70000, above 20k, ₹70,000)
- Category and brand lookup against the static vocabulary
- Feature keywords in first-seen order
"""

from __future__ import annotations

import re
from typing import Collection, Optional, Tuple, Union

from ..models import Entities
from .vocabulary import TermMatcher, Vocabulary, normalize_text

Number = Union[int, float]

# ============================================================================
# Order numbers
# ============================================================================

ORDER_NUMBER_PATTERN = re.compile(
    r"(?:(?<!\w)order(?:\s*(?:number|no\.?|id))?\s*[:#]?\s*|#\s*)"
    r"(?P<order>[A-Za-z0-9][A-Za-z0-9-]{3,})",
    re.IGNORECASE,
)


def extract_order_number(text: str) -> Tuple[Optional[str], Optional[Tuple[int, int]]]:
    """Return the first order token that carries at least one digit, with its span."""
    for match in ORDER_NUMBER_PATTERN.finditer(text or ""):
        token = match.group("order").rstrip("-")
        if len(token) >= 4 and any(ch.isdigit() for ch in token):
            start = match.start("order")
            return token, (start, start + len(token))
    return None, None


# ============================================================================
# Budget
# ============================================================================

BUDGET_PATTERN = re.compile(
    r"(?<![\w.#])"
    r"(?:(?P<currency>₹|rs\.?|inr|\$)\s*)?"
    r"(?P<amount>\d{1,3}(?:,\d{2,3})+|\d+(?:\.\d+)?)"
    r"(?P<thousands>k)?"
    r"(?!\w)"
    r"(?!\s*(?:gb|tb|mb|mp|mah|hz|inch(?:es)?|hours?|hrs?|days?|weeks?|months?|years?)(?!\w))",
    re.IGNORECASE,
)

BUDGET_CEILING = re.compile(
    r"(?:under|below|within|less than|not more than|upto|up to|max(?:imum)?|budget(?: of| is)?)\s*$"
)
BUDGET_FLOOR = re.compile(r"(?:above|over|more than|at least|min(?:imum)?|starting(?: from| at)?)\s*$")
PRECEDING_WORD = re.compile(r"([^\W\d_]+)\s*$")

# Unmarked numbers below this are quantities or model numbers ("2 laptops", "iPhone 15").
MIN_UNMARKED_AMOUNT = 100


def _to_number(amount: str, thousands: bool) -> Number:
    value = float(amount.replace(",", ""))
    if thousands:
        value *= 1000
    return int(value) if value.is_integer() else value


def _budget_type(prefix: str) -> Optional[str]:
    prefix = normalize_text(prefix)
    if BUDGET_CEILING.search(prefix):
        return "max"
    if BUDGET_FLOOR.search(prefix):
        return "min"
    return None


def extract_budget(
    text: str,
    exclude_span: Optional[Tuple[int, int]] = None,
    model_words: Collection[str] = (),
) -> Tuple[Optional[Number], Optional[str]]:
    """Budget amount in ``text`` and whether it is a ceiling or a floor.

    The first amount behind a budget word, a currency marker or a ``k`` suffix
    wins. Otherwise the first unmarked amount of at least ``MIN_UNMARKED_AMOUNT``
    is used, unless it directly follows one of ``model_words`` (brand names).
    Digits inside ``exclude_span`` (an extracted order number) are never a budget.
    """
    text = text or ""
    unmarked: Optional[Number] = None
    for match in BUDGET_PATTERN.finditer(text):
        if exclude_span and match.start() < exclude_span[1] and match.end() > exclude_span[0]:
            continue
        value = _to_number(match.group("amount"), bool(match.group("thousands")))
        prefix = text[: match.start()]
        budget_type = _budget_type(prefix)
        if budget_type or match.group("currency") or match.group("thousands"):
            return value, budget_type
        if unmarked is not None or value < MIN_UNMARKED_AMOUNT:
            continue
        previous = PRECEDING_WORD.search(normalize_text(prefix))
        if previous and previous.group(1) in model_words:
            continue
        unmarked = value
    return unmarked, None


# ============================================================================
# Extractor
# ============================================================================


class EntityExtractor:
    """Pure function of text plus the static vocabulary."""

    def __init__(self, vocabulary: Vocabulary) -> None:
        self._categories = TermMatcher(vocabulary.categories)
        self._brands = TermMatcher(vocabulary.brands)
        self._features = TermMatcher(vocabulary.features)
        self._model_words = self._brands.surface_forms

    @property
    def categories(self) -> TermMatcher:
        return self._categories

    @property
    def brands(self) -> TermMatcher:
        return self._brands

    def extract(self, text: str) -> Entities:
        text = text or ""
        normalized = normalize_text(text)

        order_number, order_span = extract_order_number(text)
        budget, budget_type = extract_budget(text, order_span, self._model_words)

        return Entities(
            category=self._categories.first(normalized),
            brand=self._brands.first(normalized),
            features=self._features.find_all(normalized) or None,
            budget=budget,
            budget_type=budget_type if budget is not None else None,
            order_number=order_number,
        )

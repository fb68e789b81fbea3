from __future__ import annotations

from enum import StrEnum
from typing import Dict, List


class IntentType(StrEnum):
    """Closed set of intents understood by the store assistant."""

    PRODUCT_SEARCH = "PRODUCT_SEARCH"
    ORDER_TRACKING = "ORDER_TRACKING"
    FAQ = "FAQ"
    GREETING = "GREETING"
    GOODBYE = "GOODBYE"
    SUPPORT = "SUPPORT"
    PRODUCT_COMPARISON = "PRODUCT_COMPARISON"
    UNKNOWN = "UNKNOWN"


# Tie-break order for equal rule scores, most specific first.
INTENT_PRIORITY: List[IntentType] = [
    IntentType.ORDER_TRACKING,
    IntentType.PRODUCT_SEARCH,
    IntentType.PRODUCT_COMPARISON,
    IntentType.FAQ,
    IntentType.GREETING,
    IntentType.GOODBYE,
    IntentType.SUPPORT,
]

_PRIORITY_RANK: Dict[IntentType, int] = {intent: rank for rank, intent in enumerate(INTENT_PRIORITY)}


def intent_rank(intent: IntentType) -> int:
    """Lower rank wins ties. UNKNOWN always ranks last."""

    return _PRIORITY_RANK.get(intent, len(INTENT_PRIORITY))


def parse_intent(value: object) -> IntentType:
    """Map a provider supplied intent name onto the closed set.

    Names are matched case-insensitively so ``product_search`` is accepted;
    anything else raises ``ValueError``.
    """

    if isinstance(value, IntentType):
        return value
    if not isinstance(value, str):
        raise ValueError(f"intent must be a string, got {type(value).__name__}")
    normalized = value.strip().upper().replace("-", "_").replace(" ", "_")
    return IntentType(normalized)


def intent_descriptions() -> Dict[str, str]:
    """Human readable descriptions shipped to the LLM to improve grounding."""

    return {
        IntentType.PRODUCT_SEARCH.value: (
            "The user is looking for a product, possibly with a category, brand, budget or features."
        ),
        IntentType.ORDER_TRACKING.value: "The user wants the status or location of an existing order.",
        IntentType.FAQ.value: "Store policy questions: returns, refunds, shipping, warranty, payments.",
        IntentType.GREETING.value: "Hello, hi and other conversation openers.",
        IntentType.GOODBYE.value: "Thanks, bye and other conversation closers.",
        IntentType.SUPPORT.value: "The user needs help from a human or reports a problem.",
        IntentType.PRODUCT_COMPARISON.value: "The user wants two or more products compared.",
        IntentType.UNKNOWN.value: "Nothing above applies.",
    }

from __future__ import annotations

from typing import Dict, List, Optional

from ..intents import IntentType
from ..models import Entities

STORE_NAME = "PulsePixelTech"

DEFAULT_QUICK_REPLIES: List[str] = ["Find products", "Track order", "Need help"]

QUICK_REPLIES: Dict[IntentType, List[str]] = {
    IntentType.PRODUCT_SEARCH: ["Show more options", "Compare products", "Filter by price", "Need help choosing"],
    IntentType.ORDER_TRACKING: ["Track package", "Contact delivery", "Order history", "Need help"],
    IntentType.FAQ: ["More questions", "Contact support", "Browse products", "Return policy"],
    IntentType.GREETING: ["Find products", "Track order", "FAQs", "Need help"],
    IntentType.GOODBYE: ["Browse products", "Track order", "Contact support"],
    IntentType.SUPPORT: ["Find products", "Track order", "FAQs", "Contact support"],
}


def quick_replies_for(intent: IntentType) -> List[str]:
    """Quick replies for an intent; unmapped intents get the generic set."""
    return list(QUICK_REPLIES.get(intent) or DEFAULT_QUICK_REPLIES)


def quick_reply_table() -> Dict[str, List[str]]:
    table = {intent.value: list(replies) for intent, replies in QUICK_REPLIES.items()}
    table["default"] = list(DEFAULT_QUICK_REPLIES)
    return table


def format_budget(amount: float | int) -> str:
    if float(amount).is_integer():
        return f"₹{int(amount):,}"
    return f"₹{amount:,.2f}"


def describe_products(entities: Entities) -> str:
    """Noun phrase such as ``a gaming Samsung laptop``."""
    words: List[str] = []
    if entities.features:
        words.append(" and ".join(entities.features[:2]))
    if entities.brand:
        words.append(entities.brand)
    words.append(entities.category or "products")
    phrase = " ".join(words)
    if entities.category and not entities.category.endswith("s"):
        article = "an" if phrase[0].lower() in "aeiou" else "a"
        phrase = f"{article} {phrase}"
    return phrase


def budget_clause(entities: Entities) -> str:
    if entities.budget is None:
        return ""
    amount = format_budget(entities.budget)
    if entities.budget_type == "min":
        return f" above {amount}"
    if entities.budget_type == "max":
        return f" under {amount}"
    return f" around {amount}"


def _product_search(entities: Entities) -> str:
    return (
        f"I'd be happy to help you find {describe_products(entities)}{budget_clause(entities)}! 🛍️ "
        "Let me pull up some great options for you. Would you like to narrow it down further?"
    )


def _order_tracking(entities: Entities) -> str:
    if entities.order_number:
        return (
            f"Let me check the status of order {entities.order_number} for you. 📦 "
            "You'll see the latest tracking update shortly. Anything else I can help with?"
        )
    return "I can help you track your order! 📦 Could you share your order number (for example #ORD12345)?"


def _faq(entities: Entities) -> str:
    return (
        "Happy to help with your question! ℹ️ I can share details on returns, shipping, warranty and payments. "
        "What would you like to know?"
    )


def _greeting(entities: Entities) -> str:
    return (
        f"Hello! 👋 Welcome to {STORE_NAME}. I can help you find products, track orders or answer questions. "
        "What are you looking for today?"
    )


def _goodbye(entities: Entities) -> str:
    return f"Thank you for visiting {STORE_NAME}! 😊 Have a great day and come back anytime."


def _support(entities: Entities) -> str:
    return (
        "I'm here to help! 🤝 Tell me a bit more about what you need, or contact our support team "
        "and we'll sort it out together."
    )


def _comparison(entities: Entities) -> str:
    subject = describe_products(entities) if (entities.category or entities.brand) else "products"
    if subject.startswith(("a ", "an ")):
        subject = subject.split(" ", 1)[1] + " options"
    return (
        f"Sure, I can compare {subject} for you{budget_clause(entities)}. ⚖️ "
        "Which models would you like to put side by side?"
    )


def _unknown(entities: Entities) -> str:
    return (
        "I'm not sure I understood that. 🤔 I can help you find products, track an order or answer "
        "store questions. What would you like to do?"
    )


_TEMPLATES = {
    IntentType.PRODUCT_SEARCH: _product_search,
    IntentType.ORDER_TRACKING: _order_tracking,
    IntentType.FAQ: _faq,
    IntentType.GREETING: _greeting,
    IntentType.GOODBYE: _goodbye,
    IntentType.SUPPORT: _support,
    IntentType.PRODUCT_COMPARISON: _comparison,
}


def render_message(intent: IntentType, entities: Optional[Entities] = None) -> str:
    """Intent phrase template with the extracted entities substituted in."""
    render = _TEMPLATES.get(intent, _unknown)
    return render(entities or Entities())

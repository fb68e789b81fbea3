from __future__ import annotations

import pytest

from app.intents import IntentType
from app.models import RULE_BASED_SOURCE, IntentResult
from app.services.rule_engine import RuleBasedEngine
from app.services.vocabulary import parse_vocabulary


@pytest.mark.parametrize(
    ("message", "expected"),
    [
        ("I need a gaming laptop under 70000", IntentType.PRODUCT_SEARCH),
        ("Show me best phones under 30000", IntentType.PRODUCT_SEARCH),
        ("Track my order #ORD12345", IntentType.ORDER_TRACKING),
        ("What is your return policy?", IntentType.FAQ),
        ("How long does shipping take?", IntentType.FAQ),
        ("Hello, I need help", IntentType.GREETING),
        ("Thank you, goodbye", IntentType.GOODBYE),
        ("I want a Samsung phone with good camera under 25000 for photography", IntentType.PRODUCT_SEARCH),
        ("Compare iPhone vs Samsung Galaxy", IntentType.PRODUCT_COMPARISON),
        ("I have a problem, I want to talk to a human", IntentType.SUPPORT),
    ],
)
def test_classify_store_scenarios(rule_engine: RuleBasedEngine, message: str, expected: IntentType) -> None:
    result = rule_engine.classify(message)

    assert result.intent == expected
    assert result.source == RULE_BASED_SOURCE
    assert 0.0 < result.confidence < 1.0


def test_gaming_laptop_entities(rule_engine: RuleBasedEngine) -> None:
    result = rule_engine.classify("I need a gaming laptop under 70000")

    assert result.intent == IntentType.PRODUCT_SEARCH
    assert result.entities.category == "laptop"
    assert result.entities.budget == 70000
    assert result.entities.budget_type == "max"
    assert "gaming" in (result.entities.features or [])


def test_order_tracking_entities(rule_engine: RuleBasedEngine) -> None:
    result = rule_engine.classify("Track my order #ORD12345")

    assert result.intent == IntentType.ORDER_TRACKING
    assert result.entities.order_number == "ORD12345"
    assert result.entities.budget is None


def test_greeting_confidence_above_acceptance_floor(rule_engine: RuleBasedEngine) -> None:
    result = rule_engine.classify("Hello")

    assert result.intent == IntentType.GREETING
    assert result.confidence >= 0.6


@pytest.mark.parametrize("message", ["", "   ", "qwerty asdf", "12 34", "🙂"])
def test_no_trigger_yields_unknown_with_zero_confidence(rule_engine: RuleBasedEngine, message: str) -> None:
    result = rule_engine.classify(message)

    assert result.intent == IntentType.UNKNOWN
    assert result.confidence == 0.0


def test_classification_is_deterministic(rule_engine: RuleBasedEngine) -> None:
    message = "I want a Samsung phone with good camera under 25000 for photography"

    first = rule_engine.classify(message)
    second = RuleBasedEngine().classify(message)

    assert first == second


def test_triggers_count_once() -> None:
    vocabulary = parse_vocabulary({"intents": {"GREETING": {"triggers": {"hello": 1.0}}}})
    engine = RuleBasedEngine(vocabulary)

    once = engine.classify("hello")
    many = engine.classify("hello hello hello")

    assert once.confidence == many.confidence == 0.5


def test_equal_scores_break_ties_by_priority() -> None:
    vocabulary = parse_vocabulary(
        {
            "intents": {
                "SUPPORT": {"triggers": {"ping": 2.0}},
                "GREETING": {"triggers": {"pong": 2.0}},
                "ORDER_TRACKING": {"triggers": {"pang": 2.0}},
            }
        }
    )
    engine = RuleBasedEngine(vocabulary)

    assert engine.classify("ping pong").intent == IntentType.GREETING
    assert engine.classify("ping pong pang").intent == IntentType.ORDER_TRACKING


def test_score_below_floor_is_unknown() -> None:
    vocabulary = parse_vocabulary({"intents": {"FAQ": {"triggers": {"maybe": 0.1}}}})
    engine = RuleBasedEngine(vocabulary, min_confidence=0.15)

    result = engine.classify("maybe")

    assert result.intent == IntentType.UNKNOWN
    assert result.confidence == 0.0


def test_trigger_requires_whole_word(rule_engine: RuleBasedEngine) -> None:
    # "hi" must not fire inside "this" or "shipping"
    result = rule_engine.classify("this is shipping")

    assert result.intent == IntentType.FAQ


def test_generate_response_uses_entities(rule_engine: RuleBasedEngine) -> None:
    result = rule_engine.classify("I need a gaming laptop under 70000")

    reply = rule_engine.generate_response(result)

    assert reply.source == RULE_BASED_SOURCE
    assert "laptop" in reply.message
    assert "₹70,000" in reply.message
    assert reply.quick_replies == ["Show more options", "Compare products", "Filter by price", "Need help choosing"]


def test_generate_response_for_unknown_uses_default_quick_replies(rule_engine: RuleBasedEngine) -> None:
    reply = rule_engine.generate_response(
        IntentResult(intent=IntentType.UNKNOWN, confidence=0.0, source=RULE_BASED_SOURCE)
    )

    assert reply.message
    assert reply.quick_replies == ["Find products", "Track order", "Need help"]


@pytest.mark.parametrize(
    "message",
    [
        "compare laptop and phone",
        "compare gaming laptops under 70000",
        "Compare Samsung phones and Apple tablets",
        "difference between OnePlus and Pixel, which is better?",
    ],
)
def test_comparison_beats_category_mentions(rule_engine: RuleBasedEngine, message: str) -> None:
    assert rule_engine.classify(message).intent == IntentType.PRODUCT_COMPARISON


def test_category_bonus_counts_once_per_message(rule_engine: RuleBasedEngine) -> None:
    one = {score.intent: score.raw_score for score in rule_engine.score("laptop")}
    many = {score.intent: score.raw_score for score in rule_engine.score("laptop phone tablet")}

    assert one[IntentType.PRODUCT_SEARCH] == many[IntentType.PRODUCT_SEARCH] == 2.0


@pytest.mark.parametrize("message", ["I want to return my order", "How do I return this order?"])
def test_returning_an_order_is_faq(rule_engine: RuleBasedEngine, message: str) -> None:
    assert rule_engine.classify(message).intent == IntentType.FAQ

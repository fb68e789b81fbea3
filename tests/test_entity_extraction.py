from __future__ import annotations

import pytest

from app.models import Entities
from app.services.entity_extraction import extract_budget, extract_order_number
from app.services.rule_engine import RuleBasedEngine


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("Track my order #ORD12345", "ORD12345"),
        ("order number 98765 please", "98765"),
        ("Order ID: AB-1234 is late", "AB-1234"),
        ("where is #55501", "55501"),
    ],
)
def test_order_number_variants(text: str, expected: str) -> None:
    value, span = extract_order_number(text)

    assert value == expected
    assert text[span[0]:span[1]] == expected


@pytest.mark.parametrize("text", ["what is my order status", "order #12", "I want to order 2 laptops"])
def test_order_number_needs_marker_digit_and_length(text: str) -> None:
    value, _ = extract_order_number(text)

    assert value is None


@pytest.mark.parametrize(
    ("text", "amount", "budget_type"),
    [
        ("gaming laptop under 70000", 70000, "max"),
        ("phones below ₹25,000", 25000, "max"),
        ("something within 70k", 70000, "max"),
        ("tv above 40000", 40000, "min"),
        ("headphones over 1999.50", 1999.5, "min"),
        ("I have 30000 to spend", 30000, None),
    ],
)
def test_budget_and_budget_type(text: str, amount: float, budget_type: str | None) -> None:
    value, kind = extract_budget(text)

    assert value == amount
    assert kind == budget_type


def test_amount_behind_budget_word_wins() -> None:
    value, _ = extract_budget("phone with 5g and 128gb under 20000, not 30000")

    assert value == 20000


@pytest.mark.parametrize(
    ("text", "amount", "budget_type"),
    [
        ("iPhone 15 under 80000", 80000, "max"),
        ("I need 2 laptops under 70000", 70000, "max"),
        ("3 phones for ₹45,000", 45000, None),
        ("Pixel 8 around 40k", 40000, None),
    ],
)
def test_quantities_and_model_numbers_are_not_budgets(text: str, amount: int, budget_type: str | None) -> None:
    value, kind = extract_budget(text)

    assert value == amount
    assert kind == budget_type


@pytest.mark.parametrize("text", ["Show me iPhone 15 options", "what about 2 gaming ones", "Lenovo LOQ 15 specs"])
def test_small_unmarked_numbers_are_ignored(text: str) -> None:
    value, kind = extract_budget(text)

    assert value is None
    assert kind is None


def test_number_after_brand_name_is_a_model(rule_engine: RuleBasedEngine) -> None:
    entities = rule_engine.extract_entities("samsung 2400 or iphone 1500 colours")

    assert entities.brand == "Samsung"
    assert entities.budget is None


def test_order_digits_never_become_budget() -> None:
    _, span = extract_order_number("order 12345 arrived broken")
    value, _ = extract_budget("order 12345 arrived broken", span)

    assert value is None


def test_category_prefers_longest_match(rule_engine: RuleBasedEngine) -> None:
    entities = rule_engine.extract_entities("looking for a smartphone")

    assert entities.category == "smartphone"


def test_synonyms_map_to_canonical_values(rule_engine: RuleBasedEngine) -> None:
    entities = rule_engine.extract_entities(
        "I want a Samsung phone with good camera under 25000 for photography"
    )

    assert entities.category == "smartphone"
    assert entities.brand == "Samsung"
    assert entities.budget == 25000
    assert entities.budget_type == "max"
    # camera and photography both map to "camera": kept once
    assert entities.features == ["camera"]


def test_features_keep_first_seen_order(rule_engine: RuleBasedEngine) -> None:
    entities = rule_engine.extract_entities("need battery life, a good display and gaming, battery again")

    assert entities.features == ["battery", "display", "gaming"]


def test_absent_entities_are_not_serialized(rule_engine: RuleBasedEngine) -> None:
    entities = rule_engine.extract_entities("hello there")

    assert entities.as_dict() == {}
    assert entities.is_empty()


def test_entities_use_camel_case_on_the_wire() -> None:
    entities = Entities(order_number="ORD1", budget=100, budget_type="max")

    assert entities.as_dict() == {"orderNumber": "ORD1", "budget": 100, "budgetType": "max"}
    assert Entities.model_validate({"orderNumber": "ORD1"}).order_number == "ORD1"


def test_merge_overwrites_only_present_keys() -> None:
    first = Entities(budget=70000, budget_type="max", brand="Dell")
    second = Entities(category="laptop", brand="HP")

    merged = first.merged_with(second)

    assert merged.budget == 70000
    assert merged.budget_type == "max"
    assert merged.category == "laptop"
    assert merged.brand == "HP"


def test_new_budget_replaces_budget_type() -> None:
    merged = Entities(budget=70000, budget_type="max").merged_with(Entities(budget=20000))

    assert merged.budget == 20000
    assert merged.budget_type is None

from __future__ import annotations

from typing import Dict

from langchain_core.prompts import ChatPromptTemplate


def _intent_lines(descriptions: Dict[str, str]) -> str:
    return "\n".join(f"- {name}: {text}" for name, text in descriptions.items())


def build_intent_prompt(descriptions: Dict[str, str]) -> ChatPromptTemplate:
    """Return ChatPromptTemplate asking the model for a strict JSON intent analysis."""

    # Escape curly braces so LangChain does not treat the JSON example as variables
    example = (
        '{"intent": "PRODUCT_SEARCH", "confidence": 0.9, '
        '"entities": {"category": "laptop", "budget": 70000, "budgetType": "max", '
        '"features": ["gaming"], "brand": null, "orderNumber": null}}'
    ).replace("{", "{{").replace("}", "}}")

    system_message = (
        "You are an intent classifier for PulsePixelTech, an e-commerce store for digital electronics. "
        "Analyze the customer's message and respond ONLY with a JSON object, no other text.\n\n"
        f"Allowed intents:\n{_intent_lines(descriptions)}\n\n"
        "Rules:\n"
        "- intent must be one of the allowed names.\n"
        "- confidence is a number between 0 and 1.\n"
        "- entities may contain category, budget (number), budgetType (max or min), "
        "features (list of strings), brand and orderNumber. Use null when unknown.\n\n"
        f"Example:\n{example}"
    )

    user_template = (
        "Customer message: {message}\n"
        "Known context from earlier turns (JSON, may be empty): {context_json}"
    )

    return ChatPromptTemplate.from_messages(
        [
            ("system", system_message),
            ("user", user_template),
        ]
    )

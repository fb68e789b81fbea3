from __future__ import annotations

from langchain_core.prompts import ChatPromptTemplate


def build_response_prompt() -> ChatPromptTemplate:
    """Return ChatPromptTemplate for a short conversational store reply."""

    system_message = (
        "You are a helpful e-commerce chatbot for PulsePixelTech, specializing in digital electronics.\n\n"
        "Context:\n"
        "- Intent: {intent}\n"
        "- Entities: {entities_json}\n"
        "- User context: {context_json}\n\n"
        "Guidelines:\n"
        "- Be friendly, helpful and professional.\n"
        "- Keep responses concise (2-3 sentences max).\n"
        "- Use emojis appropriately.\n"
        "- For product searches, mention you'll help find products.\n"
        "- For order tracking, mention you'll check the status.\n"
        "- Always end with a helpful question or suggestion.\n\n"
        "Respond with a natural, conversational message."
    )

    return ChatPromptTemplate.from_messages(
        [
            ("system", system_message),
            ("user", "{message}"),
        ]
    )


def build_health_prompt() -> ChatPromptTemplate:
    return ChatPromptTemplate.from_messages([("user", "Hello")])

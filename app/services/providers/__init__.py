"""Remote understanding provider adapters."""

from .base import ProviderAdapter, classify_exception, parse_intent_payload, run_with_deadline
from .langchain_provider import ChatModelProvider
from .registry import PROVIDER_FACTORIES, build_adapters

__all__ = [
    "ChatModelProvider",
    "PROVIDER_FACTORIES",
    "ProviderAdapter",
    "build_adapters",
    "classify_exception",
    "parse_intent_payload",
    "run_with_deadline",
]

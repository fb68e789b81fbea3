from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import ConfigDict, Field

from ..intents import IntentType
from .catalog import ComparisonResult, FAQItem, Product, ProductFit, RecommendationsResponse
from .nlu import (
    RULE_BASED_SOURCE,
    CamelModel,
    Entities,
    HealthStatus,
    IntentResult,
    Message,
    ProviderHealth,
    ProviderStatusReport,
    Reply,
)
from .session import Session, Turn


class ChatRequest(CamelModel):
    model_config = ConfigDict(extra="ignore")

    message: str
    session_id: str
    user_id: Optional[str] = None
    trace_id: Optional[str] = None


class ChatResponse(CamelModel):
    success: bool = True
    session_id: str
    intent: IntentType
    confidence: float
    entities: Dict[str, Any] = Field(default_factory=dict)
    context: Dict[str, Any] = Field(default_factory=dict)
    source: str
    response: Reply
    trace_id: Optional[str] = None


class CompareProductsRequest(CamelModel):
    model_config = ConfigDict(extra="ignore")

    product_ids: List[str] = Field(min_length=1)
    preferences: Dict[str, Any] = Field(default_factory=dict)
    query: Optional[str] = None


class RecommendationsRequest(CamelModel):
    model_config = ConfigDict(extra="ignore")

    session_id: Optional[str] = None
    user_id: Optional[str] = None
    preferences: Dict[str, Any] = Field(default_factory=dict)
    query: Optional[str] = None
    limit: int = Field(default=5, ge=1, le=20)


__all__ = [
    "RULE_BASED_SOURCE",
    "CamelModel",
    "ChatRequest",
    "ChatResponse",
    "CompareProductsRequest",
    "ComparisonResult",
    "Entities",
    "FAQItem",
    "HealthStatus",
    "IntentResult",
    "Message",
    "Product",
    "ProductFit",
    "ProviderHealth",
    "ProviderStatusReport",
    "RecommendationsRequest",
    "RecommendationsResponse",
    "Reply",
    "Session",
    "Turn",
]

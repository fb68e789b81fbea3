from __future__ import annotations

from datetime import datetime, timezone
from enum import StrEnum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ..intents import IntentType

RULE_BASED_SOURCE = "rule-based"


class CamelModel(BaseModel):
    """Base for payloads exchanged with clients and providers (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Entities(CamelModel):
    """Structured values extracted from free text. Absent keys are simply not set."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    category: Optional[str] = None
    budget: Optional[Union[int, float]] = None
    budget_type: Optional[Literal["max", "min"]] = None
    brand: Optional[str] = None
    features: Optional[List[str]] = None
    order_number: Optional[str] = None

    @field_validator("category", "brand", "order_number", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("budget")
    @classmethod
    def _non_negative_budget(cls, value: Any) -> Any:
        if value is not None and value < 0:
            raise ValueError("budget must not be negative")
        return value

    @field_validator("features", mode="before")
    @classmethod
    def _normalize_features(cls, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, str):
            value = [value]
        if isinstance(value, (list, tuple)):
            seen: List[str] = []
            for item in value:
                if not isinstance(item, str):
                    raise ValueError("features must be strings")
                feature = item.strip()
                if feature and feature not in seen:
                    seen.append(feature)
            return seen or None
        return value

    def as_dict(self) -> Dict[str, Any]:
        """Wire representation without null-valued keys."""
        return self.model_dump(by_alias=True, exclude_none=True)

    def is_empty(self) -> bool:
        return not self.model_dump(exclude_none=True)

    def merged_with(self, newer: "Entities") -> "Entities":
        """Overlay ``newer`` on top of these entities.

        Keys present in ``newer`` replace existing ones, absent keys are kept.
        ``budget`` and ``budget_type`` travel together.
        """
        merged = self.model_dump(exclude_none=True)
        update = newer.model_dump(exclude_none=True)
        if "budget" in update:
            merged.pop("budget_type", None)
        merged.update(update)
        return Entities.model_validate(merged)


class Message(CamelModel):
    """Inbound chat message, immutable once received."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    text: str
    session_id: str
    user_id: Optional[str] = None
    received_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class IntentResult(CamelModel):
    intent: IntentType
    confidence: float = Field(ge=0.0, le=1.0)
    entities: Entities = Field(default_factory=Entities)
    source: str


class Reply(CamelModel):
    """User-facing reply with suggested quick-reply actions."""

    message: str = Field(min_length=1)
    quick_replies: List[str] = Field(default_factory=list)
    source: str


class HealthStatus(StrEnum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    DISABLED = "disabled"
    ERROR = "error"


class ProviderHealth(CamelModel):
    status: HealthStatus
    reason: Optional[str] = None
    model: Optional[str] = None


class ProviderStatusReport(CamelModel):
    """Health of one adapter combined with its circuit breaker state."""

    name: str
    status: HealthStatus
    reason: Optional[str] = None
    breaker_state: str
    consecutive_failures: int = 0
    last_health_check: Optional[ProviderHealth] = None
    last_checked_at: Optional[datetime] = None

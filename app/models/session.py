from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from ..intents import IntentType
from .nlu import CamelModel, Entities, IntentResult, Message


class Turn(CamelModel):
    message: Message
    result: IntentResult


class Session(CamelModel):
    """Rolling conversation state owned by the session store."""

    id: str
    history: List[Turn] = Field(default_factory=list)
    accumulated_entities: Entities = Field(default_factory=Entities)
    last_intent: Optional[IntentType] = None
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    def recent_messages(self, limit: int = 4) -> List[str]:
        return [turn.message.text for turn in self.history[-limit:]] if limit > 0 else []

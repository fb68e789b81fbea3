"""
RuleBasedEngine - deterministic intent classifier and entity extractor.

Scoring: every intent owns a weighted trigger table. The triggers found in the
message are summed once each. Naming any category, and naming any brand, each add
one fixed bonus to PRODUCT_SEARCH. The raw score is squashed with
``score / (score + k)``. The highest score wins, equal scores resolve by the
fixed intent priority, and anything under the floor becomes UNKNOWN with
confidence 0.

The engine never raises for any text input and has no I/O after construction,
which makes it the terminal fallback of the provider chain.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from ..intents import IntentType, intent_rank
from ..models import RULE_BASED_SOURCE, Entities, IntentResult, Reply
from .entity_extraction import EntityExtractor
from .reply_templates import quick_replies_for, render_message
from .vocabulary import Vocabulary, load_vocabulary, normalize_text, phrase_pattern

logger = logging.getLogger(__name__)

DEFAULT_MIN_CONFIDENCE = 0.15


@dataclass
class IntentScore:
    intent: IntentType
    raw_score: float
    confidence: float
    matched_triggers: List[str] = field(default_factory=list)


class RuleBasedEngine:
    """Keyword/pattern NLU that always returns a result."""

    source = RULE_BASED_SOURCE

    def __init__(
        self,
        vocabulary: Vocabulary | None = None,
        *,
        min_confidence: float = DEFAULT_MIN_CONFIDENCE,
    ) -> None:
        self._vocabulary = vocabulary or load_vocabulary()
        self._min_confidence = min_confidence
        self._extractor = EntityExtractor(self._vocabulary)
        self._triggers: Dict[IntentType, List[Tuple[str, re.Pattern[str], float]]] = {
            intent: [(phrase, phrase_pattern(phrase), weight) for phrase, weight in table.items()]
            for intent, table in self._vocabulary.triggers.items()
        }

    @property
    def min_confidence(self) -> float:
        return self._min_confidence

    def _saturate(self, score: float) -> float:
        if score <= 0:
            return 0.0
        return score / (score + self._vocabulary.saturation)

    def score(self, text: str) -> List[IntentScore]:
        """All intents with a positive score, best first."""
        normalized = normalize_text(text)
        scores: List[IntentScore] = []
        for intent, triggers in self._triggers.items():
            matched = [phrase for phrase, pattern, _ in triggers if pattern.search(normalized)]
            raw = sum(weight for phrase, _, weight in triggers if phrase in matched)
            if intent is IntentType.PRODUCT_SEARCH:
                categories = self._extractor.categories.find_all(normalized)
                brands = self._extractor.brands.find_all(normalized)
                # one bonus per kind of mention, however many products are named
                if categories:
                    raw += self._vocabulary.category_trigger_weight
                if brands:
                    raw += self._vocabulary.brand_trigger_weight
                matched.extend(categories + brands)
            if raw > 0:
                scores.append(IntentScore(intent, raw, self._saturate(raw), matched))
        scores.sort(key=lambda item: (-item.raw_score, intent_rank(item.intent)))
        return scores

    def classify(self, text: str) -> IntentResult:
        entities = self.extract_entities(text)
        scores = self.score(text)
        best: Optional[IntentScore] = scores[0] if scores else None

        if best is None or best.confidence < self._min_confidence:
            logger.debug("Rule engine: no intent above floor for %r", (text or "")[:50])
            return IntentResult(
                intent=IntentType.UNKNOWN,
                confidence=0.0,
                entities=entities,
                source=self.source,
            )

        logger.debug(
            "Rule engine: intent=%s confidence=%.2f triggers=%s",
            best.intent.value,
            best.confidence,
            best.matched_triggers[:5],
        )
        return IntentResult(
            intent=best.intent,
            confidence=round(best.confidence, 4),
            entities=entities,
            source=self.source,
        )

    def extract_entities(self, text: str) -> Entities:
        return self._extractor.extract(text)

    def generate_response(self, intent_result: IntentResult, entities: Entities | None = None) -> Reply:
        """Templated reply for an intent; never empty."""
        effective = entities if entities is not None else intent_result.entities
        return Reply(
            message=render_message(intent_result.intent, effective),
            quick_replies=quick_replies_for(intent_result.intent),
            source=self.source,
        )

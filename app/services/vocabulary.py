from __future__ import annotations

import functools
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional

import yaml

from ..intents import IntentType

logger = logging.getLogger(__name__)

VOCABULARY_PATH = Path(__file__).resolve().parents[2] / "config" / "nlu_vocabulary.yaml"

_APOSTROPHES = str.maketrans({"’": "'", "‘": "'", "`": "'"})


def normalize_text(text: str) -> str:
    """Lowercase, unify apostrophes and collapse whitespace."""
    result = (text or "").translate(_APOSTROPHES).lower().strip()
    return re.sub(r"\s+", " ", result)


def phrase_pattern(phrase: str) -> re.Pattern[str]:
    """Whole-word pattern for a (possibly multi-word) phrase."""
    return re.compile(rf"(?<!\w){re.escape(phrase)}(?!\w)")


class TermMatcher:
    """Maps surface forms onto canonical values, longest form first."""

    def __init__(self, mapping: Mapping[str, Iterable[str]]) -> None:
        self._canonical: Dict[str, str] = {}
        for canonical, terms in mapping.items():
            for term in [canonical, *terms]:
                key = normalize_text(str(term))
                if key:
                    self._canonical.setdefault(key, str(canonical))
        forms = sorted(self._canonical, key=len, reverse=True)
        self._pattern: Optional[re.Pattern[str]] = None
        if forms:
            alternation = "|".join(re.escape(form) for form in forms)
            self._pattern = re.compile(rf"(?<!\w)(?:{alternation})(?!\w)")

    @property
    def surface_forms(self) -> FrozenSet[str]:
        return frozenset(self._canonical)

    def find_all(self, normalized: str) -> List[str]:
        """Canonical values in first-seen order, duplicates removed."""
        if self._pattern is None:
            return []
        found: List[str] = []
        for match in self._pattern.finditer(normalized):
            value = self._canonical[match.group(0)]
            if value not in found:
                found.append(value)
        return found

    def first(self, normalized: str) -> Optional[str]:
        if self._pattern is None:
            return None
        match = self._pattern.search(normalized)
        return self._canonical[match.group(0)] if match else None


@dataclass(frozen=True)
class Vocabulary:
    """Read-only trigger and catalog tables for the rule engine."""

    triggers: Dict[IntentType, Dict[str, float]]
    categories: Dict[str, List[str]] = field(default_factory=dict)
    brands: Dict[str, List[str]] = field(default_factory=dict)
    features: Dict[str, List[str]] = field(default_factory=dict)
    saturation: float = 1.0
    category_trigger_weight: float = 2.0
    brand_trigger_weight: float = 1.0


def _parse_terms(raw: Mapping | None) -> Dict[str, List[str]]:
    parsed: Dict[str, List[str]] = {}
    for canonical, terms in (raw or {}).items():
        parsed[str(canonical)] = [str(term) for term in terms or []]
    return parsed


def parse_vocabulary(data: Mapping) -> Vocabulary:
    triggers: Dict[IntentType, Dict[str, float]] = {}
    for intent_name, config in (data.get("intents") or {}).items():
        try:
            intent = IntentType(str(intent_name).upper())
        except ValueError:
            logger.warning("Unknown intent in vocabulary: %s", intent_name)
            continue
        if intent is IntentType.UNKNOWN:
            continue
        weights = (config or {}).get("triggers") or {}
        triggers[intent] = {normalize_text(str(phrase)): float(weight) for phrase, weight in weights.items()}

    scoring = data.get("scoring") or {}
    saturation = float(scoring.get("saturation", 1.0))
    if saturation <= 0:
        raise ValueError("scoring.saturation must be positive")

    return Vocabulary(
        triggers=triggers,
        categories=_parse_terms(data.get("categories")),
        brands=_parse_terms(data.get("brands")),
        features=_parse_terms(data.get("features")),
        saturation=saturation,
        category_trigger_weight=float(scoring.get("category_trigger_weight", 2.0)),
        brand_trigger_weight=float(scoring.get("brand_trigger_weight", 1.0)),
    )


@functools.lru_cache(maxsize=4)
def load_vocabulary(path: Path = VOCABULARY_PATH) -> Vocabulary:
    """Load and cache the vocabulary file; the result is shared read-only."""
    if not path.exists():
        raise FileNotFoundError(f"NLU vocabulary not found at {path}")
    with path.open("r", encoding="utf-8") as fp:
        data = yaml.safe_load(fp) or {}
    vocabulary = parse_vocabulary(data)
    logger.info(
        "Vocabulary loaded: %d intents, %d categories, %d brands, %d features",
        len(vocabulary.triggers),
        len(vocabulary.categories),
        len(vocabulary.brands),
        len(vocabulary.features),
    )
    return vocabulary

"""Lexical report classifier.

Scores a report's title and description against every entity of the
lexicon and picks the responsible entity:

- every whole-word occurrence of a trigger phrase in ``title + description``
  is worth :data:`BASE_WEIGHT` points;
- every occurrence inside the title adds :data:`TITLE_BONUS` more;
- the strictly highest total wins, ties go to the entity declared first;
- no hits at all routes to the lexicon's fallback entity.

The raw score is then mapped to a confidence band (50-98). Word boundaries are
Unicode-aware, so accented letters and ``ñ`` are word characters: ``gas``
never matches inside ``gasolinazo`` and ``ñero`` matches as a word.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List

from .feature_flags import get_feature_flag
from .lexicon import Lexicon, default_lexicon, load_lexicon
from .models import ClassificationResult

BASE_WEIGHT = 3
TITLE_BONUS = 5

# (minimum score, confidence), checked in order.
CONFIDENCE_BANDS: tuple[tuple[int, int], ...] = (
    (15, 98),
    (10, 95),
    (7, 90),
    (5, 85),
    (3, 75),
    (1, 65),
)
FALLBACK_CONFIDENCE = 50

MAX_REASONING_TERMS = 3
NO_MATCH_REASONING = "No se identificaron palabras clave específicas, asignando a entidad general de Alcaldía"


@dataclass
class EntityScore:
    entity: str
    score: int = 0
    matched_terms: List[str] = field(default_factory=list)


def normalize_text(value: str) -> str:
    return " ".join(value.casefold().split())


@lru_cache(maxsize=4096)
def _term_pattern(term: str) -> re.Pattern[str]:
    return re.compile(r"(?<!\w)" + re.escape(term) + r"(?!\w)")


def count_occurrences(text: str, term: str) -> int:
    """Count whole-word occurrences of ``term`` in already-normalized ``text``."""
    normalized = normalize_text(term)
    if not normalized or not text:
        return 0
    return len(_term_pattern(normalized).findall(text))


def confidence_for_score(score: int) -> int:
    for threshold, confidence in CONFIDENCE_BANDS:
        if score >= threshold:
            return confidence
    return FALLBACK_CONFIDENCE


def build_reasoning(entity: str, matched_terms: List[str]) -> str:
    if not matched_terms:
        return NO_MATCH_REASONING
    shown = '", "'.join(matched_terms[:MAX_REASONING_TERMS])
    reasoning = f'Se identificaron {len(matched_terms)} palabras clave relacionadas con {entity}: "{shown}"'
    remainder = len(matched_terms) - MAX_REASONING_TERMS
    if remainder > 0:
        reasoning += f" y {remainder} más"
    return reasoning


def score_entities(title: str, description: str, lexicon: Lexicon | None = None) -> list[EntityScore]:
    """Per-entity scores in lexicon order."""
    active = lexicon or default_lexicon()
    text = normalize_text(f"{title or ''} {description or ''}")
    title_text = normalize_text(title or "")

    scores: list[EntityScore] = []
    for entry in active:
        result = EntityScore(entity=entry.entity)
        for term in entry.triggers:
            occurrences = count_occurrences(text, term)
            if occurrences == 0:
                continue
            result.score += occurrences * BASE_WEIGHT
            result.score += count_occurrences(title_text, term) * TITLE_BONUS
            result.matched_terms.append(term)
        scores.append(result)
    return scores


def classify_text(title: str, description: str, lexicon: Lexicon | None = None) -> ClassificationResult:
    """Pick the responsible entity for a report. Pure and deterministic."""
    active = lexicon or default_lexicon()
    best: EntityScore | None = None
    for candidate in score_entities(title, description, active):
        # Strict comparison keeps the first entity that reached the maximum.
        if candidate.score > (best.score if best else 0):
            best = candidate

    if best is None:
        return ClassificationResult(
            entity=active.fallback_entity,
            confidence=FALLBACK_CONFIDENCE,
            reasoning=NO_MATCH_REASONING,
        )

    return ClassificationResult(
        entity=best.entity,
        confidence=confidence_for_score(best.score),
        reasoning=build_reasoning(best.entity, best.matched_terms),
        score=best.score,
        matched_terms=list(best.matched_terms),
    )


@dataclass
class ReportClassifier:
    """Classifier bound to one lexicon, with optional artificial latency.

    The delay only emulates a remote inference call; results do not depend
    on it.
    """

    lexicon: Lexicon = field(default_factory=default_lexicon)
    latency_seconds: float = 0.0

    @property
    def fallback_entity(self) -> str:
        return self.lexicon.fallback_entity

    def classify(self, title: str, description: str) -> ClassificationResult:
        if self.latency_seconds > 0:
            time.sleep(self.latency_seconds)
        return classify_text(title, description, self.lexicon)


def build_classifier(lexicon: Lexicon | None = None) -> ReportClassifier:
    latency_ms = int(get_feature_flag("classifier_latency_ms", 0) or 0)
    return ReportClassifier(
        lexicon=lexicon or load_lexicon(),
        latency_seconds=max(latency_ms, 0) / 1000.0,
    )

from __future__ import annotations

from typing import List, Mapping

from app.core.config import IMPACT_WEIGHTS
from app.models.suggestion import EngineConfig, ImpactTags, Suggestion


def overlaps(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    # half-open spans; an empty span also collides with any span starting where it does
    if a_start == b_start and (a_start == a_end or b_start == b_end):
        return True
    return a_start < b_end and a_end > b_start


class ConflictResolver:
    """Accepts suggestions whose spans do not intersect any already accepted.

    Whoever claims a span first keeps it, so feed suggestions in rule priority order.
    """

    def __init__(self):
        self.accepted: List[Suggestion] = []

    def offer(self, suggestion: Suggestion) -> bool:
        for kept in self.accepted:
            if overlaps(suggestion.offset, suggestion.end, kept.offset, kept.end):
                return False
        self.accepted.append(suggestion)
        return True


def impact_score(impact: ImpactTags) -> int:
    score = 0
    for dimension, weights in IMPACT_WEIGHTS.items():
        score += weights.get(getattr(impact, dimension), 0)
    return score


def rank_suggestions(suggestions: List[Suggestion], priorities: Mapping[str, int],
                     config: EngineConfig) -> List[Suggestion]:
    """Order, truncate to ``max_suggestions``, then drop anything under ``min_confidence``."""

    def key(s: Suggestion):
        impact = -impact_score(s.impact) if config.prioritize_by_impact else 0
        return (-priorities.get(s.rule_id, 0), -s.confidence, impact, s.offset)

    ranked = sorted(suggestions, key=key)[:config.max_suggestions]
    return [s for s in ranked if s.confidence >= config.min_confidence]

from __future__ import annotations

import re
from typing import Iterable, List

from app.services.rules import QualityFactor, Rule, RuleContext

_WORD = re.compile(r"[A-Za-z']+")
_SENTENCE_END = re.compile(r"[.!?]\s*$")
_OPENING_QUOTE = re.compile(r"[\"'(“‘]\s*$")
_CLOSING_QUOTE = re.compile(r"^[\"')”’]")

COMMON_WORDS = {"the", "a", "an", "is", "are", "was", "were", "have", "has", "do", "does"}
NEGATION_WORDS = {"not", "never", "no", "none", "nothing", "neither", "nor"}
CONDITIONAL_WORDS = {"if", "unless", "when", "while", "although", "though"}

VERY_COMMON_ERRORS = [
    re.compile(r"\byour\s+going\b", re.I),
    re.compile(r"\bthere\s+going\b", re.I),
    re.compile(r"\bits\s+a\b", re.I),
    re.compile(r"\bwas\s+were\b", re.I),
]
COMMON_ERRORS = [
    re.compile(r"\b(he|she|it)\s+(run|walk|go)\b", re.I),
    re.compile(r"\b(i|you|we|they)\s+was\b", re.I),
]


def clamp(score: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, score))


def _words(text: str) -> List[str]:
    return [w.lower() for w in _WORD.findall(text)]


def at_sentence_start(ctx: RuleContext) -> bool:
    before = ctx.preceding_text.rstrip()
    return not before or bool(_SENTENCE_END.search(before))


def contextual_accuracy(ctx: RuleContext, match: str) -> float:
    score = 75
    if at_sentence_start(ctx) or ctx.following_text.startswith((".", "!", "?")):
        score += 10
    if match[:1].isupper() and at_sentence_start(ctx):
        score += 5
    # quoted or parenthesised text is often deliberate
    if _OPENING_QUOTE.search(ctx.preceding_text) or _CLOSING_QUOTE.search(ctx.following_text):
        score -= 15
    return clamp(score)


def linguistic_complexity(ctx: RuleContext, match: str) -> float:
    score = 70
    if len(match) > 15:
        score += 10
    elif len(match) < 5:
        score -= 10
    words = _words(match)
    if COMMON_WORDS.intersection(words):
        score += 15
    # capitalised words after the first are likely names
    if any(w[:1].isupper() for w in match.split()[1:]):
        score -= 5
    return clamp(score)


def frequency_accuracy(ctx: RuleContext, match: str) -> float:
    if any(p.search(match) for p in VERY_COMMON_ERRORS):
        return 95
    if any(p.search(match) for p in COMMON_ERRORS):
        return 85
    return 75


def negative_context(ctx: RuleContext, match: str) -> float:
    score = 80
    before = set(_words(ctx.preceding_text))
    if before & NEGATION_WORDS:
        score -= 20
    if before & CONDITIONAL_WORDS:
        score -= 10
    if "?" in ctx.preceding_text:
        score -= 5
    return clamp(score)


def text_length(ctx: RuleContext, match: str) -> float:
    # very short inputs give little context to judge by
    return 70 if ctx.word_count < 10 else 85


STANDARD_FACTORS = (
    QualityFactor("contextual_accuracy", 0.35, contextual_accuracy),
    QualityFactor("linguistic_complexity", 0.25, linguistic_complexity),
    QualityFactor("frequency_accuracy", 0.20, frequency_accuracy),
    QualityFactor("negative_context", 0.20, negative_context),
    QualityFactor("text_length", 0.10, text_length),
)


def weighted_average(factors: Iterable[QualityFactor], ctx: RuleContext, match: str) -> float:
    total = 0.0
    weight = 0.0
    for f in factors:
        if f.weight <= 0:
            continue
        total += f.weight * clamp(float(f.calculator(ctx, match)))
        weight += f.weight
    if weight == 0:
        raise ValueError("quality factors have no positive weight")
    return total / weight


def score_match(rule: Rule, ctx: RuleContext, match: str) -> int:
    """Confidence (0-100) for one match.

    With factors the result is an even blend of the rule's base score and the
    weight-normalised factor average; without factors it is the base score.
    Factor errors propagate so the caller can drop the match.
    """
    if rule.quality_factors:
        confidence = 0.5 * rule.base_score + 0.5 * weighted_average(rule.quality_factors, ctx, match)
    else:
        confidence = rule.base_score
    return int(round(clamp(confidence)))


def effective_threshold(rule: Rule, quality_threshold: float) -> float:
    # NOTE: scales the bar *down* for high-priority rules, so trusted rules pass more easily.
    return quality_threshold * (rule.priority / 100)

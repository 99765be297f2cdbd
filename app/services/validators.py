from __future__ import annotations

import logging
import re
from typing import List

from app.core.config import MAX_REPLACEMENTS
from app.services.rules import Replacement, Rule, RuleContext

log = logging.getLogger("validators")

# how far either side of a splice the structural checks look
SPLICE_WINDOW = 20

MALFORMED = [
    re.compile(r"\b(?:is|am)\s+(?:are|were)\b", re.I),
    re.compile(r"\bare\s+(?:is|am|was)\b", re.I),
    re.compile(r"\bwas\s+were\b|\bwere\s+was\b", re.I),
    re.compile(r"\ba\s+are\b", re.I),
    re.compile(r"\ban\s+is\b", re.I),
    re.compile(r"\s[,;:!?]|\s\.(?!\.|\d)"),   # space before punctuation
    re.compile(r"[,;:]{2,}"),
    re.compile(r"(?<=\S) {2,}(?=\S)"),
    re.compile(r"\b(\w+)\s+\1\b", re.I),
]

PAST_CUES = re.compile(r"\b(?:was|were|had|did|went|came|saw|said|told|made|took|gave|got|yesterday|ago)\b", re.I)
PRESENT_CUES = re.compile(r"\b(?:is|are|am|has|have|do|does|go|goes|come|see|say|tell|make|take|give|get)\b", re.I)
PAST_FORMS = re.compile(r"\b(?:was|were|had|did)\b", re.I)
PRESENT_FORMS = re.compile(r"\b(?:is|are|am|has|have|do|does)\b", re.I)


def candidates_from(raw: Replacement) -> List[str]:
    if raw is None:
        return []
    if isinstance(raw, str):
        return [raw]
    return [c for c in raw if isinstance(c, str)]


def _is_word_char(ch: str) -> bool:
    return ch.isalnum() or ch == "_"


def breaks_word_boundary(text: str, start: int, end: int, candidate: str) -> bool:
    """True if the splice glues the candidate onto a neighbouring word."""
    matched = text[start:end]
    before = text[start - 1] if start > 0 else ""
    after = text[end] if end < len(text) else ""
    if before and _is_word_char(before) and candidate[:1] and _is_word_char(candidate[0]):
        if not (matched[:1] and _is_word_char(matched[0])):
            return True
    if after and _is_word_char(after) and candidate[-1:] and _is_word_char(candidate[-1]):
        if not (matched[-1:] and _is_word_char(matched[-1])):
            return True
    if not candidate and before and after and _is_word_char(before) and _is_word_char(after):
        return True
    return False


def valid_sentence_structure(text: str, start: int, end: int, candidate: str) -> bool:
    """Reject splices that introduce malformed text at their edges.

    Only patterns absent from the original neighbourhood count, so issues the
    text already had elsewhere do not veto every candidate.
    """
    if breaks_word_boundary(text, start, end, candidate):
        return False
    lo = max(0, start - SPLICE_WINDOW)
    old = text[lo:end + SPLICE_WINDOW]
    spliced = text[:start] + candidate + text[end:]
    new = spliced[lo:start + len(candidate) + SPLICE_WINDOW]
    return not any(p.search(new) and not p.search(old) for p in MALFORMED)


def consistent_tense(ctx: RuleContext, matched: str, candidate: str) -> bool:
    window = f"{ctx.preceding_text} {matched} {ctx.following_text}"
    has_past = bool(PAST_CUES.search(window))
    has_present = bool(PRESENT_CUES.search(window))
    cand_past = bool(PAST_FORMS.search(candidate))
    cand_present = bool(PRESENT_FORMS.search(candidate))

    if has_past and not has_present and cand_present and not cand_past:
        return False
    if has_present and not has_past and cand_past and not cand_present:
        return False
    return True


def validate_candidates(rule: Rule, text: str, start: int, matched: str, candidates: List[str],
                        ctx: RuleContext) -> List[str]:
    end = start + len(matched)
    kept: List[str] = []
    for cand in candidates:
        if cand == matched or cand in kept:
            continue
        if not valid_sentence_structure(text, start, end, cand):
            log.debug("Rule %s: rejected %r (sentence structure)", rule.id, cand)
            continue
        if rule.tense_sensitive and not consistent_tense(ctx, matched, cand):
            log.debug("Rule %s: rejected %r (tense)", rule.id, cand)
            continue
        kept.append(cand)
        if len(kept) == MAX_REPLACEMENTS:
            break
    return kept

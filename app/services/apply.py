from __future__ import annotations

from typing import Sequence

from app.models.suggestion import Suggestion


def splice(text: str, offset: int, length: int, replacements: Sequence[str], index: int = 0) -> str:
    if offset < 0 or length < 0 or offset + length > len(text):
        raise ValueError(f"Span [{offset}, {offset + length}) is outside the text (length {len(text)})")
    if not 0 <= index < len(replacements):
        raise ValueError(f"No replacement at index {index} (have {len(replacements)})")
    return text[:offset] + replacements[index] + text[offset + length:]


def apply_suggestion(text: str, suggestion: Suggestion, index: int = 0) -> str:
    """Replace the suggestion's span with ``replacements[index]``.

    Offsets refer to the exact text the suggestion was produced for; applying a
    second suggestion after the first has shifted the text is the caller's job.
    """
    return splice(text, suggestion.offset, suggestion.length, suggestion.replacements, index)

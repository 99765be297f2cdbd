from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterator

from app.services.rules import Groups, Rule, RuleContext

log = logging.getLogger("matching")


@dataclass(frozen=True)
class RawMatch:
    text: str
    start: int
    groups: Groups
    match: "re.Match[str]"

    @property
    def end(self) -> int:
        return self.start + len(self.text)


def find_matches(rule: Rule, text: str) -> Iterator[RawMatch]:
    """Yield every non-overlapping match of ``rule.pattern`` in ``text``.

    Each search restarts at the end of the previous match; a zero-length match
    advances the position by one character so the scan always terminates.
    Rules with ``repeat=False`` yield at most one match.
    """
    pos = 0
    while pos <= len(text):
        m = rule.pattern.search(text, pos)
        if m is None:
            return
        yield RawMatch(text=m.group(0), start=m.start(), groups=m.groups(), match=m)
        if not rule.repeat:
            return
        pos = m.end() if m.end() > m.start() else m.end() + 1


def conditions_hold(rule: Rule, text: str, match: RawMatch, ctx: RuleContext) -> bool:
    for condition in rule.conditions:
        try:
            if not condition.check(text, match.match, ctx):
                return False
        except Exception:
            log.warning("Condition (%s) failed for rule %s; skipping match", condition.kind, rule.id, exc_info=True)
            return False
    return True

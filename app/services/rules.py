from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union, get_args

from app.core.config import DEFAULT_BASE_SCORE, ENGINE_VERSION
from app.models.suggestion import CATEGORIES, ImpactTags, IssueType, RuleSummary, Severity

log = logging.getLogger("rules")

Groups = Tuple[Optional[str], ...]
Replacement = Union[str, Sequence[str], None]
ReplacementStrategy = Callable[[str, Groups], Replacement]

CONDITION_KINDS = {"context", "position", "length", "language"}


class RuleDefinitionError(ValueError):
    """Raised when a rule cannot be registered."""


@dataclass(frozen=True)
class RuleContext:
    """What a quality factor or condition may look at for one match.

    The document-level fields are shared by every match; ``at`` derives the
    per-match view with bounded windows on either side of the span.
    """

    text: str
    language: str
    document_type: Optional[str] = None
    word_count: int = 0
    offset: int = 0
    preceding_text: str = ""
    following_text: str = ""

    @classmethod
    def for_text(cls, text: str, language: str, document_type: Optional[str] = None) -> "RuleContext":
        return cls(text=text, language=language, document_type=document_type, word_count=len(text.split()))

    def at(self, offset: int, length: int, window: int) -> "RuleContext":
        end = offset + length
        return replace(
            self,
            offset=offset,
            preceding_text=self.text[max(0, offset - window):offset],
            following_text=self.text[end:end + window],
        )


@dataclass(frozen=True)
class QualityFactor:
    name: str
    weight: float
    calculator: Callable[[RuleContext, str], float]


@dataclass(frozen=True)
class RuleCondition:
    kind: str
    check: Callable[[str, "re.Match[str]", RuleContext], bool]

    def __post_init__(self):
        if self.kind not in CONDITION_KINDS:
            raise RuleDefinitionError(f"Unknown condition kind: {self.kind!r}")


@dataclass(frozen=True)
class Rule:
    id: str
    name: str
    description: str
    category: str
    severity: Severity
    issue_type: IssueType
    pattern: "re.Pattern[str]"
    message: str
    priority: int
    replacement: ReplacementStrategy
    quality_factors: Tuple[QualityFactor, ...] = ()
    base_score: float = DEFAULT_BASE_SCORE
    conditions: Tuple[RuleCondition, ...] = ()
    impact: ImpactTags = field(default_factory=lambda: ImpactTags(correctness="fixes"))
    repeat: bool = True
    # candidates must agree with the tense of the surrounding text
    tense_sensitive: bool = False
    enabled: bool = True
    version: str = ENGINE_VERSION

    def __post_init__(self):
        if not self.id:
            raise RuleDefinitionError("Rule id must not be empty")
        if self.category not in CATEGORIES:
            raise RuleDefinitionError(f"{self.id}: unknown category {self.category!r}")
        if self.severity not in get_args(Severity):
            raise RuleDefinitionError(f"{self.id}: unknown severity {self.severity!r}")
        if self.issue_type not in get_args(IssueType):
            raise RuleDefinitionError(f"{self.id}: unknown issue type {self.issue_type!r}")
        if not 0 <= self.priority <= 100:
            raise RuleDefinitionError(f"{self.id}: priority must be within 0-100, got {self.priority}")
        if not callable(self.replacement):
            raise RuleDefinitionError(f"{self.id}: replacement must be callable")
        if isinstance(self.pattern, str):
            try:
                object.__setattr__(self, "pattern", re.compile(self.pattern))
            except re.error as e:
                raise RuleDefinitionError(f"{self.id}: invalid pattern: {e}") from e

    def summary(self, enabled: bool) -> RuleSummary:
        return RuleSummary(
            id=self.id,
            name=self.name,
            description=self.description,
            category=self.category,
            severity=self.severity,
            issue_type=self.issue_type,
            priority=self.priority,
            version=self.version,
            enabled=enabled,
        )


class RuleRegistry:
    """Catalog of rules keyed by id.

    Rules themselves are immutable; the only mutable state is the per-id
    enabled flag and the set of registered rules. Every change is announced
    to subscribers so owners of derived state (result caches) can drop it.
    """

    def __init__(self, rules: Iterable[Rule] = ()):
        self._rules: Dict[str, Rule] = {}
        self._enabled: Dict[str, bool] = {}
        self._listeners: List[Callable[[], None]] = []
        self._lock = threading.Lock()
        for rule in rules:
            self.register(rule)

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, rule_id: str) -> bool:
        return rule_id in self._rules

    def subscribe(self, listener: Callable[[], None]) -> None:
        self._listeners.append(listener)

    def _changed(self) -> None:
        for listener in list(self._listeners):
            listener()

    def register(self, rule: Rule) -> None:
        with self._lock:
            if rule.id in self._rules:
                raise RuleDefinitionError(f"Duplicate rule id: {rule.id}")
            self._rules[rule.id] = rule
            self._enabled[rule.id] = rule.enabled
        log.debug("Registered rule %s (priority=%d)", rule.id, rule.priority)
        self._changed()

    def get(self, rule_id: str) -> Optional[Rule]:
        return self._rules.get(rule_id)

    def is_enabled(self, rule_id: str) -> bool:
        return self._enabled.get(rule_id, False)

    def set_enabled(self, rule_id: str, enabled: bool) -> bool:
        with self._lock:
            if rule_id not in self._rules:
                return False
            changed = self._enabled[rule_id] != enabled
            self._enabled[rule_id] = enabled
        if changed:
            log.info("Rule %s %s", rule_id, "enabled" if enabled else "disabled")
            self._changed()
        return True

    def all_rules(self) -> List[Rule]:
        return list(self._rules.values())

    def get_active_rules(self) -> List[Rule]:
        return [r for r in self._rules.values() if self._enabled[r.id]]

    def get_rules_by_category(self, category: str) -> List[Rule]:
        return [r for r in self.get_active_rules() if r.category == category]

    def get_rules_by_priority(self, min_priority: int = 0) -> List[Rule]:
        rules = [r for r in self.get_active_rules() if r.priority >= min_priority]
        return sorted(rules, key=lambda r: r.priority, reverse=True)

    def active_categories(self) -> List[str]:
        return sorted({r.category for r in self.get_active_rules()})

    def summaries(self) -> List[RuleSummary]:
        return [r.summary(self._enabled[r.id]) for r in self._rules.values()]

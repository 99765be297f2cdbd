from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Literal, Mapping, Optional, Union, get_args

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from app.core import config as C

log = logging.getLogger("config")

Severity = Literal["high", "medium", "low", "critical", "error", "warning"]
IssueType = Literal["grammar", "spelling", "style", "clarity", "engagement", "delivery"]
Category = Literal[
    "subject-verb-agreement",
    "incomplete-sentence",
    "verb-form",
    "pronoun-agreement",
    "article-usage",
    "adjective-adverb",
    "contractions",
    "double-negative",
    "sentence-structure",
    "punctuation",
    "capitalization",
    "word-choice",
]
CATEGORIES = frozenset(get_args(Category))
DocumentType = Literal["formal", "casual", "technical", "creative"]
Source = Literal["engine", "api", "hybrid"]

Effect = Literal["improves", "neutral", "degrades"]


class ImpactTags(BaseModel):
    model_config = ConfigDict(frozen=True)

    correctness: Literal["fixes", "improves", "neutral"] = "neutral"
    clarity: Effect = "neutral"
    readability: Effect = "neutral"
    engagement: Effect = "neutral"
    formality: Effect = "neutral"


class Suggestion(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    rule_id: str
    issue_type: IssueType
    severity: Severity
    category: Category
    message: str
    explanation: str
    replacements: List[str] = Field(min_length=1, max_length=C.MAX_REPLACEMENTS)
    offset: int = Field(ge=0)
    length: int = Field(ge=0)
    context: str
    confidence: int = Field(ge=0, le=100)
    impact: ImpactTags = Field(default_factory=ImpactTags)
    source: Source = "engine"

    @property
    def end(self) -> int:
        return self.offset + self.length


class EngineConfig(BaseModel):
    """Effective options for one ``check_text`` call.

    Bad values never fail a check: numbers are clamped, unknown categories and
    document types are dropped, and ``merge`` falls back to the current value
    for anything that still does not validate.
    """

    model_config = ConfigDict(frozen=True)

    enabled_categories: List[Category] = Field(default_factory=list)
    min_confidence: float = C.DEFAULT_MIN_CONFIDENCE
    quality_threshold: float = C.DEFAULT_QUALITY_THRESHOLD
    max_suggestions: int = C.DEFAULT_MAX_SUGGESTIONS
    language: str = C.DEFAULT_LANGUAGE
    document_type: Optional[DocumentType] = None
    prioritize_by_impact: bool = False

    @field_validator("enabled_categories", mode="before")
    @classmethod
    def _known_categories(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            v = [v]
        elif not isinstance(v, (list, tuple, set, frozenset)):
            log.warning("Ignoring enabled_categories of type %s", type(v).__name__)
            return []
        known = set()
        for name in v:
            if isinstance(name, str) and name in CATEGORIES:
                known.add(name)
            else:
                log.warning("Ignoring unknown category %r", name)
        return sorted(known)

    @field_validator("min_confidence", "quality_threshold", mode="before")
    @classmethod
    def _clamp_score(cls, v):
        try:
            return min(100.0, max(0.0, float(v)))
        except (TypeError, ValueError, OverflowError):
            raise ValueError(f"expected a number, got {type(v).__name__}")

    @field_validator("max_suggestions", mode="before")
    @classmethod
    def _clamp_limit(cls, v):
        try:
            return max(0, int(v))
        except (TypeError, ValueError, OverflowError):
            raise ValueError(f"expected an integer, got {type(v).__name__}")

    @field_validator("document_type", mode="before")
    @classmethod
    def _known_document_type(cls, v):
        if v is not None and v not in get_args(DocumentType):
            log.warning("Ignoring unknown document type %r", v)
            return None
        return v

    def merge(self, overrides: Union["EngineConfig", Dict[str, Any], None] = None) -> "EngineConfig":
        if not overrides:
            return self
        if isinstance(overrides, EngineConfig):
            overrides = overrides.model_dump(exclude_unset=True)
        elif not isinstance(overrides, Mapping):
            log.warning("Ignoring config overrides of type %s", type(overrides).__name__)
            return self

        fields = EngineConfig.model_fields
        unknown = sorted(str(k) for k in overrides if k not in fields)
        if unknown:
            log.warning("Ignoring unknown config options: %s", ", ".join(unknown))

        data = self.model_dump()
        data.update({k: v for k, v in overrides.items() if k in fields})
        try:
            return EngineConfig.model_validate(data)
        except ValidationError as e:
            bad = {err["loc"][0] for err in e.errors() if err.get("loc")}
            log.warning("Invalid values for %s; keeping current settings", ", ".join(sorted(map(str, bad))))
            for k in bad:
                data[k] = getattr(self, k)
            return EngineConfig.model_validate(data)

    def canonical(self) -> str:
        return json.dumps(self.model_dump(mode="json"), sort_keys=True, separators=(",", ":"))


class RuleCount(BaseModel):
    rule_id: str
    count: int


class QualityStats(BaseModel):
    mean_confidence: float = 0.0
    confidence_histogram: Dict[str, int] = Field(default_factory=dict)
    top_rules: List[RuleCount] = Field(default_factory=list)


class EngineStats(BaseModel):
    rules_checked: int
    suggestions_found: int
    execution_time_ms: float
    errors: int = 0


class ResultMetadata(BaseModel):
    version: str = C.ENGINE_VERSION
    source: Source = "engine"
    language: str = C.DEFAULT_LANGUAGE


class EngineResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    suggestions: List[Suggestion]
    stats: EngineStats
    quality: QualityStats
    metadata: ResultMetadata


class RuleSummary(BaseModel):
    id: str
    name: str
    description: str
    category: Category
    severity: Severity
    issue_type: IssueType
    priority: int
    version: str
    enabled: bool

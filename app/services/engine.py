from __future__ import annotations

import logging
import threading
import time
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

from app.core.config import CONTEXT_WINDOW, ENGINE_VERSION, ENGINE_WORKERS, SNIPPET_RADIUS, TOP_RULES_LIMIT
from app.models.suggestion import (
    EngineConfig,
    EngineResult,
    EngineStats,
    QualityStats,
    ResultMetadata,
    RuleCount,
    Suggestion,
)
from app.services.cache import ResultCache, make_key
from app.services.matching import RawMatch, conditions_hold, find_matches
from app.services.quality import effective_threshold, score_match
from app.services.ranking import ConflictResolver, rank_suggestions
from app.services.rule_catalog import default_registry, rule_from_definition
from app.services.rules import Rule, RuleContext, RuleRegistry
from app.services.validators import candidates_from, validate_candidates

log = logging.getLogger("engine")


@dataclass
class RuleOutcome:
    rule: Rule
    suggestions: List[Suggestion] = field(default_factory=list)
    errors: int = 0
    elapsed_ms: float = 0.0


def snippet(text: str, start: int, end: int, radius: int = SNIPPET_RADIUS) -> str:
    lo = max(0, start - radius)
    hi = min(len(text), end + radius)
    prefix = "..." if lo > 0 else ""
    suffix = "..." if hi < len(text) else ""
    return f"{prefix}{text[lo:hi]}{suffix}"


def histogram_bucket(confidence: int) -> str:
    low = min(confidence // 10, 9) * 10
    return "90-100" if low == 90 else f"{low}-{low + 9}"


def quality_stats(suggestions: List[Suggestion]) -> QualityStats:
    histogram = {histogram_bucket(b * 10): 0 for b in range(10)}
    if not suggestions:
        return QualityStats(confidence_histogram=histogram)
    for s in suggestions:
        histogram[histogram_bucket(s.confidence)] += 1
    counts = Counter(s.rule_id for s in suggestions)
    return QualityStats(
        mean_confidence=round(sum(s.confidence for s in suggestions) / len(suggestions), 2),
        confidence_histogram=histogram,
        top_rules=[RuleCount(rule_id=r, count=n) for r, n in counts.most_common(TOP_RULES_LIMIT)],
    )


class GrammarEngine:
    """Runs the rule pipeline over a text and memoises results.

    ``check_text`` never raises for a ``str`` input: rule failures are logged,
    counted in ``stats.errors`` and skipped.
    """

    def __init__(
        self,
        registry: Optional[RuleRegistry] = None,
        config: Optional[EngineConfig] = None,
        cache: Optional[ResultCache] = None,
        workers: int = ENGINE_WORKERS,
    ):
        self.registry = registry if registry is not None else default_registry()
        self.config = config if config is not None else EngineConfig()
        self.cache = cache if cache is not None else ResultCache()
        self.workers = max(1, int(workers))

        self._stats_lock = threading.Lock()
        self._total_checks = 0
        self._cache_hits = 0
        self._total_ms = 0.0
        self._rule_stats: Dict[str, Dict[str, float]] = {}
        # bumped on every rule-set or default-config change
        self._generation = 0
        self._generation_lock = threading.Lock()

        self.registry.subscribe(self._on_rules_changed)

    # ------------------------------------------------------------------
    # Primary contract
    # ------------------------------------------------------------------
    def check_text(self, text: str, config: Union[EngineConfig, Mapping[str, Any], None] = None) -> EngineResult:
        if not isinstance(text, str):
            raise TypeError(f"text must be str, got {type(text).__name__}")

        started = time.perf_counter()
        cfg = self.config.merge(dict(config) if isinstance(config, Mapping) else config)
        key = make_key(text, cfg)

        cached = self.cache.get(key)
        if cached is not None:
            self._record_check(started, hit=True)
            return cached

        generation = self._generation
        result = self._run(text, cfg, started)
        # concurrent misses for the same key write equal results; a result
        # computed before a rule-set change is returned but never stored
        with self._generation_lock:
            if generation == self._generation:
                self.cache.set(key, result)
            else:
                log.debug("Rule set changed during check; result not cached")
        self._record_check(started, hit=False)
        return result

    def _run(self, text: str, cfg: EngineConfig, started: float) -> EngineResult:
        metadata = ResultMetadata(version=ENGINE_VERSION, source="engine", language=cfg.language)
        if not text:
            return EngineResult(
                suggestions=[],
                stats=EngineStats(rules_checked=0, suggestions_found=0, execution_time_ms=0.0),
                quality=quality_stats([]),
                metadata=metadata,
            )

        rules = self._select_rules(cfg)
        doc_ctx = RuleContext.for_text(text, cfg.language, cfg.document_type)

        if self.workers > 1 and len(rules) > 1:
            with ThreadPoolExecutor(max_workers=self.workers) as pool:
                futures = [pool.submit(self._evaluate_rule, rule, text, cfg, doc_ctx) for rule in rules]
                outcomes = [f.result() for f in futures]
        else:
            outcomes = [self._evaluate_rule(rule, text, cfg, doc_ctx) for rule in rules]

        # merge strictly in priority order: earlier rules claim spans first
        resolver = ConflictResolver()
        errors = 0
        for outcome in outcomes:
            errors += outcome.errors
            for s in outcome.suggestions:
                resolver.offer(s)
            self._record_rule(outcome)

        priorities = {r.id: r.priority for r in rules}
        suggestions = rank_suggestions(resolver.accepted, priorities, cfg)
        elapsed = (time.perf_counter() - started) * 1000

        log.debug("Checked %d chars with %d rules: %d suggestions, %d errors",
                  len(text), len(rules), len(suggestions), errors)
        return EngineResult(
            suggestions=suggestions,
            stats=EngineStats(
                rules_checked=len(rules),
                suggestions_found=len(suggestions),
                execution_time_ms=round(elapsed, 3),
                errors=errors,
            ),
            quality=quality_stats(suggestions),
            metadata=metadata,
        )

    def _select_rules(self, cfg: EngineConfig) -> List[Rule]:
        rules = self.registry.get_rules_by_priority()
        if cfg.enabled_categories:
            wanted = set(cfg.enabled_categories)
            rules = [r for r in rules if r.category in wanted]
        return rules

    def _evaluate_rule(self, rule: Rule, text: str, cfg: EngineConfig, doc_ctx: RuleContext) -> RuleOutcome:
        started = time.perf_counter()
        outcome = RuleOutcome(rule=rule)
        threshold = effective_threshold(rule, cfg.quality_threshold)

        try:
            matches = list(find_matches(rule, text))
        except Exception:
            log.warning("Pattern search failed for rule %s", rule.id, exc_info=True)
            outcome.errors += 1
            matches = []

        for m in matches:
            ctx = doc_ctx.at(m.start, len(m.text), CONTEXT_WINDOW)
            if not conditions_hold(rule, text, m, ctx):
                continue
            try:
                confidence = score_match(rule, ctx, m.text)
            except Exception:
                log.warning("Scoring failed for rule %s at offset %d", rule.id, m.start, exc_info=True)
                outcome.errors += 1
                continue
            if confidence < threshold:
                continue
            try:
                raw = rule.replacement(m.text, m.groups)
            except Exception:
                log.warning("Replacement failed for rule %s at offset %d", rule.id, m.start, exc_info=True)
                outcome.errors += 1
                continue
            candidates = validate_candidates(rule, text, m.start, m.text, candidates_from(raw), ctx)
            if candidates:
                outcome.suggestions.append(self._build_suggestion(rule, text, m, candidates, confidence))

        outcome.elapsed_ms = (time.perf_counter() - started) * 1000
        return outcome

    def _build_suggestion(self, rule: Rule, text: str, m: RawMatch, candidates: List[str],
                          confidence: int) -> Suggestion:
        return Suggestion(
            id=f"{rule.id}-{m.start}",
            rule_id=rule.id,
            issue_type=rule.issue_type,
            severity=rule.severity,
            category=rule.category,
            message=rule.message,
            explanation=rule.description,
            replacements=candidates,
            offset=m.start,
            length=len(m.text),
            context=snippet(text, m.start, m.end),
            confidence=confidence,
            impact=rule.impact,
        )

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------
    def _record_check(self, started: float, hit: bool) -> None:
        elapsed = (time.perf_counter() - started) * 1000
        with self._stats_lock:
            self._total_checks += 1
            self._total_ms += elapsed
            if hit:
                self._cache_hits += 1

    def _record_rule(self, outcome: RuleOutcome) -> None:
        with self._stats_lock:
            stats = self._rule_stats.setdefault(
                outcome.rule.id, {"calls": 0, "total_ms": 0.0, "suggestions": 0, "errors": 0}
            )
            stats["calls"] += 1
            stats["total_ms"] += outcome.elapsed_ms
            stats["suggestions"] += len(outcome.suggestions)
            stats["errors"] += outcome.errors

    def get_performance_stats(self) -> Dict[str, Any]:
        with self._stats_lock:
            checks = self._total_checks
            return {
                "total_checks": checks,
                "cache_hits": self._cache_hits,
                "cache_hit_rate": round(self._cache_hits / checks, 4) if checks else 0.0,
                "total_execution_ms": round(self._total_ms, 3),
                "average_execution_ms": round(self._total_ms / checks, 3) if checks else 0.0,
                "cache_size": len(self.cache),
                "rule_stats": {rid: dict(s) for rid, s in self._rule_stats.items()},
            }

    @property
    def total_rules(self) -> int:
        return len(self.registry)

    def active_categories(self) -> List[str]:
        return self.registry.active_categories()

    # ------------------------------------------------------------------
    # Rule set and configuration
    # ------------------------------------------------------------------
    def _invalidate(self) -> int:
        with self._generation_lock:
            self._generation += 1
            return self.cache.clear()

    def _on_rules_changed(self) -> None:
        if self._invalidate():
            log.info("Rule set changed; result cache cleared")

    def clear_cache(self) -> None:
        self.cache.clear()

    def set_rule_enabled(self, rule_id: str, enabled: bool) -> bool:
        ok = self.registry.set_enabled(rule_id, enabled)
        if not ok:
            log.warning("Unknown rule id %r", rule_id)
        return ok

    def get_rule_by_id(self, rule_id: str) -> Optional[Rule]:
        return self.registry.get(rule_id)

    def get_rules_by_category(self, category: str) -> List[Rule]:
        return self.registry.get_rules_by_category(category)

    def get_rules_by_priority(self, min_priority: int = 0) -> List[Rule]:
        return self.registry.get_rules_by_priority(min_priority)

    def register_rule(self, rule: Union[Rule, Mapping[str, Any]]) -> Rule:
        if not isinstance(rule, Rule):
            rule = rule_from_definition(rule)
        self.registry.register(rule)
        return rule

    def update_config(self, **fields) -> EngineConfig:
        self.config = self.config.merge(fields)
        self._invalidate()
        log.info("Default config updated: %s", self.config.canonical())
        return self.config

import math

import pytest

from app.services.apply import apply_suggestion
from app.services.engine import GrammarEngine, histogram_bucket, snippet
from app.services.rules import QualityFactor, RuleCondition

SAMPLES = [
    "He go to school",
    "I has a car",
    "She don't like it",
    "The cat running",
    "He go to school. I has a car.",
    "We don't have no money , and i think they was late.",
    "I saw the the dog run good.",
    "Me want a apple. Your going to love there house.",
    "",
    "   ",
    "This sentence is perfectly fine.",
]


def _only(result, rule_id):
    found = [s for s in result.suggestions if s.rule_id == rule_id]
    assert len(found) == 1, [s.rule_id for s in result.suggestions]
    return found[0]


# --------------------------------------------------------------------
# Concrete scenarios
# --------------------------------------------------------------------
def test_he_go_to_school(engine):
    res = engine.check_text("He go to school")
    s = _only(res, "subject-verb-third-person-singular")
    assert s.category == "subject-verb-agreement"
    assert (s.offset, s.length) == (0, len("He go"))
    assert s.replacements[0] == "He goes"


def test_i_has_a_car(engine):
    res = engine.check_text("I has a car")
    s = _only(res, "verb-form-has-have-plural")
    assert "I has a car"[s.offset:s.offset + s.length] == "has"
    assert s.replacements[0] == "have"
    assert apply_suggestion("I has a car", s) == "I have a car"


def test_she_dont_like_it(engine):
    res = engine.check_text("She don't like it")
    s = _only(res, "contraction-dont-doesnt")
    assert "She don't like it"[s.offset:s.end] == "don't"
    assert s.replacements[0] == "doesn't"


def test_the_cat_running(engine):
    res = engine.check_text("The cat running")
    s = _only(res, "incomplete-gerund-article")
    assert s.replacements[0] == "The cat is running"
    assert "The cat was running" in s.replacements


def test_max_one_suggestion_keeps_highest_priority(engine):
    res = engine.check_text("He go to school. I has a car.", {"max_suggestions": 1})
    assert len(res.suggestions) == 1
    assert res.suggestions[0].rule_id == "subject-verb-third-person-singular"
    assert res.suggestions[0].replacements[0] == "He goes"


def test_empty_text(engine):
    res = engine.check_text("")
    assert res.suggestions == []
    assert res.stats.errors == 0
    assert res.stats.suggestions_found == 0


# --------------------------------------------------------------------
# More catalog behaviour
# --------------------------------------------------------------------
def test_past_context_prefers_past_auxiliary(engine):
    res = engine.check_text("Yesterday it was cold. The cat running")
    s = _only(res, "incomplete-gerund-article")
    assert s.replacements == ["The cat was running"]


@pytest.mark.parametrize("text,rule_id,span,first", [
    ("I saw the the dog.", "repeated-word", "the the", "the"),
    ("I ate a apple.", "article-a-before-vowel", "a apple", "an apple"),
    ("Yesterday i went home.", "capitalization-pronoun-i", "i", "I"),
    ("We don't have no money.", "double-negative", "don't have no", "don't have any"),
    ("You should of called.", "modal-verb-of-have", "should of", "should have"),
    ("Your going to love it.", "word-choice-your-youre", "Your going", "You're going"),
])
def test_catalog_rules(engine, text, rule_id, span, first):
    res = engine.check_text(text, {"min_confidence": 0})
    s = _only(res, rule_id)
    assert text[s.offset:s.end] == span
    assert s.replacements[0] == first


@pytest.mark.parametrize("text,rule_id", [
    ("If I were rich I would travel.", "subject-verb-were-was"),
    ("Did he go home?", "subject-verb-third-person-singular"),
    ("Let it go.", "subject-verb-third-person-singular"),
    ("I was late.", "subject-verb-was-were"),
    ("She plays good music.", "adjective-adverb-confusion"),
])
def test_catalog_false_positives_suppressed(engine, text, rule_id):
    res = engine.check_text(text, {"min_confidence": 0})
    assert rule_id not in [s.rule_id for s in res.suggestions]


def test_non_english_language_skips_builtin_rules(engine):
    res = engine.check_text("He go to school", {"language": "de-DE"})
    assert res.suggestions == []
    assert res.metadata.language == "de-DE"


# --------------------------------------------------------------------
# Properties
# --------------------------------------------------------------------
@pytest.mark.parametrize("text", SAMPLES)
def test_bounds_and_non_overlap(engine, text):
    res = engine.check_text(text)
    spans = []
    for s in res.suggestions:
        assert 0 <= s.offset
        assert s.offset + s.length <= len(text)
        assert engine.config.min_confidence <= s.confidence <= 100
        assert 1 <= len(s.replacements) <= 3
        spans.append((s.offset, s.end))
    for i, (a0, a1) in enumerate(spans):
        for b0, b1 in spans[i + 1:]:
            assert not (a0 < b1 and a1 > b0)


@pytest.mark.parametrize("text", SAMPLES)
def test_deterministic_with_and_without_cache(engine, text):
    first = engine.check_text(text)
    assert engine.check_text(text) == first
    engine.clear_cache()
    again = engine.check_text(text)
    assert again.suggestions == first.suggestions
    assert again.quality == first.quality


def test_fresh_engines_agree():
    text = SAMPLES[5]
    assert GrammarEngine().check_text(text).suggestions == GrammarEngine().check_text(text).suggestions


def test_priority_precedence(engine):
    # both rules match inside "He go"; the 85 rule claims the span first
    res = engine.check_text("He go to school")
    ids = [s.rule_id for s in res.suggestions]
    assert "subject-verb-third-person-singular" in ids
    assert "verb-form-goes-go-singular" not in ids

    engine.set_rule_enabled("subject-verb-third-person-singular", False)
    res = engine.check_text("He go to school")
    s = _only(res, "verb-form-goes-go-singular")
    assert "He go to school"[s.offset:s.end] == "go"


def test_monotonic_truncation(engine):
    text = "We don't have no money , and i think they was late. He go to school. I has a car."
    full = [s.id for s in engine.check_text(text, {"min_confidence": 0}).suggestions]
    assert len(full) >= 4
    for k in range(len(full) + 2):
        ids = [s.id for s in engine.check_text(text, {"min_confidence": 0, "max_suggestions": k}).suggestions]
        assert ids == full[:k]


def test_parallel_workers_match_sequential():
    text = SAMPLES[7] + " " + SAMPLES[5]
    seq = GrammarEngine(workers=1).check_text(text)
    par = GrammarEngine(workers=4).check_text(text)
    assert par.suggestions == seq.suggestions


# --------------------------------------------------------------------
# Config handling
# --------------------------------------------------------------------
def test_enabled_categories_filter(engine):
    res = engine.check_text("He go to school", {"enabled_categories": ["verb-form"]})
    assert [s.rule_id for s in res.suggestions] == ["verb-form-goes-go-singular"]
    assert res.stats.rules_checked == len(engine.get_rules_by_category("verb-form"))


def test_unknown_categories_mean_all(engine):
    res = engine.check_text("He go to school", {"enabled_categories": ["not-a-category"]})
    assert res.stats.rules_checked == len(engine.registry.get_active_rules())


def test_bad_config_values_are_not_fatal(engine):
    res = engine.check_text("He go to school", {"max_suggestions": "lots", "min_confidence": 250, "bogus": 1})
    # min_confidence clamps to 100, which nothing reaches
    assert res.suggestions == []


def test_min_confidence_filters(engine):
    assert engine.check_text("I has a car", {"min_confidence": 100}).suggestions == []


def test_quality_threshold_scaled_by_priority(make_rule, engine_with):
    rule = make_rule(priority=100, base_score=50)
    eng = engine_with(rule)
    assert eng.check_text("foo", {"quality_threshold": 60, "min_confidence": 0}).suggestions == []
    assert len(eng.check_text("foo", {"quality_threshold": 40, "min_confidence": 0}).suggestions) == 1
    # priority 50 halves the bar: 0.5 * 90 = 45 < 50
    low = engine_with(make_rule(priority=50, base_score=50))
    assert len(low.check_text("foo", {"quality_threshold": 90, "min_confidence": 0}).suggestions) == 1


def test_update_config_changes_defaults_and_clears_cache(engine):
    engine.check_text("He go to school. I has a car.")
    assert len(engine.cache) == 1
    engine.update_config(max_suggestions=1)
    assert len(engine.cache) == 0
    assert len(engine.check_text("He go to school. I has a car.").suggestions) == 1


# --------------------------------------------------------------------
# Error handling
# --------------------------------------------------------------------
def test_failing_replacement_is_isolated(make_rule, engine_with):
    def boom(match, groups):
        raise RuntimeError("generator bug")

    eng = engine_with(make_rule(id="broken", replacement=boom, priority=90), make_rule(id="ok", pattern=r"\bbaz\b"))
    res = eng.check_text("foo baz", {"min_confidence": 0})
    assert [s.rule_id for s in res.suggestions] == ["ok"]
    assert res.stats.errors == 1


def test_failing_factor_is_isolated(make_rule, engine_with):
    def boom(ctx, match):
        raise ZeroDivisionError

    eng = engine_with(make_rule(quality_factors=(QualityFactor("bad", 1.0, boom),)))
    res = eng.check_text("foo foo", {"min_confidence": 0})
    assert res.suggestions == []
    assert res.stats.errors == 2


def test_failing_condition_is_not_an_error(make_rule, engine_with):
    def boom(text, m, ctx):
        raise KeyError("oops")

    eng = engine_with(make_rule(conditions=(RuleCondition("context", boom),)))
    res = eng.check_text("foo", {"min_confidence": 0})
    assert res.suggestions == []
    assert res.stats.errors == 0


def test_candidates_all_rejected(make_rule, engine_with):
    eng = engine_with(make_rule(replacement=lambda m, g: ["foo", ""]))
    # "foo" is a no-op and "" leaves a doubled space behind
    res = eng.check_text("a foo b", {"min_confidence": 0})
    assert res.suggestions == []
    assert res.stats.errors == 0


def test_non_string_input_rejected(engine):
    with pytest.raises(TypeError):
        engine.check_text(None)


# --------------------------------------------------------------------
# Cache invalidation and diagnostics
# --------------------------------------------------------------------
def test_rule_toggle_invalidates_cache(engine):
    first = engine.check_text("I has a car")
    assert engine.set_rule_enabled("verb-form-has-have-plural", False) is True
    second = engine.check_text("I has a car")
    assert second is not first
    assert "verb-form-has-have-plural" not in [s.rule_id for s in second.suggestions]
    assert engine.set_rule_enabled("no-such-rule", True) is False


def test_rule_change_during_check_is_not_cached(make_rule, engine_with):
    holder = {}

    def disable_hi(match, groups):
        if not holder.get("done"):
            holder["done"] = True
            holder["engine"].set_rule_enabled("hi", False)
        return "bar"

    eng = engine_with(
        make_rule(id="hi", pattern=r"\bqux\b", priority=90),
        make_rule(id="lo", priority=10, replacement=disable_hi),
    )
    holder["engine"] = eng
    first = eng.check_text("qux and foo", {"min_confidence": 0})
    # "hi" ran before it was disabled, so this call still reports it
    assert {s.rule_id for s in first.suggestions} == {"hi", "lo"}
    assert len(eng.cache) == 0
    second = eng.check_text("qux and foo", {"min_confidence": 0})
    assert [s.rule_id for s in second.suggestions] == ["lo"]
    assert len(eng.cache) == 1


def test_config_update_during_check_is_not_cached(make_rule, engine_with):
    holder = {}

    def bump_config(match, groups):
        holder["engine"].update_config(language="en-GB")
        return "bar"

    eng = engine_with(make_rule(replacement=bump_config))
    holder["engine"] = eng
    eng.check_text("foo", {"min_confidence": 0})
    assert len(eng.cache) == 0


def test_mutating_a_result_does_not_touch_the_cache(engine):
    first = engine.check_text("He go to school")
    assert first.suggestions
    first.suggestions.clear()
    hit = engine.check_text("He go to school")
    assert engine.get_performance_stats()["cache_hits"] == 1
    assert hit.suggestions[0].replacements[0] == "He goes"
    hit.suggestions[0].replacements.clear()
    assert engine.check_text("He go to school").suggestions[0].replacements[0] == "He goes"


@pytest.mark.parametrize("overrides", [
    {"max_suggestions": math.inf},
    {"max_suggestions": float("nan")},
    {"max_suggestions": -math.inf},
    {"min_confidence": 10 ** 400},
    {"quality_threshold": 10 ** 400},
    {"min_confidence": [70]},
    {"enabled_categories": 5},
    {"enabled_categories": [["verb-form"]]},
    {"enabled_categories": {"verb-form": True}},
])
def test_unusable_option_values_fall_back(engine, overrides):
    res = engine.check_text("He go to school", overrides)
    assert "subject-verb-third-person-singular" in [s.rule_id for s in res.suggestions]


def test_non_mapping_overrides_ignored(engine):
    res = engine.check_text("He go to school", [("max_suggestions", 0)])
    assert res.suggestions


def test_register_rule_from_definition(engine):
    engine.check_text("I did it alot.")
    rule = engine.register_rule({
        "id": "custom-alot",
        "name": "A lot",
        "description": "Corrects 'alot'",
        "category": "word-choice",
        "severity": "low",
        "issue_type": "spelling",
        "pattern": r"\b(a)(lot)\b",
        "flags": "i",
        "message": "Write 'a lot' as two words.",
        "priority": 40,
        "replacement": "join_groups",
        "quality_factors": "none",
    })
    assert engine.get_rule_by_id("custom-alot") is rule
    assert len(engine.cache) == 0
    s = _only(engine.check_text("I did it alot."), "custom-alot")
    assert s.replacements == ["a lot"]


def test_performance_stats(engine):
    engine.check_text("He go to school")
    engine.check_text("He go to school")
    stats = engine.get_performance_stats()
    assert stats["total_checks"] == 2
    assert stats["cache_hits"] == 1
    assert stats["cache_hit_rate"] == 0.5
    assert stats["cache_size"] == 1
    assert stats["rule_stats"]["subject-verb-third-person-singular"]["calls"] == 1
    assert engine.total_rules == len(engine.registry)
    assert "subject-verb-agreement" in engine.active_categories()


def test_result_metadata_and_quality(engine):
    res = engine.check_text("He go to school. I has a car.")
    assert res.metadata.version == "1.0.0"
    assert res.metadata.source == "engine"
    assert sum(res.quality.confidence_histogram.values()) == len(res.suggestions)
    assert res.quality.top_rules[0].count == 1
    assert res.stats.rules_checked == len(engine.registry.get_active_rules())
    assert all(s.id == f"{s.rule_id}-{s.offset}" for s in res.suggestions)


def test_snippet_and_histogram_helpers():
    text = "x" * 100
    assert snippet(text, 50, 52, radius=10) == "..." + "x" * 22 + "..."
    assert snippet("short", 0, 5) == "short"
    assert histogram_bucket(0) == "0-9"
    assert histogram_bucket(79) == "70-79"
    assert histogram_bucket(100) == "90-100"

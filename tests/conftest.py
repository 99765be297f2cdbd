# tests/conftest.py
from __future__ import annotations
from typing import Generator

import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.services.engine import GrammarEngine
from app.services.rules import Rule, RuleRegistry

# --------------------------------------------------------------------
# Isolated engine per test: own registry, own cache
# --------------------------------------------------------------------
@pytest.fixture
def engine() -> GrammarEngine:
    return GrammarEngine()

# --------------------------------------------------------------------
# FastAPI test client bound to a fresh engine, available as `client`
# --------------------------------------------------------------------
@pytest.fixture
def client(engine) -> Generator[TestClient, None, None]:
    previous = app.state.engine
    app.state.engine = engine
    with TestClient(app) as c:
        yield c
    app.state.engine = previous

# --------------------------------------------------------------------
# Helpers to build throwaway rules and single-rule engines
# --------------------------------------------------------------------
@pytest.fixture
def make_rule():
    def _make(**overrides) -> Rule:
        fields = dict(
            id="test-rule",
            name="Test rule",
            description="Replaces foo with bar",
            category="word-choice",
            severity="medium",
            issue_type="grammar",
            pattern=r"\bfoo\b",
            message="Use bar.",
            priority=50,
            replacement=lambda match, groups: "bar",
        )
        fields.update(overrides)
        return Rule(**fields)
    return _make

@pytest.fixture
def engine_with():
    def _build(*rules: Rule, **kwargs) -> GrammarEngine:
        return GrammarEngine(registry=RuleRegistry(rules), **kwargs)
    return _build

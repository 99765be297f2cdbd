from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from app.api.deps import get_engine
from app.services.engine import GrammarEngine

router = APIRouter(tags=["rules"])

@router.get("/rules")
def list_rules(
    category: Optional[str] = Query(None, description="Only rules in this category"),
    min_priority: int = Query(0, ge=0, le=100),
    engine: GrammarEngine = Depends(get_engine),
):
    summaries = [
        s for s in engine.registry.summaries()
        if s.priority >= min_priority and (category is None or s.category == category)
    ]
    summaries.sort(key=lambda s: s.priority, reverse=True)
    return [s.model_dump() for s in summaries]

@router.put("/rules/{rule_id}/enabled")
def set_enabled(
    rule_id: str,
    enabled: bool = Query(..., description="true to enable, false to disable"),
    engine: GrammarEngine = Depends(get_engine),
):
    if not engine.set_rule_enabled(rule_id, enabled):
        raise HTTPException(status_code=404, detail="Rule not found")
    return {"rule_id": rule_id, "enabled": enabled}

@router.get("/stats")
def stats(engine: GrammarEngine = Depends(get_engine)):
    return {
        "total_rules": engine.total_rules,
        "active_categories": engine.active_categories(),
        **engine.get_performance_stats(),
    }

@router.post("/cache/clear")
def clear_cache(engine: GrammarEngine = Depends(get_engine)):
    engine.clear_cache()
    return {"cleared": True}

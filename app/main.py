from fastapi import FastAPI
from app.api.routes_check import router as check_router
from app.api.routes_rules import router as rules_router
from app.core.config import ENGINE_VERSION
from app.middleware.limits import BodySizeLimitMiddleware
from app.services.engine import GrammarEngine

app = FastAPI(title="GrammarRuleEngine", version=ENGINE_VERSION)

app.add_middleware(BodySizeLimitMiddleware)

# one engine (and its cache) per process; tests swap in their own
app.state.engine = GrammarEngine()

@app.get("/health")
def health():
    return {"status": "ok"}

app.include_router(check_router)
app.include_router(rules_router)

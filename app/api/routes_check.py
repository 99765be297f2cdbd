import logging
from fastapi import APIRouter, Depends, HTTPException
from app.api.deps import get_engine
from app.core import config
from app.models.requests import ApplyRequest, CheckRequest
from app.services.apply import splice
from app.services.engine import GrammarEngine

log = logging.getLogger("api")

router = APIRouter(tags=["check"])

@router.post("/check")
def check(body: CheckRequest, engine: GrammarEngine = Depends(get_engine)):
    # bound the input before it reaches the engine
    if len(body.text) > config.MAX_TEXT_CHARS:
        raise HTTPException(
            status_code=400,
            detail=f"Text too long ({len(body.text)} chars, max {config.MAX_TEXT_CHARS})",
        )
    result = engine.check_text(body.text, body.config)
    return result.model_dump()

@router.post("/apply")
def apply(body: ApplyRequest):
    try:
        text = splice(body.text, body.offset, body.length, body.replacements, body.index)
    except ValueError as e:
        log.info("Rejected apply request: %s", e)
        raise HTTPException(status_code=400, detail=str(e))
    return {"text": text}

from fastapi import Request
from app.services.engine import GrammarEngine


def get_engine(request: Request) -> GrammarEngine:
    return request.app.state.engine

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional


class CheckRequest(BaseModel):
    text: str
    # passed through to EngineConfig.merge, which is permissive about bad values
    config: Optional[Dict[str, Any]] = None


class ApplyRequest(BaseModel):
    text: str
    offset: int
    length: int
    replacements: List[str] = Field(min_length=1)
    index: int = 0

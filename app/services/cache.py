from __future__ import annotations

import hashlib
import logging
import threading
from typing import Dict, Optional

from app.models.suggestion import EngineConfig, EngineResult

log = logging.getLogger("cache")


def make_key(text: str, config: EngineConfig) -> str:
    # surrogatepass: lone surrogates from JSON input must still hash
    text_digest = hashlib.sha256(text.encode("utf-8", "surrogatepass")).hexdigest()
    config_digest = hashlib.sha256(config.canonical().encode("utf-8")).hexdigest()
    return f"{text_digest}:{config_digest}"


class ResultCache:
    """In-memory result store owned by one engine. No TTL, no size bound.

    Results go in and come out as deep copies, so callers that mutate a
    returned result (its suggestion list, say) cannot change what later hits see.
    """

    def __init__(self):
        self._items: Dict[str, EngineResult] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._items)

    def get(self, key: str) -> Optional[EngineResult]:
        with self._lock:
            item = self._items.get(key)
        return item.model_copy(deep=True) if item is not None else None

    def set(self, key: str, result: EngineResult) -> None:
        with self._lock:
            self._items[key] = result.model_copy(deep=True)

    def clear(self) -> int:
        with self._lock:
            dropped = len(self._items)
            self._items.clear()
        if dropped:
            log.debug("Cleared %d cached results", dropped)
        return dropped

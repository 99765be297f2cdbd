import os

ENGINE_VERSION = "1.0.0"

# Request limits (enforced by the API layer, never by the engine)
MAX_TEXT_CHARS = int(os.getenv("GRAMMAR_MAX_TEXT_CHARS", "50000"))
MAX_REQUEST_BYTES = 1 * 1024 * 1024  # 1 MB soft cap

# Engine defaults
DEFAULT_LANGUAGE = os.getenv("GRAMMAR_LANGUAGE", "en-US")
DEFAULT_MIN_CONFIDENCE = float(os.getenv("GRAMMAR_MIN_CONFIDENCE", "70"))
DEFAULT_QUALITY_THRESHOLD = float(os.getenv("GRAMMAR_QUALITY_THRESHOLD", "60"))
DEFAULT_MAX_SUGGESTIONS = int(os.getenv("GRAMMAR_MAX_SUGGESTIONS", "50"))
ENGINE_WORKERS = int(os.getenv("GRAMMAR_ENGINE_WORKERS", "1"))

DEFAULT_BASE_SCORE = 80.0     # confidence of a rule without quality factors
CONTEXT_WINDOW = 50           # chars before/after a match handed to quality factors
SNIPPET_RADIUS = 30           # chars around a span shown in Suggestion.context
MAX_REPLACEMENTS = 3
TOP_RULES_LIMIT = 5

# Impact score weights used as a ranking tie-break
IMPACT_WEIGHTS = {
    "correctness": {"fixes": 30, "improves": 20, "neutral": 0},
    "clarity": {"improves": 15, "neutral": 0, "degrades": -15},
    "readability": {"improves": 15, "neutral": 0, "degrades": -15},
    "engagement": {"improves": 5, "neutral": 0, "degrades": -5},
    "formality": {"improves": 5, "neutral": 0, "degrades": -5},
}

"""
Core Module - pure review algorithms.

Components:
- similarity: edit distance and similarity ratio
- evaluator: typed-answer grading (exact / synonym / typo / wrong)
- hints: length and first-letter hints
- scheduler: fixed-table mastery scheduling
- errors: error taxonomy shared with the session layer

Nothing here holds state or touches storage.
"""

from lexicon.core.errors import (
    ConflictError,
    LexiconError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from lexicon.core.evaluator import (
    AnswerEvaluator,
    Evaluation,
    EvaluationReason,
    evaluate,
)
from lexicon.core.hints import Hint, HintType, generate_hint
from lexicon.core.scheduler import (
    MASTERY_INTERVALS,
    RETIRED_INTERVAL,
    Rating,
    ScheduleUpdate,
    advance,
)
from lexicon.core.similarity import distance, normalize, similarity

__all__ = [
    # Errors
    "LexiconError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "UpstreamError",
    # Evaluation
    "AnswerEvaluator",
    "Evaluation",
    "EvaluationReason",
    "evaluate",
    # Hints
    "Hint",
    "HintType",
    "generate_hint",
    # Scheduling
    "MASTERY_INTERVALS",
    "RETIRED_INTERVAL",
    "Rating",
    "ScheduleUpdate",
    "advance",
    # Similarity
    "distance",
    "normalize",
    "similarity",
]

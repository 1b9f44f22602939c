"""
Answer Evaluator - typed-answer grading.

Classifies a learner's typed answer against the expected answer and its
synonyms, producing a 1-4 quality score for the mastery scheduler:

    exact match      -> 4
    synonym          -> 3
    typo             -> 3
    any of the above
      with a hint    -> 2
    wrong / empty    -> 1

Rules are applied in order and the first match wins. The whitespace check
runs before any similarity-based rule, so "goodmorning" is always wrong
for "good morning" no matter how close the letters are.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from loguru import logger

from lexicon.core.errors import ValidationError
from lexicon.core.similarity import (
    distance,
    max_allowed_distance,
    normalize,
    similarity,
    space_count,
)


class EvaluationReason(str, Enum):
    """Why an answer received its score."""

    EXACT = "exact"
    TYPO = "typo"
    SYNONYM = "synonym"
    HINT_USED = "hint_used"
    WRONG = "wrong"


class AccuracyLevel(str, Enum):
    """Long-run input accuracy band for an item."""

    EXCELLENT = "excellent"
    GOOD = "good"
    NEEDS_PRACTICE = "needs_practice"


@dataclass
class Evaluation:
    """Result of evaluating one typed answer."""

    score: int  # 1-4
    reason: EvaluationReason
    similarity: float  # 0.0 to 1.0
    suggestions: list[str] = field(default_factory=list)

    @property
    def is_correct(self) -> bool:
        """Scores of 3 and 4 count as a correct recall."""
        return self.score >= 3

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "score": self.score,
            "reason": self.reason.value,
            "similarity": self.similarity,
            "suggestions": list(self.suggestions),
        }


@dataclass
class InputCheck:
    """Pre-submit feedback on a partially typed answer."""

    is_valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


class AnswerEvaluator:
    """
    Grade typed answers for the input review modes.

    Thresholds are class attributes so a subclass can tune them
    without touching the rule order.
    """

    TYPO_SIMILARITY_THRESHOLD = 0.70
    MAX_SUGGESTIONS = 3

    # Scores
    SCORE_EXACT = 4
    SCORE_CLOSE = 3  # synonym or typo
    SCORE_WITH_HINT = 2
    SCORE_WRONG = 1

    def evaluate(
        self,
        user_input: str | None,
        expected_answer: str,
        synonyms: Iterable[str] = (),
        hints_used: int = 0,
    ) -> Evaluation:
        """
        Evaluate a typed answer.

        Args:
            user_input: What the learner typed (None is treated as empty)
            expected_answer: The answer for the presented direction
            synonyms: Alternative accepted answers
            hints_used: Number of penalising hints taken on this attempt

        Returns:
            Evaluation with score, reason, similarity and suggestions
        """
        if hints_used < 0:
            raise ValidationError(f"hints_used must be >= 0, got {hints_used}")

        synonyms = [s for s in synonyms if s]
        answer = normalize(user_input)
        expected = normalize(expected_answer)

        # 1. Empty input = "don't know"
        if not answer:
            return Evaluation(
                score=self.SCORE_WRONG,
                reason=EvaluationReason.WRONG,
                similarity=0.0,
                suggestions=self._suggestions(expected_answer, synonyms),
            )

        # 2. Word count must match before spelling is considered
        if not self._spaces_match(answer, expected):
            logger.debug(f"Whitespace mismatch: {answer!r} vs {expected!r}")
            return Evaluation(
                score=self.SCORE_WRONG,
                reason=EvaluationReason.WRONG,
                similarity=similarity(answer, expected),
                suggestions=self._suggestions(expected_answer, synonyms),
            )

        # 3. Exact match (case and whitespace insensitive)
        if answer == expected:
            return self._correct(self.SCORE_EXACT, EvaluationReason.EXACT, 1.0, hints_used)

        # 4. Synonym
        if any(normalize(s) == answer for s in synonyms):
            return self._correct(self.SCORE_CLOSE, EvaluationReason.SYNONYM, 1.0, hints_used)

        # 5. Typo
        ratio = similarity(answer, expected)
        if self._is_typo(answer, expected, ratio):
            result = self._correct(self.SCORE_CLOSE, EvaluationReason.TYPO, ratio, hints_used)
            result.suggestions = self._suggestions(expected_answer, synonyms)
            return result

        # 6. Wrong
        return Evaluation(
            score=self.SCORE_WRONG,
            reason=EvaluationReason.WRONG,
            similarity=ratio,
            suggestions=self._suggestions(expected_answer, synonyms),
        )

    def _correct(
        self,
        score: int,
        reason: EvaluationReason,
        ratio: float,
        hints_used: int,
    ) -> Evaluation:
        """Build a correct result, capping the score when a hint was taken."""
        if hints_used > 0:
            return Evaluation(
                score=self.SCORE_WITH_HINT,
                reason=EvaluationReason.HINT_USED,
                similarity=ratio,
            )
        return Evaluation(score=score, reason=reason, similarity=ratio)

    def _spaces_match(self, answer: str, expected: str) -> bool:
        """Both sides must contain the same number of words."""
        answer_spaces = answer.count(" ")
        expected_spaces = expected.count(" ")

        if expected_spaces > 0:
            return answer_spaces == expected_spaces
        return answer_spaces == 0

    def _is_typo(self, answer: str, expected: str, ratio: float) -> bool:
        """Close enough in both relative and absolute terms."""
        max_len = max(len(answer), len(expected))
        edits = distance(answer, expected)
        return ratio >= self.TYPO_SIMILARITY_THRESHOLD and edits <= max_allowed_distance(max_len)

    def _suggestions(self, expected_answer: str, synonyms: list[str]) -> list[str]:
        """Expected answer first, then distinct synonyms."""
        suggestions = [expected_answer.strip()]
        expected_key = expected_answer.strip().lower()
        for synonym in synonyms:
            if synonym.strip().lower() != expected_key:
                suggestions.append(synonym)
        return suggestions[: self.MAX_SUGGESTIONS]


_default_evaluator = AnswerEvaluator()


def evaluate(
    user_input: str | None,
    expected_answer: str,
    synonyms: Iterable[str] = (),
    hints_used: int = 0,
) -> Evaluation:
    """Evaluate with the default thresholds."""
    return _default_evaluator.evaluate(user_input, expected_answer, synonyms, hints_used)


def validate_input_realtime(user_input: str, expected_answer: str) -> InputCheck:
    """
    Check an answer while it is being typed.

    Only the word count is an error; length is a warning.
    """
    errors: list[str] = []
    warnings: list[str] = []

    if len(user_input) > len(expected_answer) * 2:
        warnings.append("The answer looks too long")

    input_spaces = space_count(user_input)
    expected_spaces = space_count(expected_answer)

    if expected_spaces > 0 and input_spaces == 0:
        errors.append("The answer should contain spaces")
    elif expected_spaces == 0 and input_spaces > 0:
        errors.append("The answer should not contain spaces")

    return InputCheck(is_valid=not errors, errors=errors, warnings=warnings)


def input_accuracy(correct: int, attempts: int) -> tuple[float, AccuracyLevel]:
    """Accuracy ratio and band from an item's input history."""
    if attempts <= 0:
        return 0.0, AccuracyLevel.NEEDS_PRACTICE

    accuracy = correct / attempts
    if accuracy >= 0.9:
        return accuracy, AccuracyLevel.EXCELLENT
    elif accuracy >= 0.7:
        return accuracy, AccuracyLevel.GOOD
    return accuracy, AccuracyLevel.NEEDS_PRACTICE

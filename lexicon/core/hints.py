"""
Hint generation for typed-answer review.

Two hints are available per attempt:
1. length       - character count, with the number of spaces
2. first_letter - the first character of the answer

Taking any hint caps the achievable score at 2. The length hint only
penalises when it is the first hint of the attempt; the first-letter hint
always does.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from loguru import logger

from lexicon.core.similarity import collapse_whitespace


class HintType(str, Enum):
    """Supported hint kinds."""

    LENGTH = "length"
    FIRST_LETTER = "first_letter"


@dataclass
class Hint:
    """Hint text plus whether it costs the learner score."""

    content: str
    penalty_applies: bool


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def generate_hint(
    target_text: str,
    hint_type: HintType | str,
    hints_already_used: int = 0,
) -> Hint:
    """
    Build a hint for the expected answer.

    Args:
        target_text: The answer the learner is trying to produce
        hint_type: HintType or its string value
        hints_already_used: Hints already taken on this attempt

    Returns:
        Hint; unknown types yield empty content and no penalty
    """
    try:
        kind = HintType(hint_type)
    except ValueError:
        logger.debug(f"Unknown hint type requested: {hint_type!r}")
        return Hint(content="", penalty_applies=False)

    # Case is kept, only whitespace is normalized
    text = collapse_whitespace(target_text)

    if kind is HintType.LENGTH:
        content = _plural(len(text), "character")
        spaces = text.count(" ")
        if spaces > 0:
            content += f" (including {_plural(spaces, 'space')})"
        return Hint(content=content, penalty_applies=hints_already_used == 0)

    first_char = text[:1]
    return Hint(content=f'Starts with: "{first_char}"', penalty_applies=True)

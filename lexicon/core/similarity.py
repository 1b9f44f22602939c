"""
String similarity for typed answers.

Levenshtein distance over code points and a length-relative similarity
ratio, computed on normalized text (trimmed, case-folded, whitespace
runs collapsed to a single space).
"""

from __future__ import annotations

import re

_WHITESPACE_RUN = re.compile(r"\s+")

# Typo tolerance by length of the longer string
SHORT_WORD_MAX_LEN = 4
MEDIUM_WORD_MAX_LEN = 8


def collapse_whitespace(text: str | None) -> str:
    """Trim and collapse whitespace runs, keeping case."""
    if not text:
        return ""
    return _WHITESPACE_RUN.sub(" ", text.strip())


def normalize(text: str | None) -> str:
    """Trim, case-fold and collapse whitespace."""
    return collapse_whitespace(text).casefold()


def space_count(text: str | None) -> int:
    """Number of word separators left after normalization."""
    return normalize(text).count(" ")


def distance(a: str, b: str) -> int:
    """
    Classic edit distance (insert, delete, substitute all cost 1).

    Uses two rolling rows, so memory is O(min(len(a), len(b))).
    """
    if a == b:
        return 0
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            if char_a == char_b:
                current.append(previous[j - 1])
            else:
                current.append(
                    1
                    + min(
                        previous[j - 1],  # substitution
                        current[j - 1],  # insertion
                        previous[j],  # deletion
                    )
                )
        previous = current
    return previous[-1]


def similarity(a: str | None, b: str | None) -> float:
    """
    Length-relative similarity in [0, 1].

    1.0 when both normalize to empty, 0.0 when only one does.
    """
    left = normalize(a)
    right = normalize(b)

    if left == right:
        return 1.0
    if not left or not right:
        return 0.0

    return 1.0 - distance(left, right) / max(len(left), len(right))


def max_allowed_distance(max_len: int) -> int:
    """Edits still counted as a typo for a word of this length."""
    if max_len <= SHORT_WORD_MAX_LEN:
        return 1
    if max_len <= MEDIUM_WORD_MAX_LEN:
        return 2
    return 3

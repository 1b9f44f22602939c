"""
Unit tests for hint generation.

Run: pytest tests/unit/test_hints.py -v
"""

from lexicon.core.hints import Hint, HintType, generate_hint


class TestLengthHint:
    """Character count with spaces called out."""

    def test_single_word(self):
        assert generate_hint("привет", HintType.LENGTH) == Hint("6 characters", True)

    def test_one_character(self):
        assert generate_hint("a", "length").content == "1 character"

    def test_counts_spaces(self):
        hint = generate_hint("good morning", HintType.LENGTH)

        assert hint.content == "12 characters (including 1 space)"

    def test_collapses_whitespace_first(self):
        hint = generate_hint("  good   morning ", HintType.LENGTH)

        assert hint.content == "12 characters (including 1 space)"

    def test_plural_spaces(self):
        assert generate_hint("a b c", "length").content == "5 characters (including 2 spaces)"

    def test_penalty_only_as_first_hint(self):
        assert generate_hint("привет", HintType.LENGTH, hints_already_used=0).penalty_applies
        assert not generate_hint("привет", HintType.LENGTH, hints_already_used=1).penalty_applies


class TestFirstLetterHint:
    """First character, case preserved."""

    def test_first_letter(self):
        hint = generate_hint("Hund", HintType.FIRST_LETTER)

        assert hint.content == 'Starts with: "H"'
        assert hint.penalty_applies

    def test_always_penalised(self):
        assert generate_hint("Hund", "first_letter", hints_already_used=1).penalty_applies

    def test_ignores_leading_whitespace(self):
        assert generate_hint("  der Hund", HintType.FIRST_LETTER).content == 'Starts with: "d"'


class TestUnknownHint:
    """Unsupported kinds return an empty, free hint."""

    def test_unknown_type(self):
        hint = generate_hint("привет", "vowels")

        assert hint.content == ""
        assert hint.penalty_applies is False

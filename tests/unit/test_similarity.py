"""
Unit tests for the similarity scorer.

Run: pytest tests/unit/test_similarity.py -v
"""

import pytest

from lexicon.core.similarity import (
    collapse_whitespace,
    distance,
    max_allowed_distance,
    normalize,
    similarity,
    space_count,
)


class TestNormalize:
    """Test normalize and collapse_whitespace."""

    def test_trims_and_lowercases(self):
        assert normalize("  Guten Morgen ") == "guten morgen"

    def test_collapses_whitespace_runs(self):
        assert normalize("good \t  morning\n") == "good morning"

    def test_unicode_casefold(self):
        assert normalize("ПРИВЕТ") == "привет"
        assert normalize("Straße") == "strasse"

    def test_none_is_empty(self):
        assert normalize(None) == ""

    def test_collapse_keeps_case(self):
        assert collapse_whitespace("  Der   Hund ") == "Der Hund"

    def test_space_count(self):
        assert space_count("a  b   c") == 2
        assert space_count("  word  ") == 0


class TestDistance:
    """Test Levenshtein distance."""

    def test_identical(self):
        assert distance("привет", "привет") == 0

    def test_classic_example(self):
        assert distance("kitten", "sitting") == 3

    def test_empty_side(self):
        assert distance("", "abc") == 3
        assert distance("abc", "") == 3

    def test_single_substitution(self):
        assert distance("привет", "превет") == 1

    def test_insertion_and_deletion(self):
        assert distance("dog", "dogs") == 1
        assert distance("dogs", "dog") == 1

    def test_symmetric(self):
        assert distance("flaw", "lawn") == distance("lawn", "flaw") == 2


class TestSimilarity:
    """Test the length-relative ratio."""

    def test_same_string_is_one(self):
        assert similarity("house", "house") == 1.0

    def test_case_and_space_insensitive(self):
        assert similarity("  HOUSE ", "house") == 1.0

    def test_both_empty_is_one(self):
        assert similarity("", "") == 1.0

    def test_one_empty_is_zero(self):
        assert similarity("a", "") == 0.0
        assert similarity("   ", "a") == 0.0

    def test_ratio(self):
        assert similarity("abcd", "abce") == pytest.approx(0.75)

    def test_completely_different(self):
        assert similarity("cat", "dog") == 0.0


class TestMaxAllowedDistance:
    """Test typo tolerance bands."""

    @pytest.mark.parametrize(
        "length,expected",
        [(1, 1), (4, 1), (5, 2), (8, 2), (9, 3), (30, 3)],
    )
    def test_bands(self, length, expected):
        assert max_allowed_distance(length) == expected

"""
Unit tests for the free-text answer matcher.
"""

import pytest

from exam_grader.evaluation.matcher import (
    TextAnswerMatcher, MatchType, is_textually_correct
)


class TestTextAnswerMatcher:
    """Test cases for TextAnswerMatcher."""

    def setup_method(self):
        """Setup test fixtures."""
        self.matcher = TextAnswerMatcher()

    def test_exact_match_after_normalization(self):
        result = self.matcher.match_answer("  Binary   SEARCH ", "binary search")
        assert result.is_match
        assert result.match_type is MatchType.EXACT
        assert result.confidence == 1.0

    @pytest.mark.parametrize("text", ["a", "polymorphism", "uses a hash map for O(1) lookup"])
    def test_reflexive(self, text):
        assert self.matcher.is_textually_correct(text, text)

    def test_keyword_overlap_match(self):
        result = self.matcher.match_answer(
            "hash map gives constant lookup", "uses a hash map for O(1) lookup"
        )
        assert result.is_match
        assert result.match_type is MatchType.KEYWORD
        assert result.details['keywords'] == ['uses', 'hash', 'o(1)', 'lookup']
        assert result.details['matched_keywords'] == ['hash', 'lookup']
        assert result.confidence == pytest.approx(0.5)

    def test_fuzzy_match_on_single_typo(self):
        result = self.matcher.match_answer("polymorfism", "polymorphism")
        assert result.is_match
        assert result.match_type is MatchType.FUZZY
        assert result.details['distance'] == 2
        assert result.confidence == pytest.approx(1 - 2 / 12)

    def test_unrelated_answer_does_not_match(self):
        result = self.matcher.match_answer("encapsulation", "polymorphism")
        assert not result.is_match
        assert result.match_type is MatchType.NONE
        assert result.confidence < 0.7

    def test_empty_answer_never_matches(self):
        assert not self.matcher.is_textually_correct("   ", "polymorphism")
        assert not self.matcher.is_textually_correct("answer", "")
        assert not self.matcher.is_textually_correct(None, None)

    def test_short_reference_skips_keyword_strategy(self):
        # No token of four or more characters: only exact and fuzzy apply
        assert self.matcher.extract_keywords("o(n) is a big o") == ["o(n)"]
        assert self.matcher.extract_keywords("it is a cat") == []
        result = self.matcher.match_answer("a dog", "it is a cat")
        assert not result.is_match

    def test_thresholds_are_configurable(self):
        strict = TextAnswerMatcher(fuzzy_threshold=0.9)
        assert not strict.is_textually_correct("polymorfism", "polymorphism")

        lenient = TextAnswerMatcher(keyword_overlap_threshold=0.25)
        assert lenient.is_textually_correct("a lookup table", "uses a hash map for O(1) lookup")

    def test_from_config(self, test_config):
        test_config.grading.fuzzy_threshold = 0.95
        matcher = TextAnswerMatcher.from_config(test_config.grading)
        assert matcher.fuzzy_threshold == 0.95
        assert matcher.min_keyword_length == 4


class TestIsTextuallyCorrect:
    """Test cases for the module-level helper."""

    def test_uses_default_thresholds(self):
        assert is_textually_correct("polymorfism", "polymorphism")
        assert not is_textually_correct("encapsulation", "polymorphism")

    def test_accepts_custom_matcher(self):
        matcher = TextAnswerMatcher(fuzzy_threshold=1.0)
        assert not is_textually_correct("polymorfism", "polymorphism", matcher=matcher)

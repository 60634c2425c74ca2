"""
Unit tests for automatic grading.
"""

import pytest

from exam_grader.evaluation.grader import AutoGrader, auto_grade, reconcile_submission
from exam_grader.evaluation.matcher import TextAnswerMatcher, MatchType
from exam_grader.exams.types import Question, QuestionType


class TestAutoGrader:
    """Test cases for AutoGrader."""

    def setup_method(self):
        """Setup test fixtures."""
        self.grader = AutoGrader()
        self.single = Question("s", "Capital of France?", QuestionType.SINGLE_CHOICE,
                               "Paris", ["Paris", "Rome"])
        self.multi = Question("m", "Pick A and B", QuestionType.MULTI_CHOICE,
                              ["A", "B"], ["A", "B", "C"])
        self.text = Question("t", "Name the concept", QuestionType.SHORT_TEXT, "polymorphism")

    def test_single_choice_case_and_whitespace_insensitive(self):
        verdict = self.grader.grade_question(0, self.single, " paris ")
        assert verdict.is_correct is True

    def test_single_choice_wrong_option(self):
        assert self.grader.grade_question(0, self.single, "Rome").is_correct is False

    def test_multi_choice_order_independent(self):
        assert self.grader.grade_question(0, self.multi, ["B", "A"]).is_correct is True

    @pytest.mark.parametrize("given", [["A"], ["A", "B", "C"], []])
    def test_multi_choice_requires_exact_set(self, given):
        assert self.grader.grade_question(0, self.multi, given).is_correct is False

    def test_text_question_uses_matcher(self):
        verdict = self.grader.grade_question(0, self.text, "polymorfism")
        assert verdict.is_correct is True
        assert verdict.match_result.match_type is MatchType.FUZZY

    def test_wrong_shape_is_not_gradable(self):
        verdict = self.grader.grade_question(0, self.single, ["Paris"])
        assert verdict.is_correct is None
        assert verdict.match_result is None

    def test_reconciled_single_choice_graded_as_set(self):
        skewed = Question("x", "Pick both", QuestionType.SINGLE_CHOICE, ["A", "B"], ["A", "B"])
        verdict = self.grader.grade_question(0, skewed, ["b", "a"])
        assert verdict.effective_type is QuestionType.MULTI_CHOICE
        assert verdict.is_correct is True

    def test_grade_counts_correct_answers(self):
        questions = [self.single, self.multi, self.text]
        result = self.grader.grade(questions, {"0": "Paris", "1": ["A"], "2": "polymorphism"})
        assert result.score == 2
        assert result.per_question == [True, False, True]
        assert result.ungraded == []

    def test_grade_reports_ungraded_questions(self):
        result = self.grader.grade([self.single, self.multi], {"0": "Paris"})
        assert result.per_question == [True, None]
        assert result.ungraded == [1]

    def test_from_config_passes_thresholds(self, test_config):
        test_config.grading.fuzzy_threshold = 0.99
        grader = AutoGrader.from_config(test_config.grading)
        assert grader.grade_question(0, self.text, "polymorfism").is_correct is False


class TestModuleHelpers:
    """Test cases for auto_grade and reconcile_submission."""

    def test_auto_grade_with_custom_grader(self):
        question = Question("t", "Concept?", QuestionType.SHORT_TEXT, "polymorphism")
        grader = AutoGrader(TextAnswerMatcher(fuzzy_threshold=1.0))
        assert auto_grade([question], {"0": "polymorfism"}, grader).score == 0
        assert auto_grade([question], {"0": "polymorfism"}).score == 1

    def test_reconcile_submission_keyed_by_index(self):
        questions = [
            Question("a", "One", QuestionType.SINGLE_CHOICE, "A", ["A", "B"]),
            Question("b", "Two", QuestionType.MULTI_CHOICE, ["A"], ["A", "B"]),
        ]
        result = reconcile_submission(questions, {"0": "A", "1": "A"})
        assert result[0].valid
        assert not result[1].valid

"""
Automatic Grading

Grades a submission question by question: choice questions by normalized
comparison, free-text questions through the text matcher.
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence
from dataclasses import dataclass, field

from .normalizer import normalize_answer, normalize_selection
from .reconciler import reconcile, Reconciliation
from .matcher import TextAnswerMatcher, MatchResult
from ..exams.types import Question, QuestionType, is_sequence
from ..utils.logging import get_logger, PerformanceTimer

logger = get_logger(__name__)


@dataclass
class QuestionVerdict:
    """Automatic verdict for a single question."""
    index: int
    question_id: str
    effective_type: QuestionType
    # None when the answer could not be graded (missing or wrong shape)
    is_correct: Optional[bool]
    reason: str
    match_result: Optional[MatchResult] = None


@dataclass
class AutoGradeResult:
    """Result of grading a whole submission."""
    score: int
    per_question: List[Optional[bool]]
    verdicts: List[QuestionVerdict] = field(default_factory=list)

    @property
    def ungraded(self) -> List[int]:
        return [v.index for v in self.verdicts if v.is_correct is None]


class AutoGrader:
    """Grades submissions against a question set."""

    def __init__(self, matcher: Optional[TextAnswerMatcher] = None):
        """
        Initialize the auto-grader.

        Args:
            matcher: Free-text matcher (default thresholds if None)
        """
        self.matcher = matcher or TextAnswerMatcher()

    @classmethod
    def from_config(cls, grading_config) -> "AutoGrader":
        return cls(TextAnswerMatcher.from_config(grading_config))

    def grade(self, questions: Sequence[Question],
              submission: Mapping[str, Any]) -> AutoGradeResult:
        """
        Grade every question against the submission.

        Args:
            questions: Ordered question set
            submission: Answers keyed by stringified question index

        Returns:
            AutoGradeResult with the count of correct questions and a
            per-question flag
        """
        with PerformanceTimer(f"auto-grading {len(questions)} questions", logger):
            verdicts = [
                self.grade_question(index, question, submission.get(str(index)))
                for index, question in enumerate(questions)
            ]

        per_question = [v.is_correct for v in verdicts]
        score = sum(1 for flag in per_question if flag)

        logger.info(f"Auto-grading complete: {score}/{len(questions)} correct")
        return AutoGradeResult(score=score, per_question=per_question, verdicts=verdicts)

    def grade_question(self, index: int, question: Question, given: Any) -> QuestionVerdict:
        """Grade one answer after resolving its effective type."""
        reconciliation = reconcile(question, given)
        if not reconciliation.valid:
            logger.warning(f"Question {index} not gradable: {reconciliation.reason}")
            return QuestionVerdict(index, question.id, reconciliation.accepted_type,
                                   None, reconciliation.reason)

        effective = reconciliation.accepted_type
        match_result = None

        if effective is QuestionType.SINGLE_CHOICE:
            is_correct = normalize_answer(given) == normalize_answer(question.correct_answer)
        elif effective is QuestionType.MULTI_CHOICE:
            is_correct = self._selection_matches(given, question.correct_answer)
        else:
            match_result = self.matcher.match_answer(given, question.correct_answer)
            is_correct = match_result.is_match

        return QuestionVerdict(index, question.id, effective, is_correct,
                               reconciliation.reason, match_result)

    @staticmethod
    def _selection_matches(given: Any, correct: Any) -> bool:
        """Exact set equality; extra or missing selections both fail."""
        if not is_sequence(given) or not is_sequence(correct):
            return False
        return normalize_selection(given) == normalize_selection(correct)


def auto_grade(questions: Sequence[Question], submission: Mapping[str, Any],
               grader: Optional[AutoGrader] = None) -> AutoGradeResult:
    """Grade a submission with the given grader, or one using default thresholds."""
    return (grader or AutoGrader()).grade(questions, submission)


def reconcile_submission(questions: Sequence[Question],
                         submission: Mapping[str, Any]) -> Dict[int, Reconciliation]:
    """Reconcile every answer in a submission; keyed by question index."""
    return {
        index: reconcile(question, submission.get(str(index)))
        for index, question in enumerate(questions)
    }

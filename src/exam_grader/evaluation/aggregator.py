"""
Score Aggregation

Combines automatic verdicts and the manual grading ledger into the final
score. Scores are always recomputed from the full exam state, so aggregating
the same state twice gives the same answer.
"""

from dataclasses import dataclass
from typing import Any, Dict

from ..exams.types import ExamInstance


@dataclass(frozen=True)
class ScoreBreakdown:
    """Aggregated score for one exam."""
    auto_score: int
    manual_score: float
    final_score: float
    percentage: float
    qualified: bool
    total_questions: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'auto_score': self.auto_score,
            'manual_score': self.manual_score,
            'final_score': self.final_score,
            'percentage': self.percentage,
            'qualified': self.qualified,
            'total_questions': self.total_questions,
        }


class ScoreAggregator:
    """Computes auto, manual and final scores plus qualification."""

    def __init__(self, qualification_threshold: float = 70.0,
                 require_manual_review: bool = True):
        """
        Args:
            qualification_threshold: Passing percentage (inclusive)
            require_manual_review: When set, automatic free-text verdicts never
                count; free-text credit comes only from the manual ledger
        """
        self.qualification_threshold = qualification_threshold
        self.require_manual_review = require_manual_review

    @classmethod
    def from_config(cls, grading_config) -> "ScoreAggregator":
        return cls(
            qualification_threshold=grading_config.qualification_threshold,
            require_manual_review=grading_config.require_manual_review,
        )

    def aggregate(self, exam: ExamInstance) -> ScoreBreakdown:
        """Recompute every score component from the exam's current state."""
        auto_score = 0
        for index, question in enumerate(exam.questions):
            verdict = exam.question_results[index] if index < len(exam.question_results) else None
            if not verdict:
                continue
            if question.type.is_auto_gradable:
                auto_score += 1
            elif not self.require_manual_review and question.id not in exam.manual_grades:
                # Provisional free-text credit until a reviewer grades the question
                auto_score += 1

        manual_score = float(sum(record.score for record in exam.manual_grades.values()))
        final_score = auto_score + manual_score

        total = exam.total_questions
        percentage = round(final_score / total * 100, 2) if total else 0.0

        return ScoreBreakdown(
            auto_score=auto_score,
            manual_score=manual_score,
            final_score=final_score,
            percentage=percentage,
            qualified=percentage >= self.qualification_threshold,
            total_questions=total,
        )

    def apply(self, exam: ExamInstance) -> ScoreBreakdown:
        """Aggregate and write the score fields back onto the exam."""
        breakdown = self.aggregate(exam)
        exam.auto_score = breakdown.auto_score
        exam.manual_score = breakdown.manual_score
        exam.final_score = breakdown.final_score
        exam.percentage = breakdown.percentage
        exam.qualified = breakdown.qualified
        return breakdown

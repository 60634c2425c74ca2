"""
Manual Grading Ledger

Reviewer-assigned partial credit for free-text questions, keyed by question id
so each question holds at most one live record. A later grade for the same
question replaces the earlier one.
"""

import math
from datetime import datetime
from numbers import Real
from typing import Any, Optional

from .types import ExamInstance, ManualGradeRecord
from ..core.exceptions import NotSubmittedError, UnknownQuestionError, ValidationError
from ..utils.clock import utcnow
from ..utils.logging import get_logger

logger = get_logger(__name__)


def check_manual_grade(exam: ExamInstance, question_id: Any, score: Any) -> None:
    """
    Check every precondition for a manual grade without touching the exam.

    Raises:
        NotSubmittedError: The exam has no submission yet
        UnknownQuestionError: The question is not part of the exam
        ValidationError: Score outside [0, 1] or the question is auto-gradable
    """
    if not exam.status.has_submission:
        raise NotSubmittedError(
            "Exam has no submission to grade",
            exam_id=exam.id,
            status=exam.status.value,
        )

    question = exam.find_question(question_id)
    if question is None:
        raise UnknownQuestionError(
            f"Question {question_id!r} is not part of exam {exam.id}",
            exam_id=exam.id,
            question_id=str(question_id),
        )

    if isinstance(score, bool) or not isinstance(score, Real) or math.isnan(score) \
            or not 0.0 <= score <= 1.0:
        raise ValidationError(
            "Manual score must be a number between 0 and 1",
            field_name="score",
            invalid_value=score,
        )

    if question.type.is_auto_gradable:
        raise ValidationError(
            f"Question {question.id} is {question.type.value} and is graded automatically",
            field_name="question_id",
            invalid_value=question.id,
        )


def apply_manual_grade(exam: ExamInstance, question_id: Any, score: Any,
                       feedback: Optional[str] = "",
                       graded_at: Optional[datetime] = None) -> ManualGradeRecord:
    """
    Insert or replace the ledger entry for one question.

    Args:
        exam: Exam to record against (its ledger is modified in place)
        question_id: Id of a free-text question in the exam
        score: Credit in [0, 1]
        feedback: Reviewer comment
        graded_at: Timestamp for the record

    Returns:
        The live record for the question
    """
    check_manual_grade(exam, question_id, score)

    record = ManualGradeRecord(
        question_id=str(question_id),
        score=float(score),
        feedback=feedback or "",
        graded_at=graded_at or utcnow(),
    )

    replaced = record.question_id in exam.manual_grades
    exam.manual_grades[record.question_id] = record
    logger.info(
        f"{'Replaced' if replaced else 'Recorded'} manual grade {record.score:.2f} "
        f"for question {record.question_id} on exam {exam.id}"
    )
    return record

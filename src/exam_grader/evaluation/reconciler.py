"""
Question Type Reconciliation

Resolves the effective question type for one evaluation before any comparison
runs. Question generators are not always consistent about the declared type and
the shape of the correct answer; a skew that still leaves the question gradable
is absorbed here instead of rejecting the submission.
"""

from typing import Any
from dataclasses import dataclass

from ..exams.types import Question, QuestionType, is_sequence
from ..utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Reconciliation:
    """Outcome of reconciling a question with a given answer."""
    accepted_type: QuestionType
    valid: bool
    reason: str

    @property
    def converted(self) -> bool:
        return self.valid and self.reason.startswith("treated as")


def reconcile(question: Question, given_answer: Any) -> Reconciliation:
    """
    Decide which type a given answer is graded as.

    The question itself is never modified; a conversion applies to this
    evaluation only.

    Args:
        question: The question being answered
        given_answer: Scalar string or sequence of strings

    Returns:
        Reconciliation with the effective type and whether the shape is gradable
    """
    declared = question.type
    given_is_sequence = is_sequence(given_answer)

    if given_answer is None:
        return Reconciliation(declared, False, "no answer given")

    if (declared is QuestionType.SINGLE_CHOICE and given_is_sequence
            and is_sequence(question.correct_answer)):
        logger.debug(f"Question {question.id} declared single-choice with a set answer; treating as multi-choice")
        return Reconciliation(QuestionType.MULTI_CHOICE, True, "treated as multi-choice")

    if (declared is QuestionType.MULTI_CHOICE and not given_is_sequence
            and not is_sequence(question.correct_answer)):
        logger.debug(f"Question {question.id} declared multi-choice with a scalar answer; treating as single-choice")
        return Reconciliation(QuestionType.SINGLE_CHOICE, True, "treated as single-choice")

    if declared.expects_sequence:
        if not given_is_sequence:
            return Reconciliation(declared, False, f"{declared.value} answer must be a list of selections")
        if not all(isinstance(item, str) for item in given_answer):
            return Reconciliation(declared, False, f"{declared.value} selections must be strings")
    else:
        if not isinstance(given_answer, str):
            return Reconciliation(declared, False, f"{declared.value} answer must be a string")

    return Reconciliation(declared, True, "shape matches declared type")

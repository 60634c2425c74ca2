"""
Exam Input Validation

Structural checks on question sets (at generation time) and on submissions
(before grading). Problems are collected and reported together.
"""

from typing import Any, Dict, List, Mapping, Sequence

from .types import Question, QuestionType, is_sequence
from ..core.exceptions import ValidationError
from ..evaluation.reconciler import reconcile
from ..utils.logging import get_logger

logger = get_logger(__name__)


def question_problems(question: Question) -> List[str]:
    """Return schema problems for a question, empty when it is well formed."""
    problems = []

    if not isinstance(question.text, str) or not question.text.strip():
        problems.append("question text is empty")

    if not is_sequence(question.options):
        problems.append("options must be a list")
    elif question.type.is_choice:
        if len(question.options) < 2:
            problems.append(f"{question.type.value} question needs at least 2 options")

    correct = question.correct_answer
    if is_sequence(correct):
        if not correct:
            problems.append("correct answer set is empty")
        elif not all(isinstance(item, str) and item.strip() for item in correct):
            problems.append("correct answer set must contain non-empty strings")
    elif not isinstance(correct, str) or not correct.strip():
        problems.append("correct answer is empty")

    return problems


def shape_mismatch(question: Question) -> bool:
    """True when the declared type disagrees with the correct-answer shape."""
    return question.type.expects_sequence != is_sequence(question.correct_answer)


def validate_questions(questions: Sequence[Question], strict_schema: bool = False) -> None:
    """
    Validate a question set supplied for a new exam.

    Args:
        questions: Ordered question set
        strict_schema: Reject type/answer-shape mismatches instead of tolerating them

    Raises:
        ValidationError: If any question is malformed
    """
    if not questions:
        raise ValidationError("An exam needs at least one question", field_name="questions")

    errors: Dict[str, List[str]] = {}
    seen_ids = set()
    for index, question in enumerate(questions):
        problems = question_problems(question)

        if question.id in seen_ids:
            problems.append(f"duplicate question id {question.id!r}")
        seen_ids.add(question.id)

        if shape_mismatch(question):
            if strict_schema:
                problems.append(
                    f"declared {question.type.value} but correct answer is "
                    f"{'a list' if is_sequence(question.correct_answer) else 'a single value'}"
                )
            else:
                logger.warning(
                    f"Question {index} declared {question.type.value} with mismatched "
                    f"correct answer shape; it will be reconciled at grading time"
                )

        if problems:
            errors[str(index)] = problems

    if errors:
        raise ValidationError(
            f"{len(errors)} question(s) failed validation",
            field_name="questions",
            problems=errors,
        )


def validate_submission(questions: Sequence[Question], submission: Any) -> Dict[str, Any]:
    """
    Check that a submission has exactly one gradable answer per question.

    Args:
        questions: The exam's ordered question set
        submission: Mapping of stringified question index to answer

    Returns:
        The submission with its keys normalized to strings

    Raises:
        ValidationError: On a missing, extra, empty or wrongly shaped answer
    """
    if not isinstance(submission, Mapping):
        raise ValidationError(
            "Answers must be provided as a mapping of question index to answer",
            field_name="submission",
            invalid_value=type(submission).__name__,
        )

    answers = {str(key): value for key, value in submission.items()}
    expected_keys = {str(i) for i in range(len(questions))}

    problems: Dict[str, str] = {}
    for key in sorted(expected_keys - set(answers), key=int):
        problems[key] = "missing answer"
    for key in sorted(set(answers) - expected_keys):
        problems[key] = "no question at this index"

    for index, question in enumerate(questions):
        key = str(index)
        if key not in answers:
            continue
        if answers[key] is None:
            problems[key] = "answer is null"
            continue
        reconciliation = reconcile(question, answers[key])
        if not reconciliation.valid:
            problems[key] = reconciliation.reason

    if problems:
        raise ValidationError(
            f"Submission rejected: {len(problems)} problem(s)",
            field_name="submission",
            problems=problems,
        )

    return answers

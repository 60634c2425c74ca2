"""
Exam Lifecycle Controller

Drives an exam through its states:

    generated -> graded -> manually_graded
                   |            |
                   +-> under_review <-+

Every transition validates its preconditions first and then commits the full
updated exam through the store in one write, so a rejected call leaves the
stored exam untouched.
"""

import copy
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable, List, Mapping, Optional, Union

from .types import ExamInstance, ExamResult, ExamStatus, Question
from .store import ExamStore
from .ledger import apply_manual_grade
from .attempts import AttemptGate
from .validation import validate_questions, validate_submission
from ..core.config import AppConfig, get_config
from ..core.exceptions import (
    AlreadySubmittedError,
    AttemptNotAllowedError,
    NotFoundError,
    NotReadyError,
    NotSubmittedError,
    ValidationError,
)
from ..evaluation.grader import AutoGrader
from ..evaluation.aggregator import ScoreAggregator
from ..utils.clock import to_naive_utc, utcnow
from ..utils.logging import get_exam_logger, get_logger

logger = get_logger(__name__)

SUBMITTED_STATES = (ExamStatus.SUBMITTED, ExamStatus.GRADED, ExamStatus.MANUALLY_GRADED,
                    ExamStatus.UNDER_REVIEW)
REVIEWABLE_STATES = (ExamStatus.GRADED, ExamStatus.MANUALLY_GRADED)


class ExamLifecycleController:
    """Orchestrates generation, submission, manual grading and results."""

    def __init__(self, store: ExamStore,
                 config: Optional[AppConfig] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        """
        Args:
            store: Persistence collaborator
            config: Application configuration (global config if None)
            clock: Source of the current time (naive UTC)
        """
        self.store = store
        self.config = config or get_config()
        self.clock = clock or utcnow

        grading = self.config.grading
        self.grader = AutoGrader.from_config(grading)
        self.aggregator = ScoreAggregator.from_config(grading)
        self.attempt_gate = AttemptGate(self.config.attempts.cooldown_days)

    # ----- queries -----

    def get_exam(self, exam_id: str) -> ExamInstance:
        exam = self.store.find_exam(exam_id)
        if exam is None:
            raise NotFoundError(f"Exam {exam_id} not found", resource="exam", resource_id=exam_id)
        return exam

    def list_exams(self, candidate_id: Optional[str] = None,
                   status: Optional[Union[ExamStatus, str]] = None,
                   qualified: Optional[bool] = None,
                   limit: Optional[int] = None, offset: int = 0) -> List[ExamInstance]:
        if status is not None:
            status = ExamStatus(status)
        return self.store.list_exams(candidate_id=candidate_id, status=status,
                                     qualified=qualified, limit=limit, offset=offset)

    def check_attempt_eligibility(self, candidate_id: str,
                                  last_attempt_at: Optional[datetime] = None) -> bool:
        """
        Whether the candidate may start a new exam now.

        A supplied timestamp is weighed against the candidate's latest stored
        exam; the later of the two starts the cooldown.
        """
        last_attempt_at = self._last_attempt(candidate_id, last_attempt_at)
        return self.attempt_gate.can_attempt(last_attempt_at, self.clock())

    def compute_result(self, exam_id: str) -> ExamResult:
        """
        Read-only result for a graded exam.

        Scores are recomputed from the ledger, not read from stored fields.

        Raises:
            NotReadyError: The exam is not graded yet or is held for review
        """
        exam = self.get_exam(exam_id)
        if exam.status is ExamStatus.GENERATED:
            raise NotReadyError("Exam has not been graded yet",
                                exam_id=exam_id, status=exam.status.value)
        if exam.status is ExamStatus.UNDER_REVIEW:
            raise NotReadyError("Exam result is held for review",
                                exam_id=exam_id, status=exam.status.value)

        breakdown = self.aggregator.aggregate(exam)
        return ExamResult(
            exam_id=exam.id,
            score=breakdown.final_score,
            total=breakdown.total_questions,
            percentage=breakdown.percentage,
            qualified=breakdown.qualified,
            auto_score=breakdown.auto_score,
            manual_score=breakdown.manual_score,
            status=exam.status,
            answers=dict(exam.submitted_answers),
        )

    # ----- transitions -----

    def generate_exam(self, candidate_id: str,
                      questions: Iterable[Union[Question, Mapping[str, Any]]],
                      last_attempt_at: Optional[datetime] = None) -> ExamInstance:
        """
        Create a new exam for a candidate from an externally supplied question set.

        Raises:
            AttemptNotAllowedError: The cooldown since the last attempt has not elapsed
            ValidationError: The question set is malformed
        """
        now = self.clock()
        last_attempt_at = self._last_attempt(candidate_id, last_attempt_at)
        if not self.attempt_gate.can_attempt(last_attempt_at, now):
            next_at = self.attempt_gate.next_eligible_at(last_attempt_at)
            logger.warning(f"Candidate {candidate_id} attempted a new exam before {next_at.isoformat()}")
            raise AttemptNotAllowedError(
                f"Candidate {candidate_id} may attempt again after {next_at.isoformat()}",
                candidate_id=candidate_id,
                next_eligible_at=next_at,
            )

        question_set = self._coerce_questions(questions)
        validate_questions(question_set, strict_schema=self.config.grading.strict_question_schema)

        exam = self.store.create_exam(ExamInstance(
            id=None,
            candidate_id=str(candidate_id),
            questions=question_set,
            status=ExamStatus.GENERATED,
            generated_at=now,
        ))
        get_exam_logger(exam.id, exam.candidate_id).info(
            f"Generated exam with {exam.total_questions} questions"
        )
        return exam

    def submit_answers(self, exam_id: str, submission: Mapping[str, Any]) -> ExamInstance:
        """
        Record a submission, auto-grade it and move the exam to graded.

        Raises:
            NotFoundError: Unknown exam
            AlreadySubmittedError: The exam already has a submission
            ValidationError: Incomplete or malformed submission
        """
        exam = self.get_exam(exam_id)
        exam_logger = get_exam_logger(exam.id, exam.candidate_id)

        if exam.status in SUBMITTED_STATES:
            exam_logger.warning(f"Rejected re-submission in status {exam.status.value}")
            raise AlreadySubmittedError("Exam has already been submitted",
                                        exam_id=exam.id, status=exam.status.value)

        answers = validate_submission(exam.questions, submission)
        grading = self.grader.grade(exam.questions, answers)

        now = self.clock()
        updated = copy.deepcopy(exam)
        updated.submitted_answers = answers
        updated.question_results = grading.per_question
        updated.status = ExamStatus.GRADED
        updated.submitted_at = now
        updated.graded_at = now
        breakdown = self.aggregator.apply(updated)

        if not self.store.replace_exam(updated, expected_status=ExamStatus.GENERATED):
            # Another submission won the race
            exam_logger.warning("Concurrent submission detected; rejecting this one")
            raise AlreadySubmittedError("Exam has already been submitted", exam_id=exam.id)

        exam_logger.info(
            f"Submission graded: auto score {breakdown.auto_score}/{breakdown.total_questions} "
            f"({breakdown.percentage:.2f}%)"
        )
        return updated

    def record_manual_grade(self, exam_id: str, question_id: Any, score: Any,
                            feedback: Optional[str] = "") -> ExamInstance:
        """
        Record reviewer credit for a free-text question and recompute the score.

        Raises:
            NotFoundError: Unknown exam or question
            NotSubmittedError: The exam has no submission yet
            ValidationError: Score outside [0, 1] or the question is auto-gradable
        """
        exam = self.get_exam(exam_id)
        now = self.clock()

        updated = copy.deepcopy(exam)
        record = apply_manual_grade(updated, question_id, score, feedback, graded_at=now)
        self.aggregator.apply(updated)
        updated.reviewed_at = now
        if updated.status is not ExamStatus.UNDER_REVIEW:
            updated.status = ExamStatus.MANUALLY_GRADED

        if not self.store.save_manual_grade(updated, record, expected_status=exam.status):
            raise ValidationError(
                f"Exam {exam.id} changed while it was being updated",
                field_name="status",
                invalid_value=exam.status.value,
            )
        get_exam_logger(exam.id, exam.candidate_id).info(
            f"Manual grade recorded for question {record.question_id}; "
            f"final score {updated.final_score} ({updated.percentage:.2f}%)"
        )
        return updated

    def hold_for_review(self, exam_id: str) -> ExamInstance:
        """Hide the result until a reviewer approves it."""
        exam = self.get_exam(exam_id)
        if exam.status is ExamStatus.GENERATED:
            raise NotSubmittedError("Exam has no submission to review",
                                    exam_id=exam.id, status=exam.status.value)
        if exam.status is ExamStatus.UNDER_REVIEW:
            return exam
        if exam.status not in REVIEWABLE_STATES:
            raise ValidationError(f"Exam in status {exam.status.value} cannot be held for review",
                                  field_name="status", invalid_value=exam.status.value)

        updated = copy.deepcopy(exam)
        updated.status = ExamStatus.UNDER_REVIEW
        self._commit(exam, updated)
        get_exam_logger(exam.id, exam.candidate_id).info("Exam held for review")
        return updated

    def approve_exam(self, exam_id: str, delay_minutes: Optional[int] = None) -> ExamInstance:
        """
        Approve a graded exam and schedule when its result becomes visible.

        Releases a review hold back to graded or manually_graded.
        """
        exam = self.get_exam(exam_id)
        if exam.status is ExamStatus.GENERATED:
            raise NotSubmittedError("Exam has no submission to approve",
                                    exam_id=exam.id, status=exam.status.value)
        if delay_minutes is None:
            delay_minutes = self.config.review.visibility_delay_minutes
        if delay_minutes < 0:
            raise ValidationError("Visibility delay cannot be negative",
                                  field_name="delay_minutes", invalid_value=delay_minutes)

        now = self.clock()
        updated = copy.deepcopy(exam)
        updated.approved = True
        updated.approved_at = now
        updated.visible_at = now + timedelta(minutes=delay_minutes)
        if updated.status is ExamStatus.UNDER_REVIEW:
            updated.status = (ExamStatus.MANUALLY_GRADED if updated.manual_grades
                              else ExamStatus.GRADED)
            updated.reviewed_at = now

        self._commit(exam, updated)
        get_exam_logger(exam.id, exam.candidate_id).info(
            f"Exam approved; visible at {updated.visible_at.isoformat()}"
        )
        return updated

    # ----- helpers -----

    def _last_attempt(self, candidate_id: str,
                      supplied: Optional[datetime]) -> Optional[datetime]:
        latest = self.store.find_latest_by_candidate(candidate_id)
        candidates = [to_naive_utc(value) for value in
                      (supplied, latest.generated_at if latest else None) if value is not None]
        return max(candidates) if candidates else None

    def _commit(self, original: ExamInstance, updated: ExamInstance) -> None:
        if not self.store.replace_exam(updated, expected_status=original.status):
            raise ValidationError(
                f"Exam {original.id} changed while it was being updated",
                field_name="status",
                invalid_value=original.status.value,
            )

    @staticmethod
    def _coerce_questions(questions: Iterable[Union[Question, Mapping[str, Any]]]) -> List[Question]:
        question_set = []
        for index, raw in enumerate(questions):
            if isinstance(raw, Question):
                question_set.append(raw)
                continue
            try:
                question_set.append(Question.from_dict(raw, index))
            except (ValueError, AttributeError, TypeError) as e:
                raise ValidationError(f"Question {index} is malformed: {e}",
                                      field_name="questions", invalid_value=index) from e
        return question_set

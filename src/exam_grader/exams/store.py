"""
Exam Store Interface

The persistence collaborator the lifecycle controller talks to. Each call is an
atomic read or write keyed by exam id.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from .types import ExamInstance, ExamStatus, ManualGradeRecord


class ExamStore(ABC):
    """Abstract exam storage."""

    @abstractmethod
    def create_exam(self, exam: ExamInstance) -> ExamInstance:
        """Persist a new exam and return it with its id assigned."""

    @abstractmethod
    def find_exam(self, exam_id: str) -> Optional[ExamInstance]:
        """Load an exam with its manual grading ledger, or None."""

    @abstractmethod
    def find_latest_by_candidate(self, candidate_id: str) -> Optional[ExamInstance]:
        """Most recently generated exam for a candidate, or None."""

    @abstractmethod
    def replace_exam(self, exam: ExamInstance,
                     expected_status: Optional[ExamStatus] = None) -> bool:
        """
        Replace the stored exam (ledger excluded) in one step.

        When expected_status is given the write only happens if the stored
        status still equals it. Returns False when that precondition fails.
        """

    @abstractmethod
    def save_manual_grade(self, exam: ExamInstance, record: ManualGradeRecord,
                          expected_status: Optional[ExamStatus] = None) -> bool:
        """
        Upsert one ledger record and store the exam's recomputed scores and status together.

        Guarded by expected_status like replace_exam; returns False and writes
        nothing when the precondition fails.
        """

    @abstractmethod
    def list_exams(self, candidate_id: Optional[str] = None,
                   status: Optional[ExamStatus] = None,
                   qualified: Optional[bool] = None,
                   limit: Optional[int] = None,
                   offset: int = 0) -> List[ExamInstance]:
        """List exams, newest first, with optional filters."""

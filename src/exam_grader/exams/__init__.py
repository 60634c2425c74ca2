"""
Exams Module

Exam data records, the manual grading ledger, the re-attempt gate and the
store interface. The lifecycle controller lives in ``exams.lifecycle``.
"""

from .types import (
    Question,
    QuestionType,
    ExamInstance,
    ExamStatus,
    ExamResult,
    ManualGradeRecord,
)
from .ledger import apply_manual_grade
from .attempts import AttemptGate, can_attempt
from .store import ExamStore

__all__ = [
    "Question",
    "QuestionType",
    "ExamInstance",
    "ExamStatus",
    "ExamResult",
    "ManualGradeRecord",
    "apply_manual_grade",
    "AttemptGate",
    "can_attempt",
    "ExamStore",
]

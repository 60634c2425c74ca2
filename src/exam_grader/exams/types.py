"""
Exam Types

Plain data records exchanged with the grading engine: questions, exam
instances and manual grade records.
"""

from typing import Any, Dict, List, Mapping, Optional, Union
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


CorrectAnswer = Union[str, List[str]]
GivenAnswer = Union[str, List[str]]
Submission = Dict[str, GivenAnswer]


class QuestionType(str, Enum):
    """Question types understood by the grader."""
    SINGLE_CHOICE = "single-choice"
    MULTI_CHOICE = "multi-choice"
    SHORT_TEXT = "short-text"
    DESCRIPTIVE = "descriptive"

    @classmethod
    def parse(cls, value: Any) -> "QuestionType":
        """Resolve a type name, accepting the short aliases used by question generators."""
        if isinstance(value, QuestionType):
            return value
        name = str(value or "").strip().lower().replace("_", "-")
        resolved = QUESTION_TYPE_ALIASES.get(name)
        if resolved is None:
            raise ValueError(f"Unknown question type: {value!r}")
        return resolved

    @property
    def is_choice(self) -> bool:
        return self in (QuestionType.SINGLE_CHOICE, QuestionType.MULTI_CHOICE)

    @property
    def is_auto_gradable(self) -> bool:
        """Choice types have a deterministic verdict without human judgement."""
        return self.is_choice

    @property
    def expects_sequence(self) -> bool:
        return self is QuestionType.MULTI_CHOICE


QUESTION_TYPE_ALIASES = {
    "single-choice": QuestionType.SINGLE_CHOICE,
    "mcq": QuestionType.SINGLE_CHOICE,
    "single": QuestionType.SINGLE_CHOICE,
    "multi-choice": QuestionType.MULTI_CHOICE,
    "msq": QuestionType.MULTI_CHOICE,
    "multiple-choice": QuestionType.MULTI_CHOICE,
    "short-text": QuestionType.SHORT_TEXT,
    "short": QuestionType.SHORT_TEXT,
    "descriptive": QuestionType.DESCRIPTIVE,
    "scenario": QuestionType.DESCRIPTIVE,
}


class ExamStatus(str, Enum):
    """Exam lifecycle states."""
    GENERATED = "generated"
    SUBMITTED = "submitted"
    GRADED = "graded"
    MANUALLY_GRADED = "manually_graded"
    UNDER_REVIEW = "under_review"

    @property
    def has_submission(self) -> bool:
        return self is not ExamStatus.GENERATED


def is_sequence(value: Any) -> bool:
    """True for list-like answers; strings are scalars."""
    return isinstance(value, (list, tuple, set, frozenset))


def _options(value: Any) -> Any:
    # Non-list values are kept as given so validation can report them
    if value is None:
        return []
    return list(value) if is_sequence(value) else value


@dataclass
class Question:
    """A single exam question."""
    id: str
    text: str
    type: QuestionType
    correct_answer: CorrectAnswer
    options: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], index: int = 0) -> "Question":
        """Build a question from a raw record, filling the id from its position."""
        correct = data.get('correct_answer', data.get('correctAnswer'))
        if is_sequence(correct):
            correct = list(correct)
        return cls(
            id=str(data.get('id') if data.get('id') is not None else index),
            text=data.get('text', data.get('question', '')),
            type=QuestionType.parse(data.get('type')),
            correct_answer=correct,
            options=_options(data.get('options')),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'text': self.text,
            'type': self.type.value,
            'options': list(self.options) if is_sequence(self.options) else self.options,
            'correct_answer': list(self.correct_answer) if is_sequence(self.correct_answer) else self.correct_answer,
        }


@dataclass
class ManualGradeRecord:
    """A reviewer's score for one free-text question."""
    question_id: str
    score: float
    feedback: str
    graded_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            'question_id': self.question_id,
            'score': self.score,
            'feedback': self.feedback,
            'graded_at': self.graded_at.isoformat() if self.graded_at else None,
        }


@dataclass
class ExamInstance:
    """One candidate's exam attempt and everything recorded against it."""
    id: Optional[str]
    candidate_id: str
    questions: List[Question]
    status: ExamStatus = ExamStatus.GENERATED
    submitted_answers: Submission = field(default_factory=dict)
    question_results: List[Optional[bool]] = field(default_factory=list)
    auto_score: Optional[int] = None
    manual_score: Optional[float] = None
    final_score: Optional[float] = None
    percentage: Optional[float] = None
    qualified: Optional[bool] = None
    # Keyed by question id: at most one live record per question
    manual_grades: Dict[str, ManualGradeRecord] = field(default_factory=dict)
    generated_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None
    graded_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    approved: bool = False
    approved_at: Optional[datetime] = None
    visible_at: Optional[datetime] = None

    @property
    def total_questions(self) -> int:
        return len(self.questions)

    @property
    def manual_grading_records(self) -> List[ManualGradeRecord]:
        return list(self.manual_grades.values())

    def find_question(self, question_id: str) -> Optional[Question]:
        for question in self.questions:
            if question.id == str(question_id):
                return question
        return None

    def to_dict(self) -> Dict[str, Any]:
        def _iso(value: Optional[datetime]) -> Optional[str]:
            return value.isoformat() if value else None

        return {
            'id': self.id,
            'candidate_id': self.candidate_id,
            'status': self.status.value,
            'questions': [q.to_dict() for q in self.questions],
            'submitted_answers': dict(self.submitted_answers),
            'question_results': list(self.question_results),
            'auto_score': self.auto_score,
            'manual_score': self.manual_score,
            'final_score': self.final_score,
            'percentage': self.percentage,
            'qualified': self.qualified,
            'manual_grading_records': [r.to_dict() for r in self.manual_grading_records],
            'generated_at': _iso(self.generated_at),
            'submitted_at': _iso(self.submitted_at),
            'graded_at': _iso(self.graded_at),
            'reviewed_at': _iso(self.reviewed_at),
            'approved': self.approved,
            'approved_at': _iso(self.approved_at),
            'visible_at': _iso(self.visible_at),
        }


@dataclass
class ExamResult:
    """Read-only view of a graded exam."""
    exam_id: str
    score: float
    total: int
    percentage: float
    qualified: bool
    auto_score: int
    manual_score: float
    status: ExamStatus
    answers: Submission = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'exam_id': self.exam_id,
            'score': self.score,
            'total': self.total,
            'percentage': self.percentage,
            'qualified': self.qualified,
            'auto_score': self.auto_score,
            'manual_score': self.manual_score,
            'status': self.status.value,
            'answers': dict(self.answers),
        }

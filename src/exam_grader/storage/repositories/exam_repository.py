"""
Exam Repository

SQLAlchemy implementation of the exam store.
"""

from typing import List, Optional
from sqlalchemy import select, update, desc, func
from sqlalchemy.orm import Session

from ...core.exceptions import DatabaseError
from ...exams.store import ExamStore
from ...exams.types import (
    ExamInstance, ExamStatus, ManualGradeRecord, Question, is_sequence
)
from ...utils.logging import get_logger
from ..models import ExamRecord, ManualGradeRow
from ..models.exam import new_exam_id

logger = get_logger(__name__)


class ExamRepository(ExamStore):
    """Repository for exams and their manual grading ledger."""

    def __init__(self, session: Session):
        """Initialize repository with a session."""
        self.session = session

    def create_exam(self, exam: ExamInstance) -> ExamInstance:
        """Save a new exam and return it with its generated id."""
        try:
            record = ExamRecord(
                id=exam.id or new_exam_id(),
                candidate_id=exam.candidate_id,
                status=exam.status.value,
                questions=[q.to_dict() for q in exam.questions],
                submitted_answers={},
                question_results=[],
                generated_at=exam.generated_at,
            )
            self.session.add(record)
            self.session.commit()
            self.session.refresh(record)
            return self._to_domain(record)

        except Exception as e:
            self.session.rollback()
            raise DatabaseError(
                f"Failed to create exam: {str(e)}",
                operation="insert",
                table="exams"
            ) from e

    def find_exam(self, exam_id: str) -> Optional[ExamInstance]:
        """Get exam by ID."""
        try:
            record = self.session.get(ExamRecord, str(exam_id))
            return self._to_domain(record) if record else None

        except Exception as e:
            raise DatabaseError(
                f"Failed to get exam {exam_id}: {str(e)}",
                operation="get",
                table="exams"
            ) from e

    def find_latest_by_candidate(self, candidate_id: str) -> Optional[ExamInstance]:
        """Get the candidate's most recently generated exam."""
        try:
            record = self.session.scalars(
                select(ExamRecord)
                .where(ExamRecord.candidate_id == str(candidate_id))
                .order_by(desc(ExamRecord.generated_at))
                .limit(1)
            ).first()
            return self._to_domain(record) if record else None

        except Exception as e:
            raise DatabaseError(
                f"Failed to get latest exam for candidate {candidate_id}: {str(e)}",
                operation="query",
                table="exams"
            ) from e

    def replace_exam(self, exam: ExamInstance,
                     expected_status: Optional[ExamStatus] = None) -> bool:
        """Update every exam column, guarded by the expected current status."""
        try:
            statement = update(ExamRecord).where(ExamRecord.id == exam.id)
            if expected_status is not None:
                statement = statement.where(ExamRecord.status == expected_status.value)

            result = self.session.execute(
                statement.values(**self._exam_columns(exam)).execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                self.session.rollback()
                logger.debug(f"Exam {exam.id} not updated: status precondition {expected_status} failed")
                return False

            self.session.commit()
            return True

        except Exception as e:
            self.session.rollback()
            raise DatabaseError(
                f"Failed to update exam {exam.id}: {str(e)}",
                operation="update",
                table="exams"
            ) from e

    def save_manual_grade(self, exam: ExamInstance, record: ManualGradeRecord,
                          expected_status: Optional[ExamStatus] = None) -> bool:
        """Upsert a ledger row and store the exam's scores in one transaction."""
        try:
            statement = update(ExamRecord).where(ExamRecord.id == exam.id)
            if expected_status is not None:
                statement = statement.where(ExamRecord.status == expected_status.value)

            result = self.session.execute(
                statement.values(
                    status=exam.status.value,
                    auto_score=exam.auto_score,
                    manual_score=exam.manual_score,
                    final_score=exam.final_score,
                    percentage=exam.percentage,
                    qualified=exam.qualified,
                    reviewed_at=exam.reviewed_at,
                ).execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                self.session.rollback()
                logger.debug(f"Manual grade for exam {exam.id} not saved: "
                             f"status precondition {expected_status} failed")
                return False

            row = self.session.scalars(
                select(ManualGradeRow).where(
                    ManualGradeRow.exam_id == exam.id,
                    ManualGradeRow.question_id == record.question_id,
                )
            ).first()

            if row is None:
                self.session.add(ManualGradeRow(
                    exam_id=exam.id,
                    question_id=record.question_id,
                    score=record.score,
                    feedback=record.feedback,
                    graded_at=record.graded_at,
                ))
            else:
                row.score = record.score
                row.feedback = record.feedback
                row.graded_at = record.graded_at

            self.session.commit()
            return True

        except Exception as e:
            self.session.rollback()
            raise DatabaseError(
                f"Failed to save manual grade for exam {exam.id}: {str(e)}",
                operation="upsert",
                table="manual_grades"
            ) from e

    def list_exams(self, candidate_id: Optional[str] = None,
                   status: Optional[ExamStatus] = None,
                   qualified: Optional[bool] = None,
                   limit: Optional[int] = None,
                   offset: int = 0) -> List[ExamInstance]:
        """List exams, newest first, with optional filters and pagination."""
        try:
            query = select(ExamRecord)

            if candidate_id:
                query = query.where(ExamRecord.candidate_id == str(candidate_id))
            if status is not None:
                query = query.where(ExamRecord.status == ExamStatus(status).value)
            if qualified is not None:
                query = query.where(ExamRecord.qualified == qualified)

            query = query.order_by(desc(ExamRecord.generated_at))
            if offset:
                query = query.offset(offset)
            if limit:
                query = query.limit(limit)

            return [self._to_domain(record) for record in self.session.scalars(query).all()]

        except Exception as e:
            raise DatabaseError(
                f"Failed to list exams: {str(e)}",
                operation="query",
                table="exams"
            ) from e

    def count_exams(self, status: Optional[ExamStatus] = None) -> int:
        """Count exams, optionally by status."""
        query = select(func.count(ExamRecord.id))
        if status is not None:
            query = query.where(ExamRecord.status == ExamStatus(status).value)
        return self.session.scalar(query)

    @staticmethod
    def _exam_columns(exam: ExamInstance) -> dict:
        return {
            'candidate_id': exam.candidate_id,
            'status': exam.status.value,
            'questions': [q.to_dict() for q in exam.questions],
            'submitted_answers': {
                key: list(value) if is_sequence(value) else value
                for key, value in exam.submitted_answers.items()
            },
            'question_results': list(exam.question_results),
            'auto_score': exam.auto_score,
            'manual_score': exam.manual_score,
            'final_score': exam.final_score,
            'percentage': exam.percentage,
            'qualified': exam.qualified,
            'generated_at': exam.generated_at,
            'submitted_at': exam.submitted_at,
            'graded_at': exam.graded_at,
            'reviewed_at': exam.reviewed_at,
            'approved': exam.approved,
            'approved_at': exam.approved_at,
            'visible_at': exam.visible_at,
        }

    @staticmethod
    def _to_domain(record: ExamRecord) -> ExamInstance:
        questions = [Question.from_dict(data, index) for index, data in enumerate(record.questions or [])]
        manual_grades = {
            row.question_id: ManualGradeRecord(
                question_id=row.question_id,
                score=row.score,
                feedback=row.feedback,
                graded_at=row.graded_at,
            )
            for row in record.manual_grades
        }
        return ExamInstance(
            id=record.id,
            candidate_id=record.candidate_id,
            questions=questions,
            status=ExamStatus(record.status),
            submitted_answers=dict(record.submitted_answers or {}),
            question_results=list(record.question_results or []),
            auto_score=record.auto_score,
            manual_score=record.manual_score,
            final_score=record.final_score,
            percentage=record.percentage,
            qualified=record.qualified,
            manual_grades=manual_grades,
            generated_at=record.generated_at,
            submitted_at=record.submitted_at,
            graded_at=record.graded_at,
            reviewed_at=record.reviewed_at,
            approved=bool(record.approved),
            approved_at=record.approved_at,
            visible_at=record.visible_at,
        )

"""
Custom Exception Classes

Application-specific exception classes for the grading engine. Every error
carries a stable ``kind`` so callers can map it without inspecting messages.
"""

from typing import Optional, Any, Dict


class ExamGraderException(Exception):
    """Base exception class for all exam-grader errors."""

    kind = "exam_grader_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Serializable form of the error."""
        return {
            'error': self.kind,
            'message': self.message,
            'details': self.details,
        }


class ConfigurationError(ExamGraderException):
    """Raised when there's an issue with configuration setup or validation."""

    kind = "configuration_error"


class DatabaseError(ExamGraderException):
    """Raised when database operations fail."""

    kind = "database_error"

    def __init__(self, message: str, operation: Optional[str] = None,
                 table: Optional[str] = None, **kwargs):
        super().__init__(message, kwargs)
        self.operation = operation
        self.table = table


class ValidationError(ExamGraderException):
    """Raised when input is malformed or violates a grading rule."""

    kind = "validation_error"

    def __init__(self, message: str, field_name: Optional[str] = None,
                 invalid_value: Optional[Any] = None, **kwargs):
        super().__init__(message, kwargs)
        self.field_name = field_name
        self.invalid_value = invalid_value


class NotFoundError(ExamGraderException):
    """Raised when an exam or question cannot be found."""

    kind = "not_found"

    def __init__(self, message: str, resource: Optional[str] = None,
                 resource_id: Optional[Any] = None, **kwargs):
        super().__init__(message, kwargs)
        self.resource = resource
        self.resource_id = resource_id


class UnknownQuestionError(NotFoundError, ValidationError):
    """Raised when a question id does not exist in the targeted exam."""

    kind = "not_found"

    def __init__(self, message: str, exam_id: Optional[str] = None,
                 question_id: Optional[str] = None):
        ExamGraderException.__init__(self, message, {'exam_id': exam_id})
        self.resource = "question"
        self.resource_id = question_id
        self.field_name = "question_id"
        self.invalid_value = question_id


class ExamStateError(ExamGraderException):
    """Raised when an operation is not legal in the exam's current status."""

    kind = "exam_state_error"

    def __init__(self, message: str, exam_id: Optional[str] = None,
                 status: Optional[str] = None, **kwargs):
        super().__init__(message, kwargs)
        self.exam_id = exam_id
        self.status = status


class AlreadySubmittedError(ExamStateError):
    """Raised when answers are submitted for an exam that already has them."""

    kind = "already_submitted"


class NotSubmittedError(ExamStateError):
    """Raised when grading or review is requested before any submission."""

    kind = "not_submitted"


class NotReadyError(ExamStateError):
    """Raised when a result is requested before it can be shown."""

    kind = "not_ready"


class AttemptNotAllowedError(ExamGraderException):
    """Raised when a candidate is still inside the re-attempt cooldown."""

    kind = "attempt_not_allowed"

    def __init__(self, message: str, candidate_id: Optional[str] = None,
                 next_eligible_at: Optional[Any] = None, **kwargs):
        super().__init__(message, kwargs)
        self.candidate_id = candidate_id
        self.next_eligible_at = next_eligible_at

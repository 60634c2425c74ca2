"""
Storage Models

SQLAlchemy ORM models for the exam store.
"""

from .exam import ExamRecord, ManualGradeRow

__all__ = [
    "ExamRecord",
    "ManualGradeRow",
]

"""
Storage Module

Data persistence and access layer with SQLAlchemy ORM model definitions
and the repository-backed exam store.
"""

from .models import ExamRecord, ManualGradeRow
from .repositories import ExamRepository

__all__ = [
    "ExamRecord",
    "ManualGradeRow",
    "ExamRepository",
]

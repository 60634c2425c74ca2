"""
Storage Repositories

Repository classes implementing the repository pattern for data access.
"""

from .exam_repository import ExamRepository

__all__ = [
    "ExamRepository",
]

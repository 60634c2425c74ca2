"""
Commands Module

Command-line interface commands for the exam grader.
"""

from .database import init as database_init
from .exams import (
    approve, eligibility, export, generate, grade, list_exams, result, review, show, stats, submit
)

__all__ = [
    'database_init', 'generate', 'submit', 'grade', 'result', 'show', 'list_exams',
    'review', 'approve', 'eligibility', 'stats', 'export',
]

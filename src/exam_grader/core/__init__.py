"""
Core Module

Foundational components used across the application including configuration
management, database connections, and custom exceptions.
"""

from .config import get_config, set_config, AppConfig, GradingConfig
from .exceptions import (
    ExamGraderException,
    ConfigurationError,
    DatabaseError,
    ValidationError,
    NotFoundError,
    UnknownQuestionError,
    AlreadySubmittedError,
    NotSubmittedError,
    NotReadyError,
    AttemptNotAllowedError,
)

__all__ = [
    "get_config",
    "set_config",
    "AppConfig",
    "GradingConfig",
    "ExamGraderException",
    "ConfigurationError",
    "DatabaseError",
    "ValidationError",
    "NotFoundError",
    "UnknownQuestionError",
    "AlreadySubmittedError",
    "NotSubmittedError",
    "NotReadyError",
    "AttemptNotAllowedError",
]

"""
Utils Module

Logging configuration and helpers.
"""

from .logging import setup_logging, get_logger, get_exam_logger, PerformanceTimer

__all__ = [
    "setup_logging",
    "get_logger",
    "get_exam_logger",
    "PerformanceTimer",
]

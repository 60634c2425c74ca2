"""
CLI Module

Rich output formatting for the command-line interface.
"""

from .formatting import format_exam_table, format_result_panel, format_error

__all__ = [
    "format_exam_table",
    "format_result_panel",
    "format_error",
]

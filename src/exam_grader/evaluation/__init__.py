"""
Evaluation Module

Answer normalization, type reconciliation, free-text matching, automatic
grading and score aggregation.
"""

from .normalizer import normalize_answer, normalize_selection
from .reconciler import reconcile, Reconciliation
from .matcher import TextAnswerMatcher, MatchResult, MatchType, is_textually_correct
from .grader import AutoGrader, AutoGradeResult, QuestionVerdict, auto_grade
from .aggregator import ScoreAggregator, ScoreBreakdown

__all__ = [
    "normalize_answer",
    "normalize_selection",
    "reconcile",
    "Reconciliation",
    "TextAnswerMatcher",
    "MatchResult",
    "MatchType",
    "is_textually_correct",
    "AutoGrader",
    "AutoGradeResult",
    "QuestionVerdict",
    "auto_grade",
    "ScoreAggregator",
    "ScoreBreakdown",
]

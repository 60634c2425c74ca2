"""
exam-grader

Exam grading and evaluation engine: automatic grading of choice and free-text
answers, manual grading of free-text answers, score aggregation and the exam
lifecycle around them.
"""

__version__ = "1.0.0"

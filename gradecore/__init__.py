"""
Code Grading Core - gradecore Package

This package contains the components for grading candidate submissions:
- models: Data structures for questions, test cases and results
- codec: Decoding and comparison of test-case values
- sandbox: Isolated, time-limited code execution
- grader: Test case execution and aggregation
- scoring: Declarative quiz scoring
"""

from .grader import Grader, grade_submission
from .scoring import apply_passing_score, score_answers

__version__ = "1.0.0"

__all__ = ["Grader", "grade_submission", "score_answers", "apply_passing_score"]

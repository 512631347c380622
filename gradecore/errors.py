"""
Error types raised inside the grading core.

Per-case errors never leave the grader: they are caught and recorded on the
TestResult. Top-level errors are recorded on the SubmissionResult.
"""


class GradingError(Exception):
    """Base class for all grading errors."""


class InvocationError(GradingError):
    """
    Candidate code threw, failed to compile, or its function is missing.

    kind is "runtime_error" or "memory_error"; stdout is whatever the
    candidate printed before failing.
    """

    def __init__(self, message: str, kind: str = "runtime_error", stdout: str = ""):
        self.kind = kind
        self.stdout = stdout
        super().__init__(message)


class TimeLimitExceeded(GradingError):
    """A single invocation ran past its deadline and was killed."""

    def __init__(self, elapsed_ms: int, limit_ms: int):
        self.elapsed_ms = elapsed_ms
        self.limit_ms = limit_ms
        super().__init__(f"Time Limit Exceeded ({elapsed_ms}ms > {limit_ms}ms)")


class UnsupportedLanguageError(GradingError):
    """The requested language cannot be executed by this grader."""


class CatastrophicParseError(GradingError):
    """The submission could not be parsed at all; no case can run."""


class BankError(GradingError):
    """A question bank could not be decrypted or parsed."""

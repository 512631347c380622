"""
Grader module for running test cases and validating candidate submissions.

Provides the Grader class which runs every test case of a question through
the sandbox, compares outputs through the codec and aggregates the results.
"""

import time
from typing import Callable, List, Optional

from . import codec
from .errors import (
    CatastrophicParseError,
    InvocationError,
    TimeLimitExceeded,
    UnsupportedLanguageError,
)
from .messages import MESSAGES
from .models import (
    GraderConfig,
    LANGUAGES,
    Question,
    SUPPORTED_LANGUAGES,
    SubmissionResult,
    TestCase,
    TestResult,
)
from .sandbox import parse_submission, run_function, select_entry_point


SessionLogger = Callable[[str, str], None]


class Grader:
    """Handles test case execution and output validation."""

    def __init__(self, config: Optional[GraderConfig] = None, session_logger: Optional[SessionLogger] = None):
        self.config = config or GraderConfig.default()
        self.session_logger = session_logger
        self._message_fn = None

    # ===== HELPER FUNCTIONS =====

    def set_message_fn(self, message_fn):
        self._message_fn = message_fn

    def _msg(self, key: str, **kwargs) -> str:
        if self._message_fn:
            return self._message_fn(key, **kwargs)
        template = MESSAGES["en"].get(key, key)
        return template.format(**kwargs)

    def _log(self, event: str, details: str = ""):
        if self.session_logger:
            self.session_logger(event, details)

    def _decode_fallback(self, tier: str, text: str):
        self._log("DECODE_FALLBACK", f"Read as {tier}: {text[:80]!r}")

    # ===== TEST EXECUTION =====

    def run_case(
        self,
        question: Question,
        code: str,
        entry_point: str,
        index: int,
        test_case: TestCase
    ) -> TestResult:
        """
        Run one test case and return its TestResult.

        Never raises: timeouts, candidate exceptions and wrong answers are all
        reported on the result.
        """
        args = codec.decode_arguments(test_case.input, on_fallback=self._decode_fallback)
        expected = codec.decode(test_case.expected_output, on_fallback=self._decode_fallback)
        limit_ms = self.config.time_limit_for(question)

        def result(status: str, elapsed_ms: int, actual_output: str = "", error: Optional[str] = None,
                   stdout: str = "") -> TestResult:
            return TestResult(
                test_case_index=index,
                input=test_case.input,
                expected_output=test_case.expected_output,
                actual_output=actual_output,
                passed=status == "passed",
                execution_time_ms=elapsed_ms,
                status=status,
                error=error,
                is_hidden=test_case.is_hidden,
                stdout=stdout
            )

        start_time = time.monotonic()
        try:
            value, stdout = run_function(
                code,
                entry_point,
                args,
                limit_ms / 1000.0,
                self.config.memory_limit_for(question),
                allowed_modules=self.config.allowed_modules,
                max_output_chars=self.config.max_output_chars,
                python_executable=self.config.python_executable
            )
        except TimeLimitExceeded as e:
            elapsed_ms = int((time.monotonic() - start_time) * 1000)
            self._log("CASE_TIMEOUT", f"Question: {question.id}, Case: {index}, {e}")
            return result("timeout", elapsed_ms, error=str(e))
        except InvocationError as e:
            elapsed_ms = int((time.monotonic() - start_time) * 1000)
            return result(e.kind, elapsed_ms, error=str(e), stdout=e.stdout)
        except Exception as e:
            # the sandbox itself broke; still report it against this case
            elapsed_ms = int((time.monotonic() - start_time) * 1000)
            return result("runtime_error", elapsed_ms, error=f"Grader error: {e}")

        elapsed_ms = int((time.monotonic() - start_time) * 1000)
        actual_output = codec.encode(value)
        is_correct = codec.values_equal(value, expected)
        return result("passed" if is_correct else "failed", elapsed_ms, actual_output=actual_output, stdout=stdout)

    def grade_submission(
        self,
        question: Question,
        code: str,
        language: str = "python",
        on_result: Optional[Callable[[TestResult], None]] = None
    ) -> SubmissionResult:
        """
        Run all test cases for a question and return the aggregate result.

        Args:
            question: Question whose test cases are run, hidden ones included
            code: Candidate source text
            language: Submission language
            on_result: Called with each TestResult as soon as it is ready

        Returns:
            SubmissionResult; a top-level error is set instead of raising when
            the language is unsupported or the code cannot be parsed
        """
        start_time = time.monotonic()
        total_tests = len(question.test_cases)
        self._log("GRADING_START", f"Question: {question.id}, Language: {language}, Cases: {total_tests}")

        try:
            if language not in SUPPORTED_LANGUAGES:
                known = "known" if language in LANGUAGES else "unknown"
                raise UnsupportedLanguageError(
                    f"Language '{language}' ({known}) is not supported; supported: {', '.join(SUPPORTED_LANGUAGES)}"
                )
            function_names = parse_submission(code)
        except (UnsupportedLanguageError, CatastrophicParseError) as e:
            self._log("GRADING_ABORTED", f"Question: {question.id}, {e}")
            return SubmissionResult(
                question_id=question.id,
                code=code,
                language=language,
                results=[],
                total_passed=0,
                total_tests=total_tests,
                success=False,
                execution_time_ms=int((time.monotonic() - start_time) * 1000),
                error=str(e)
            )

        entry_point = select_entry_point(question, function_names, self.session_logger)

        results: List[TestResult] = []
        for index, test_case in enumerate(question.test_cases):
            test_result = self.run_case(question, code, entry_point, index, test_case)
            results.append(test_result)
            self._log(
                "CASE_RESULT",
                f"Question: {question.id}, Case: {index}, Status: {test_result.status}, "
                f"Time: {test_result.execution_time_ms}ms"
            )
            if on_result:
                on_result(test_result)

        total_passed = sum(1 for r in results if r.passed)
        elapsed_ms = int((time.monotonic() - start_time) * 1000)
        self._log("GRADING_FINISH", f"Question: {question.id}, Passed: {total_passed}/{len(results)}, Time: {elapsed_ms}ms")

        return SubmissionResult(
            question_id=question.id,
            code=code,
            language=language,
            results=results,
            total_passed=total_passed,
            total_tests=len(results),
            success=total_passed == len(results),
            execution_time_ms=elapsed_ms
        )

    # ===== UTILITY METHODS =====

    def format_test_results(self, result: SubmissionResult, show_details: bool = False) -> str:
        """
        Format a SubmissionResult for terminal display.

        Args:
            result: Result from grade_submission
            show_details: If True, show input, outputs and errors for failed
                visible tests (hidden tests only show their error text)

        Returns:
            Formatted string for terminal display
        """
        if result.could_not_run:
            return self._msg("grader_could_not_run", error=result.error)

        lines = [self._msg("grader_running_tests", total=result.total_tests)]

        for test in result.results:
            num = test.test_case_index + 1
            if test.status == "passed":
                line = self._msg("grader_test_passed", num=num, ms=test.execution_time_ms)
            elif test.status == "failed":
                line = self._msg("grader_test_failed_wrong", num=num)
            elif test.status == "timeout":
                line = self._msg("grader_test_failed_timeout", num=num)
            elif test.status == "runtime_error":
                line = self._msg("grader_test_failed_runtime", num=num)
            elif test.status == "memory_error":
                line = self._msg("grader_test_failed_memory", num=num)
            else:
                line = self._msg("grader_test_failed_generic", num=num, status=test.status)
            if test.is_hidden:
                line += self._msg("grader_hidden_suffix")
            lines.append(line)

            if test.passed or not show_details:
                continue

            if test.error:
                lines.append(self._msg("grader_error_label", text=test.error.strip()[:200]))
            if test.is_hidden:
                continue
            lines.append(self._msg("grader_input_label", text=test.input[:100]))
            if test.status == "failed":
                lines.append(self._msg("grader_student_output", output=test.actual_output[:100]))
                lines.append(self._msg("grader_expected_output", output=test.expected_output[:100]))
            if test.stdout.strip():
                lines.append(self._msg("grader_stdout_label", text=test.stdout.strip()[:200]))

        lines.append("")
        lines.append(self._msg(
            "grader_result_summary",
            passed=result.total_passed,
            total=result.total_tests,
            ms=result.execution_time_ms
        ))
        return "\n".join(lines)


def grade_submission(
    question: Question,
    code: str,
    language: str = "python",
    config: Optional[GraderConfig] = None,
    session_logger: Optional[SessionLogger] = None,
    on_result: Optional[Callable[[TestResult], None]] = None
) -> SubmissionResult:
    """Grade one submission against every test case of a question."""
    grader = Grader(config, session_logger=session_logger)
    return grader.grade_submission(question, code, language, on_result=on_result)

"""
Message templates for grading reports and the command line.
"""

MESSAGES = {
    "en": {
        "grader_running_tests": "Running {total} test case(s)...",
        "grader_test_passed": "  Test {num}: PASSED ({ms} ms)",
        "grader_test_failed_wrong": "  Test {num}: FAILED (wrong answer)",
        "grader_test_failed_timeout": "  Test {num}: FAILED (time limit exceeded)",
        "grader_test_failed_runtime": "  Test {num}: FAILED (runtime error)",
        "grader_test_failed_memory": "  Test {num}: FAILED (memory limit exceeded)",
        "grader_test_failed_generic": "  Test {num}: FAILED ({status})",
        "grader_hidden_suffix": " [hidden]",
        "grader_error_label": "    Error: {text}",
        "grader_input_label": "    Input: {text}",
        "grader_student_output": "    Your output: {output}",
        "grader_expected_output": "    Expected:    {output}",
        "grader_stdout_label": "    Printed: {text}",
        "grader_could_not_run": "Submission could not be run: {error}",
        "grader_result_summary": "Result: {passed}/{total} test(s) passed in {ms} ms",
        "score_summary": "Score: {score}/{total_points} ({percentage}%)",
        "score_passed": "PASSED (passing score {passing_score}%)",
        "score_failed": "NOT PASSED (passing score {passing_score}%)",
    },
}

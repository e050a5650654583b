"""
User-facing text derived from a judge run: feedback lines, improvement
suggestions and the run summary shown as the submission's output.
"""
from dataclasses import dataclass
from typing import List, Optional, Sequence, Union

from .languages import Language
from .result_type import FailureReason, PlagiarismAction
from .results import ExecutionResult, TestCaseResult

COMPILE_FAILURE_FEEDBACK = (
    "Your code failed to compile. Check the error message for details.",
    "Make sure all syntax is correct for the chosen language.",
)

_HASH_MAP_HINTS = {
    Language.JAVASCRIPT: "Consider using hash maps (Objects or Maps) for O(1) lookups instead of nested loops.",
    Language.PYTHON: "Consider using dictionaries for O(1) lookups instead of nested loops.",
    Language.JAVA: "Consider using HashMaps for O(1) lookups instead of nested loops.",
    Language.CPP: "Consider using unordered_map for O(1) lookups instead of nested loops.",
}

_EMPTY_INPUT_MARKERS = ("[]", "{}", "''", '""')
_OFF_BY_ONE_MARKERS = ("off by 1", "index", "boundary")


@dataclass(frozen=True)
class PerformanceCheck:
    passed: bool
    failure: FailureReason = FailureReason.NONE
    reason: Optional[str] = None


def check_performance_limits(execution_time_ms: float, memory_mb: Optional[float],
                             time_limit_ms: float, memory_limit_mb: float) -> PerformanceCheck:
    """Time is checked before memory; the first violated limit is reported."""
    if execution_time_ms > time_limit_ms:
        return PerformanceCheck(
            False, FailureReason.TIME_LIMIT_EXCEEDED,
            f"Time Limit Exceeded: {execution_time_ms:.2f}ms (limit: {time_limit_ms:.2f}ms)",
        )
    if memory_mb is not None and memory_mb > memory_limit_mb:
        return PerformanceCheck(
            False, FailureReason.MEMORY_LIMIT_EXCEEDED,
            f"Memory Limit Exceeded: {memory_mb:.2f}MB (limit: {memory_limit_mb:.2f}MB)",
        )
    return PerformanceCheck(True)


def similarity_warning(score: float) -> str:
    return (f"Warning: Your solution has a high similarity ({round(score * 100)}%) with existing solutions. "
            "Please ensure your work is original.")


def plagiarism_block_message(score: float) -> str:
    return (f"Potential plagiarism detected with {round(score * 100)}% similarity to existing solutions. "
            "Please submit your own work.")


def generate_feedback(results: Sequence[TestCaseResult], passed: int, total: int, is_optimal: bool,
                      expected_time: Optional[str],
                      plagiarism_action: PlagiarismAction = PlagiarismAction.NONE,
                      plagiarism_score: float = 0.0) -> List[str]:
    """
    Build feedback lines. Rules are evaluated in order and every rule that
    applies contributes its line.

    Args:
        results: per-test results, ordered by index
        passed: number of passed tests
        total: number of executed tests
        is_optimal: final optimality verdict of the run
        expected_time: complexity named in optimization hints
        plagiarism_action: screener decision, a warning line is added for WARN
        plagiarism_score: screener score used in the warning

    Returns:
        List of feedback strings
    """
    feedback = []
    expected_time = expected_time or "optimal"

    if total and passed == total:
        feedback.append("Great job! All test cases passed.")
        if is_optimal:
            feedback.append("Your solution has optimal time and space complexity.")
        else:
            feedback.append(
                f"Your solution works correctly, but could be optimized. The expected time complexity is {expected_time}."
            )
    elif passed == 0:
        feedback.append("Your solution didn't pass any test cases. Review the problem statement carefully.")
    else:
        feedback.append(f"Your solution passed {passed} out of {total} test cases.")

    failed = [r for r in results if not r.passed]
    if any(r.failure is FailureReason.RUNTIME_ERROR for r in failed):
        feedback.append(
            "Your code has runtime errors on some test cases. Check for edge cases like empty arrays or null values."
        )
    if any(r.failure.is_limit for r in failed):
        feedback.append(
            f"Your solution exceeds the time limit. Try to optimize your algorithm to meet the expected "
            f"{expected_time} time complexity."
        )

    if plagiarism_action is PlagiarismAction.WARN:
        feedback.append(similarity_warning(plagiarism_score))
    return feedback


def improvement_suggestions(result: ExecutionResult, language: Union[str, Language],
                            expected_time: Optional[str]) -> List[str]:
    suggestions = []

    if result.success and not result.is_optimal:
        if expected_time:
            suggestions.append(
                f"Your solution works correctly, but could be optimized to {expected_time} time complexity."
            )
        try:
            hint = _HASH_MAP_HINTS.get(Language.parse(language))
        except ValueError:
            hint = None
        if hint:
            suggestions.append(hint)

    if not result.success:
        failed = result.failed_results
        if any(marker in r.input for r in failed for marker in _EMPTY_INPUT_MARKERS):
            suggestions.append("Check how your code handles empty arrays or collections.")
        if any(r.diff and any(marker in r.diff.lower() for marker in _OFF_BY_ONE_MARKERS) for r in failed):
            suggestions.append("Check for off-by-one errors in your array indexing or loop conditions.")

    if not suggestions:
        suggestions.append("Keep practicing to improve your problem-solving skills!")
        suggestions.append("Try solving this problem using a different approach or algorithm.")
    return suggestions


def render_output(passed: int, total: int, results: Sequence[TestCaseResult],
                  time_complexity: Optional[str] = None, space_complexity: Optional[str] = None,
                  plagiarism_action: PlagiarismAction = PlagiarismAction.NONE,
                  plagiarism_score: float = 0.0) -> str:
    """Human readable run summary. Hidden test cases never show their data."""
    lines = [f"Passed {passed}/{total} test cases"]

    failed = [r for r in results if not r.passed]
    if failed:
        lines.append("")
        lines.append("Test case failures:")
        for r in failed:
            lines.append("")
            lines.append(f"Test Case {r.index + 1}:")
            if r.is_hidden:
                lines.append("(hidden test case)")
                if r.error_message:
                    lines.append(f"Error: {r.error_message}")
                continue
            lines.append(f"Input: {r.input}")
            lines.append(f"Expected: {r.expected_output}")
            lines.append(f"Actual: {r.actual_output}")
            if r.error_message:
                lines.append(f"Error: {r.error_message}")
            if r.diff:
                lines.append(f"Difference: {r.diff}")

    if time_complexity:
        lines.append("")
        lines.append(f"Time Complexity: {time_complexity}")
    if space_complexity:
        lines.append(f"Space Complexity: {space_complexity}")
    if plagiarism_action is PlagiarismAction.WARN:
        lines.append("")
        lines.append(similarity_warning(plagiarism_score))
    return "\n".join(lines)

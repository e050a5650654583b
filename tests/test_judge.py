import shutil
import sys
import time

import pytest
from conftest import TWO_SUM_HASH, TWO_SUM_NESTED, FakeExecutor, FixedCorpus

from practice_judge import (
    ExecutionOutput,
    DirectoryProblemStore,
    ExecutorError,
    InMemoryProblemStore,
    Judge,
    JudgeAbortError,
    Language,
    NoTestCasesError,
    Problem,
    ProblemNotFoundError,
    ProblemStoreError,
    SubprocessExecutor,
    TestCase,
)
from practice_judge.result_type import FailureReason, PlagiarismAction, SubmissionStatus
from practice_judge.stores import ProblemStore

JAVA_NO_MAIN = "public class Main {\n    int x = 1;\n}\n"


def test_all_tests_pass_with_optimal_code(make_judge, correct_answers):
    result = make_judge(FakeExecutor(correct_answers)).judge(TWO_SUM_HASH, "python", "1")

    assert result.status is SubmissionStatus.ACCEPTED
    assert result.success
    assert (result.tests_passed, result.total_tests) == (3, 3)
    assert result.time_complexity == "O(n)"
    assert result.is_optimal
    assert result.feedback == (
        "Great job! All test cases passed.",
        "Your solution has optimal time and space complexity.",
    )
    assert result.output.startswith("Passed 3/3 test cases")


def test_nested_loops_on_pairing_problem_is_not_optimal(make_judge, correct_answers):
    result = make_judge(FakeExecutor(correct_answers)).judge(TWO_SUM_NESTED, "python", "1")

    assert result.status is SubmissionStatus.ACCEPTED
    assert result.time_complexity == "O(n²)"
    assert not result.is_optimal
    assert ("Your solution works correctly, but could be optimized. "
            "The expected time complexity is O(n).") in result.feedback


def test_compilation_error_short_circuits(make_judge):
    executor = FakeExecutor(default="[0,1]")
    corpus = FixedCorpus(0.99)
    result = make_judge(executor, corpus).judge(JAVA_NO_MAIN, "java", "1")

    assert result.status is SubmissionStatus.COMPILATION_ERROR
    assert result.compilation_error
    assert result.total_tests == 0
    assert result.tests_passed == 0
    assert executor.calls == []
    assert result.time_complexity is None
    assert result.plagiarism_score is None
    assert "public static void main" in result.error_message
    assert result.feedback[0] == "Your code failed to compile. Check the error message for details."


def test_unsupported_language_is_a_compilation_error(make_judge):
    executor = FakeExecutor()
    result = make_judge(executor).judge("print 1", "cobol", "1")
    assert result.status is SubmissionStatus.COMPILATION_ERROR
    assert result.error_message == "Unsupported language: cobol"
    assert executor.calls == []


def test_wrong_answer_partial(make_judge, correct_answers):
    answers = dict(correct_answers, **{"[3,2,4]\n6": "[0,2]"})
    result = make_judge(FakeExecutor(answers)).judge(TWO_SUM_HASH, "python", "1")

    assert result.status is SubmissionStatus.WRONG_ANSWER
    assert result.tests_passed == 2
    failed = result.test_case_results[1]
    assert failed.failure is FailureReason.WRONG_ANSWER
    assert failed.diff.startswith("Index 0 differs: expected 1, actual 0")
    assert result.feedback == ("Your solution passed 2 out of 3 test cases.",)
    assert not result.is_optimal


def test_zero_passed_feedback(make_judge):
    result = make_judge(FakeExecutor(default="[5,6]")).judge(TWO_SUM_HASH, "python", "1")
    assert result.tests_passed == 0
    assert result.feedback[0] == "Your solution didn't pass any test cases. Review the problem statement carefully."


def test_runtime_error_outranks_time_limit(make_judge, correct_answers):
    answers = dict(correct_answers)
    answers["[3,2,4]\n6"] = ExecutionOutput(error="IndexError: list index out of range")
    answers["[3,3]\n6"] = ExecutionOutput(output="[0,1]", timed_out=True)
    result = make_judge(FakeExecutor(answers)).judge(TWO_SUM_HASH, "python", "1")

    assert result.status is SubmissionStatus.RUNTIME_ERROR
    assert result.error_message == "IndexError: list index out of range"
    assert result.test_case_results[1].failure is FailureReason.RUNTIME_ERROR
    assert result.test_case_results[2].failure is FailureReason.TIME_LIMIT_EXCEEDED
    assert ("Your code has runtime errors on some test cases. "
            "Check for edge cases like empty arrays or null values.") in result.feedback
    assert ("Your solution exceeds the time limit. Try to optimize your algorithm "
            "to meet the expected O(n) time complexity.") in result.feedback


def test_time_limit_exceeded_does_not_abort_siblings(correct_answers):
    problem = Problem(
        id="slow", problem_type="two-sum", time_limit_ms=100,
        test_cases=(TestCase("[2,7,11,15]\n9", "[0,1]"), TestCase("[3,2,4]\n6", "[1,2]")),
    )
    executor = FakeExecutor(correct_answers, delays={"[2,7,11,15]\n9": 1.0})
    judge = Judge(InMemoryProblemStore([problem]), executor)
    result = judge.judge(TWO_SUM_HASH, "python", "slow")

    first, second = result.test_case_results
    assert first.failure is FailureReason.TIME_LIMIT_EXCEEDED
    assert not first.passed
    assert "Time Limit Exceeded" in first.error_message
    assert second.passed
    assert result.status is SubmissionStatus.TIME_LIMIT_EXCEEDED


def test_response_after_limit_but_within_grace_is_time_limit(correct_answers):
    problem = Problem(id="p", problem_type="two-sum", time_limit_ms=200,
                      test_cases=(TestCase("[2,7,11,15]\n9", "[0,1]"),))
    executor = FakeExecutor(correct_answers, delays={"[2,7,11,15]\n9": 0.25})
    judge = Judge(InMemoryProblemStore([problem]), executor)
    judge.config.time_limit_grace = 2.0
    result = judge.judge(TWO_SUM_HASH, "python", "p")

    only = result.test_case_results[0]
    assert only.failure is FailureReason.TIME_LIMIT_EXCEEDED
    assert only.actual_output == "[1, 0]"
    assert only.error_message.startswith("Time Limit Exceeded:")


def test_memory_limit_is_a_limit_failure(make_judge, correct_answers):
    answers = dict(correct_answers)
    answers["[3,3]\n6"] = ExecutionOutput(output="[0,1]", memory_mb=512.0)
    result = make_judge(FakeExecutor(answers)).judge(TWO_SUM_HASH, "python", "1")

    assert result.test_case_results[2].failure is FailureReason.MEMORY_LIMIT_EXCEEDED
    assert result.status is SubmissionStatus.TIME_LIMIT_EXCEEDED
    assert result.memory_mb == 512.0


def test_results_are_ordered_by_index_under_out_of_order_completion(make_judge, correct_answers):
    delays = {"[2,7,11,15]\n9": 0.3, "[3,2,4]\n6": 0.15}
    result = make_judge(FakeExecutor(correct_answers, delays=delays)).judge(TWO_SUM_HASH, "python", "1")

    assert [r.index for r in result.test_case_results] == [0, 1, 2]
    assert [r.input for r in result.test_case_results] == ["[2,7,11,15]\n9", "[3,2,4]\n6", "[3,3]\n6"]
    assert result.test_case_results[0].is_sample
    assert result.test_case_results[1].is_hidden


def test_missing_problem_aborts(make_judge):
    with pytest.raises(ProblemNotFoundError) as info:
        make_judge(FakeExecutor()).judge("print(1)", "python", "404")
    assert isinstance(info.value, JudgeAbortError)
    assert str(info.value).startswith("Could not judge this submission, please try again")


def test_problem_without_tests_aborts():
    judge = Judge(InMemoryProblemStore([Problem(id="empty")]), FakeExecutor())
    with pytest.raises(NoTestCasesError):
        judge.judge("print(1)", "python", "empty")



class UnreachableProblemStore(ProblemStore):
    def get_problem(self, problem_id):
        raise ConnectionError("database unreachable")


class SlowBuildExecutor(FakeExecutor):
    def __init__(self, answers, build_seconds=0.0, build_error=None, build_exception=None):
        super().__init__(answers)
        self.build_seconds = build_seconds
        self.build_error = build_error
        self.build_exception = build_exception
        self.builds = []

    def prepare(self, code, language):
        self.builds.append(language)
        if self.build_exception is not None:
            raise self.build_exception
        time.sleep(self.build_seconds)
        return self.build_error


def test_problem_store_failure_aborts():
    judge = Judge(UnreachableProblemStore(), FakeExecutor())
    with pytest.raises(ProblemStoreError, match="database unreachable") as info:
        judge.judge("print(1)", "python", "1")
    assert isinstance(info.value, JudgeAbortError)
    assert str(info.value).startswith("Could not judge this submission, please try again")


def test_unreadable_problem_file_aborts(tmp_path):
    (tmp_path / "broken").mkdir()
    (tmp_path / "broken" / "problem.json").write_text("{not json")
    judge = Judge(DirectoryProblemStore(str(tmp_path)), FakeExecutor())
    with pytest.raises(ProblemStoreError):
        judge.judge("print(1)", "python", "broken")


def test_build_time_is_not_charged_to_test_cases(make_judge, correct_answers):
    executor = SlowBuildExecutor(correct_answers, build_seconds=1.3)
    result = make_judge(executor).judge(TWO_SUM_HASH, "python", "1")

    assert result.status is SubmissionStatus.ACCEPTED
    assert executor.builds == [Language.PYTHON]
    assert all(r.execution_time_ms < 1000 for r in result.test_case_results)


def test_build_failure_is_a_compilation_error(make_judge, correct_answers):
    executor = SlowBuildExecutor(correct_answers, build_error="solution.cpp:3: error: expected ';'")
    result = make_judge(executor).judge(TWO_SUM_HASH, "python", "1")

    assert result.status is SubmissionStatus.COMPILATION_ERROR
    assert result.total_tests == 0
    assert result.output == "Compilation Error: solution.cpp:3: error: expected ';'"
    assert executor.calls == []


def test_build_exception_aborts(make_judge, correct_answers):
    executor = SlowBuildExecutor(correct_answers, build_exception=OSError("disk full"))
    with pytest.raises(ExecutorError, match="disk full"):
        make_judge(executor).judge(TWO_SUM_HASH, "python", "1")

def test_executor_exception_aborts(make_judge, correct_answers):
    answers = dict(correct_answers, **{"[3,3]\n6": RuntimeError("sandbox down")})
    with pytest.raises(ExecutorError, match="sandbox down"):
        make_judge(FakeExecutor(answers)).judge(TWO_SUM_HASH, "python", "1")


def test_plagiarism_block(make_judge, correct_answers):
    result = make_judge(FakeExecutor(correct_answers), FixedCorpus(0.85)).judge(TWO_SUM_HASH, "python", "1")

    assert result.status is SubmissionStatus.PLAGIARISM_BLOCKED
    assert result.potential_plagiarism
    assert result.tests_passed == 3
    assert "85% similarity" in result.error_message


def test_plagiarism_warning_is_surfaced_in_feedback(make_judge, correct_answers):
    result = make_judge(FakeExecutor(correct_answers), FixedCorpus(0.6)).judge(TWO_SUM_HASH, "python", "1")

    assert result.status is SubmissionStatus.ACCEPTED
    assert result.plagiarism_action is PlagiarismAction.WARN
    assert result.feedback[-1] == ("Warning: Your solution has a high similarity (60%) with existing solutions. "
                                   "Please ensure your work is original.")


def test_source_is_sanitized_before_execution(make_judge, correct_answers):
    executor = FakeExecutor(correct_answers)
    make_judge(executor).judge("import os\n" + TWO_SUM_HASH, "python", "1")
    assert all(call[0].startswith("# import os") for call in executor.calls)
    assert {call[3] for call in executor.calls} == {"two-sum"}

    executor = FakeExecutor(correct_answers)
    make_judge(executor, sanitize_source=False).judge("import os\n" + TWO_SUM_HASH, "python", "1")
    assert all(call[0].startswith("import os") for call in executor.calls)


def test_aggregate_invariants(make_judge, correct_answers):
    result = make_judge(FakeExecutor(correct_answers)).judge(TWO_SUM_HASH, "python", "1")
    assert result.tests_passed <= result.total_tests
    assert result.execution_time_ms == max(r.execution_time_ms for r in result.test_case_results)


A_PLUS_B_CPP = """#include <iostream>
int main() {
    long long a, b;
    std::cin >> a >> b;
    std::cout << a + b << std::endl;
    return 0;
}
"""


@pytest.mark.skipif(sys.platform == "win32" or shutil.which("g++") is None, reason="needs g++ on a POSIX system")
def test_compiled_solution_through_subprocess_executor():
    problem = Problem(
        id="a-plus-b",
        time_limit_ms=1000,
        test_cases=tuple(TestCase(f"{a} {b}\n", f"{a + b}\n") for a, b in [(1, 2), (40, 2), (-5, 5)]),
    )
    with SubprocessExecutor() as executor:
        result = Judge(InMemoryProblemStore([problem]), executor).judge(A_PLUS_B_CPP, "cpp", "a-plus-b")

    assert result.status is SubmissionStatus.ACCEPTED
    assert result.tests_passed == 3
    assert all(r.execution_time_ms < 1000 for r in result.test_case_results)


@pytest.mark.skipif(sys.platform == "win32" or shutil.which("g++") is None, reason="needs g++ on a POSIX system")
def test_compiler_diagnostics_become_a_compilation_error():
    problem = Problem(id="a-plus-b", test_cases=(TestCase("1 2\n", "3\n"),))
    broken = A_PLUS_B_CPP.replace("a + b", "a + undeclared_name")
    with SubprocessExecutor() as executor:
        result = Judge(InMemoryProblemStore([problem]), executor).judge(broken, "cpp", "a-plus-b")

    assert result.status is SubmissionStatus.COMPILATION_ERROR
    assert "undeclared_name" in result.error_message

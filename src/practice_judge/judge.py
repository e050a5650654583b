"""
The test harness: one judge run of a submission against a problem.

A run moves through Received -> Checking -> (CompileFailed | Running) ->
Scored. Persisting the verdict is left to ``submission.Submitter``.
"""
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from .comparator import compare
from .complexity import REFERENCE_TIME_COMPLEXITY, classify
from .config import JudgeConfig
from .errors import ExecutorError, NoTestCasesError, ProblemNotFoundError, ProblemStoreError
from .executors import ExecutionOutput, Executor
from .feedback import (
    COMPILE_FAILURE_FEEDBACK,
    check_performance_limits,
    generate_feedback,
    plagiarism_block_message,
    render_output,
)
from .languages import Language, get_language_spec
from .normalizer import normalize
from .plagiarism import PlagiarismScreener
from .problem import Problem, TestCase
from .result_type import FailureReason, SubmissionStatus
from .results import ExecutionResult, TestCaseResult, determine_status
from .static_checker import StaticChecker
from .stores import ProblemStore

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class _RunContext:
    """Everything a single test case needs; shared read-only between workers."""
    code: str
    language: Language
    problem: Problem
    time_limit_ms: int
    memory_limit_mb: int


class Judge:
    """
    Judge submissions against problems from a ``ProblemStore``.

    The judge holds no per-run state, so one instance can serve concurrent
    runs from different threads.
    """

    def __init__(self, problem_store: ProblemStore, executor: Executor,
                 screener: Optional[PlagiarismScreener] = None,
                 config: Optional[JudgeConfig] = None,
                 logger: logging.Logger = None):
        """
        Args:
            problem_store: source of problems and their ordered test cases
            executor: runs the submitted code on one input
            screener: plagiarism screener, built from ``config`` thresholds if omitted
            config: judge configuration, defaults if omitted
            logger: logger for run progress, the module logger if omitted
        """
        self.problem_store = problem_store
        self.executor = executor
        self.config = config or JudgeConfig()
        self.screener = screener or PlagiarismScreener(
            block_threshold=self.config.plagiarism_block_threshold,
            warn_threshold=self.config.plagiarism_warn_threshold,
        )
        self.logger = logger or LOGGER
        self.checker = StaticChecker(self.config.compile_latency_ms, self.logger)

    def judge(self, code: str, language: Union[str, Language], problem_id: Any,
              user_id: Optional[str] = None) -> ExecutionResult:
        """
        Judge ``code`` against every test case of ``problem_id``.

        Args:
            code: submitted source
            language: language tag or ``Language``
            problem_id: id looked up in the problem store
            user_id: submitting user, excluded from the plagiarism corpus lookup

        Returns:
            ExecutionResult carrying exactly one ``SubmissionStatus``

        Raises:
            ProblemNotFoundError: the problem does not exist
            ProblemStoreError: the problem store failed
            NoTestCasesError: the problem has no test cases
            ExecutorError: the executor failed on a test case
        """
        code = code or ""
        self.logger.info("Judging problem %s (%s)", problem_id, language)

        check = self.checker.check(code, language)
        if not check.success:
            self.logger.info("Compilation failed for problem %s", problem_id)
            return self._compilation_error(check.error)
        language = Language.parse(language)

        try:
            problem = self.problem_store.get_problem(problem_id)
            test_cases = problem.get_test_cases() if problem is not None else []
        except Exception as exc:  # pylint: disable=broad-except
            self.logger.error("Problem store failed for problem %s: %s", problem_id, exc)
            raise ProblemStoreError(f"could not load problem {problem_id!r}: {exc}") from exc
        if problem is None:
            raise ProblemNotFoundError(problem_id)
        if not test_cases:
            raise NoTestCasesError(problem_id)

        context = _RunContext(
            code=self._prepare_source(code, language),
            language=language,
            problem=problem,
            time_limit_ms=problem.get_time_limit() or self.config.default_time_limit_ms,
            memory_limit_mb=problem.get_memory_limit() or self.config.default_memory_limit_mb,
        )

        # compile once, outside the per-test time limit
        try:
            build_error = self.executor.prepare(context.code, language)
        except Exception as exc:  # pylint: disable=broad-except
            self.logger.error("Executor failed to build problem %s submission: %s", problem_id, exc)
            raise ExecutorError(f"executor failed to build the submission: {exc}") from exc
        if build_error:
            self.logger.info("Build failed for problem %s", problem_id)
            return self._compilation_error(build_error)

        results = self.run_test_cases(context, test_cases)
        return self._score(code, language, problem, context, results, user_id)

    @staticmethod
    def _compilation_error(error: str) -> ExecutionResult:
        return ExecutionResult(
            status=SubmissionStatus.COMPILATION_ERROR,
            output=f"Compilation Error: {error}",
            compilation_error=True,
            error_message=error,
            feedback=COMPILE_FAILURE_FEEDBACK,
        )

    def _prepare_source(self, code: str, language: Language) -> str:
        if not self.config.sanitize_source:
            return code
        return get_language_spec(language).sanitize(code)

    def run_test_cases(self, context: _RunContext, test_cases: List[TestCase]) -> List[TestCaseResult]:
        """Run all test cases in parallel; the returned list is ordered by test index."""
        max_workers = min(self.config.max_workers, len(test_cases))
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            results = list(pool.map(
                lambda item: self.run_test_case(context, item[0], item[1]),
                enumerate(test_cases),
            ))
        return sorted(results, key=lambda r: r.index)

    def _call_executor(self, context: _RunContext, test_case: TestCase) -> Dict[str, Any]:
        """
        Run the executor call on its own thread and wait at most the hard bound.

        The returned dict holds ``output`` or ``exception`` once the call has
        finished; it is empty when the wait bound elapsed first. A call that
        outlives the bound keeps running in the background but is no longer
        waited on.
        """
        outcome: Dict[str, Any] = {}

        def call():
            try:
                outcome["output"] = self.executor.execute(
                    context.code, context.language, test_case.input, context.problem.problem_type
                )
            except Exception as exc:  # pylint: disable=broad-except
                outcome["exception"] = exc

        thread = threading.Thread(target=call, daemon=True)
        thread.start()
        thread.join(context.time_limit_ms * self.config.time_limit_grace / 1000.0)
        return outcome

    def run_test_case(self, context: _RunContext, index: int, test_case: TestCase) -> TestCaseResult:
        start = time.perf_counter()
        outcome = self._call_executor(context, test_case)
        elapsed_ms = (time.perf_counter() - start) * 1000

        def result(passed=False, actual="", failure=FailureReason.NONE, error=None, diff=None, memory=None):
            return TestCaseResult(
                index=index,
                input=test_case.input,
                expected_output=test_case.expected_output,
                actual_output=actual,
                passed=passed,
                execution_time_ms=elapsed_ms,
                memory_mb=memory,
                failure=failure,
                error_message=error,
                diff=diff,
                is_sample=test_case.is_sample,
                is_hidden=test_case.is_hidden,
            )

        if "exception" in outcome:
            exc = outcome["exception"]
            self.logger.error("Executor failed on test case %d: %s", index, exc)
            raise ExecutorError(f"executor failed on test case {index + 1}: {exc}") from exc

        if "output" not in outcome:
            self.logger.debug("Test case %d exceeded the wait bound after %.0fms", index, elapsed_ms)
            return result(
                failure=FailureReason.TIME_LIMIT_EXCEEDED,
                error=f"Time Limit Exceeded: exceeded {context.time_limit_ms}ms",
            )

        output: ExecutionOutput = outcome["output"]
        actual = (output.output or "").strip()
        if output.timed_out:
            return result(actual=actual, failure=FailureReason.TIME_LIMIT_EXCEEDED,
                          error=output.error or "Time Limit Exceeded", memory=output.memory_mb)

        performance = check_performance_limits(
            elapsed_ms, output.memory_mb, context.time_limit_ms, context.memory_limit_mb
        )
        if not performance.passed:
            return result(actual=actual, failure=performance.failure, error=performance.reason,
                          memory=output.memory_mb)

        if output.error:
            return result(actual=actual, failure=FailureReason.RUNTIME_ERROR, error=output.error,
                          memory=output.memory_mb)

        problem_type = context.problem.problem_type
        try:
            comparison = compare(
                normalize(test_case.expected_output, problem_type),
                normalize(actual, problem_type),
                problem_type,
            )
        except Exception as exc:  # pylint: disable=broad-except
            self.logger.warning("Comparison failed on test case %d, marking it wrong: %s", index, exc)
            return result(actual=actual, failure=FailureReason.WRONG_ANSWER, memory=output.memory_mb)

        return result(
            passed=comparison.passed,
            actual=actual,
            failure=FailureReason.NONE if comparison.passed else FailureReason.WRONG_ANSWER,
            diff=comparison.diff,
            memory=output.memory_mb,
        )

    def _score(self, code: str, language: Language, problem: Problem, context: _RunContext,
               results: List[TestCaseResult], user_id: Optional[str]) -> ExecutionResult:
        passed = sum(1 for r in results if r.passed)
        total = len(results)

        estimate = classify(code, language, problem.problem_type,
                            problem.time_complexity, problem.space_complexity)
        screen = self.screener.screen(code, language, problem.id, user_id)

        optimal_bound_ms = context.time_limit_ms * self.config.optimal_time_fraction
        is_optimal = (
            passed == total
            and estimate.is_optimal
            and all(r.execution_time_ms < optimal_bound_ms for r in results)
        )
        expected_time = problem.time_complexity or REFERENCE_TIME_COMPLEXITY.get(problem.shape)

        status = determine_status(False, screen.action, results)
        feedback = generate_feedback(results, passed, total, is_optimal, expected_time,
                                     screen.action, screen.score)
        error_message = None
        if status is SubmissionStatus.PLAGIARISM_BLOCKED:
            error_message = plagiarism_block_message(screen.score)
        elif status is SubmissionStatus.RUNTIME_ERROR:
            error_message = next(r.error_message for r in results if r.failure is FailureReason.RUNTIME_ERROR)

        self.logger.info("Problem %s: %s (%d/%d passed)", problem.id, status.name, passed, total)
        return ExecutionResult(
            status=status,
            tests_passed=passed,
            total_tests=total,
            test_case_results=tuple(results),
            output=render_output(passed, total, results, estimate.time_complexity,
                                 estimate.space_complexity, screen.action, screen.score),
            execution_time_ms=max((r.execution_time_ms for r in results), default=0.0),
            memory_mb=max((r.memory_mb or 0.0 for r in results), default=0.0),
            error_message=error_message,
            time_complexity=estimate.time_complexity,
            space_complexity=estimate.space_complexity,
            is_optimal=is_optimal,
            plagiarism_score=screen.score,
            plagiarism_action=screen.action,
            similar_submission=screen.similar_submission,
            feedback=tuple(feedback),
        )

"""
Submission facade: judge, persist, award points, then bookkeeping.

Statistics, leaderboard ranks and the similarity corpus are secondary
effects. Each one runs through ``_secondary`` which logs a failure and
reports it in the outcome instead of raising.
"""
import logging
from typing import Any, Callable, Optional, Union

from .config import JudgeConfig
from .errors import JudgeAbortError
from .feedback import improvement_suggestions, plagiarism_block_message
from .judge import Judge
from .languages import Language
from .problem import Difficulty
from .result_type import SubmissionStatus
from .results import SecondaryEffectResult, Submission, SubmissionOutcome
from .stores import (
    InMemoryStatisticsStore,
    InMemorySubmissionStore,
    Solution,
    StatisticsStore,
    SubmissionStore,
    UserStatistics,
    update_rankings,
)

LOGGER = logging.getLogger(__name__)


class Submitter:
    def __init__(self, judge: Judge,
                 submission_store: Optional[SubmissionStore] = None,
                 statistics_store: Optional[StatisticsStore] = None,
                 config: Optional[JudgeConfig] = None,
                 logger: logging.Logger = None):
        self.judge = judge
        self.submission_store = submission_store or InMemorySubmissionStore()
        self.statistics_store = statistics_store or InMemoryStatisticsStore()
        self.config = config or judge.config
        self.logger = logger or LOGGER

    def submit(self, user_id: str, problem_id: Any, code: str,
               language: Union[str, Language]) -> SubmissionOutcome:
        """
        Judge a submission and record the verdict.

        Args:
            user_id: submitting user
            problem_id: problem being solved
            code: submitted source
            language: language tag or ``Language``

        Returns:
            SubmissionOutcome. ``success`` is False for compilation errors,
            plagiarism blocks and runs that could not be judged; in the last
            case nothing is persisted.
        """
        language_tag = language.value if isinstance(language, Language) else str(language)
        try:
            result = self.judge.judge(code, language, problem_id, user_id=user_id)
        except JudgeAbortError as exc:
            self.logger.error("Could not judge submission by %s for problem %s: %s", user_id, problem_id, exc)
            return SubmissionOutcome(success=False, message=str(exc))

        submission = self.submission_store.add_submission(
            Submission.from_result(user_id, problem_id, code, language_tag, result)
        )
        status = submission.status

        if status is SubmissionStatus.COMPILATION_ERROR:
            return SubmissionOutcome(
                success=False,
                message=f"Compilation Error: {result.error_message}",
                submission=submission,
                execution_result=result,
                side_effects=self._bookkeeping(user_id, problem_id, status, 0, False),
            )
        if status is SubmissionStatus.PLAGIARISM_BLOCKED:
            self.logger.warning("Blocked submission by %s for problem %s (similarity %.2f)",
                                user_id, problem_id, result.plagiarism_score)
            return SubmissionOutcome(
                success=False,
                message=plagiarism_block_message(result.plagiarism_score or 0.0),
                submission=submission,
                execution_result=result,
                side_effects=self._bookkeeping(user_id, problem_id, status, 0, False),
            )

        points = 0
        first_solve = False
        side_effects = []
        if status is SubmissionStatus.ACCEPTED:
            points = self.config.accepted_points
            first_solve = not self.submission_store.has_solution(user_id, problem_id)
            self.submission_store.add_solution(Solution(
                user_id=user_id,
                problem_id=problem_id,
                code=code,
                language=language_tag,
                execution_time_ms=result.execution_time_ms,
                memory_mb=result.memory_mb,
                points_earned=points,
                is_optimal=result.is_optimal,
            ))
            side_effects.append(self._secondary(
                "similarity_corpus",
                lambda: self.judge.screener.register(code, language, problem_id, user_id, submission),
            ))

        side_effects.extend(self._bookkeeping(user_id, problem_id, status, points, first_solve))
        problem = self._find_problem(problem_id)
        expected_time = problem.time_complexity if problem else None

        self.logger.info("Submission by %s for problem %s: %s", user_id, problem_id, status.name)
        return SubmissionOutcome(
            success=True,
            submission=submission,
            execution_result=result,
            points_earned=points,
            improvement_suggestions=improvement_suggestions(result, language, expected_time),
            side_effects=side_effects,
        )

    def _bookkeeping(self, user_id, problem_id, status, points, first_solve):
        return [
            self._secondary(
                "user_statistics",
                lambda: self._update_statistics(user_id, problem_id, status, points, first_solve),
            ),
            self._secondary("leaderboard", lambda: update_rankings(self.statistics_store)),
        ]

    def _find_problem(self, problem_id):
        """Problem metadata for suggestions; a store failure here only costs the hint."""
        try:
            return self.judge.problem_store.get_problem(problem_id)
        except Exception as exc:  # pylint: disable=broad-except
            self.logger.warning("Could not reload problem %s after judging: %s", problem_id, exc)
            return None

    def _update_statistics(self, user_id: str, problem_id: Any, status: SubmissionStatus,
                           points: int, first_solve: bool) -> None:
        problem = self.judge.problem_store.get_problem(problem_id)
        stats = self.statistics_store.get(user_id) or UserStatistics(user_id)
        difficulty = problem.difficulty if problem else Difficulty.EASY
        stats.apply(status, difficulty, points, first_solve)
        self.statistics_store.save(stats)

    def _secondary(self, name: str, effect: Callable[[], Any]) -> SecondaryEffectResult:
        # failures here never fail the submission
        try:
            effect()
        except Exception as exc:  # pylint: disable=broad-except
            self.logger.error("Error updating %s: %s", name, exc)
            return SecondaryEffectResult(name, False, str(exc))
        return SecondaryEffectResult(name, True)

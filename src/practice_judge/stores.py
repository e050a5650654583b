"""
Persistence collaborators and their reference implementations.

The judging core only talks to the abstract stores below. The in-memory
variants back the tests and the CLI; ``DirectoryProblemStore`` reads the
on-disk problem layout and ``JsonSubmissionStore`` keeps submissions in a
JSON file.
"""
import json
import logging
import os
import threading
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Union

from .problem import Difficulty, Problem
from .result_type import SubmissionStatus
from .results import Submission

LOGGER = logging.getLogger(__name__)


class ProblemStore(ABC):
    @abstractmethod
    def get_problem(self, problem_id: Any) -> Optional[Problem]:
        """Return the problem with its ordered test cases, or None."""


class InMemoryProblemStore(ProblemStore):
    def __init__(self, problems=()):
        self._problems: Dict[str, Problem] = {str(p.id): p for p in problems}

    def add(self, problem: Problem) -> None:
        self._problems[str(problem.id)] = problem

    def get_problem(self, problem_id):
        return self._problems.get(str(problem_id))


class DirectoryProblemStore(ProblemStore):
    """Problems laid out as ``<root>/<problem_id>/problem.json`` (+ ``tests/``)."""

    def __init__(self, root: str):
        self.root = root
        self._cache: Dict[str, Problem] = {}
        self._lock = threading.Lock()

    def get_problem(self, problem_id):
        key = str(problem_id)
        with self._lock:
            if key in self._cache:
                return self._cache[key]
        problem_dir = os.path.join(self.root, key)
        if not os.path.isfile(os.path.join(problem_dir, "problem.json")):
            LOGGER.debug("No problem.json under %s", problem_dir)
            return None
        problem = Problem.from_directory(problem_dir)
        with self._lock:
            self._cache[key] = problem
        return problem


@dataclass(frozen=True)
class Solution:
    """An accepted submission, kept as the user's solution to the problem."""
    user_id: str
    problem_id: Any
    code: str
    language: str
    execution_time_ms: float
    memory_mb: float
    points_earned: int
    is_optimal: bool
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat()
        return data


class SubmissionStore(ABC):
    @abstractmethod
    def add_submission(self, submission: Submission) -> Submission:
        pass

    @abstractmethod
    def add_solution(self, solution: Solution) -> Solution:
        pass

    @abstractmethod
    def has_solution(self, user_id: str, problem_id: Any) -> bool:
        pass

    @abstractmethod
    def list_submissions(self, user_id: Optional[str] = None, problem_id: Any = None) -> List[Submission]:
        pass


class InMemorySubmissionStore(SubmissionStore):
    def __init__(self):
        self.submissions: List[Submission] = []
        self.solutions: List[Solution] = []
        self._lock = threading.Lock()

    def add_submission(self, submission):
        with self._lock:
            self.submissions.append(submission)
        return submission

    def add_solution(self, solution):
        with self._lock:
            self.solutions.append(solution)
        return solution

    def has_solution(self, user_id, problem_id):
        with self._lock:
            return any(s.user_id == user_id and str(s.problem_id) == str(problem_id) for s in self.solutions)

    def list_submissions(self, user_id=None, problem_id=None):
        with self._lock:
            submissions = list(self.submissions)
        if user_id is not None:
            submissions = [s for s in submissions if s.user_id == user_id]
        if problem_id is not None:
            submissions = [s for s in submissions if str(s.problem_id) == str(problem_id)]
        return submissions


class JsonSubmissionStore(InMemorySubmissionStore):
    """In-memory store that mirrors every write to a JSON file."""

    def __init__(self, path: str):
        super().__init__()
        self.path = path
        self._records: Dict[str, List[Dict[str, Any]]] = {"submissions": [], "solutions": []}
        if os.path.exists(path):
            with open(path) as f:
                self._records.update(json.load(f))

    def _flush(self):
        tmp_path = self.path + ".tmp"
        with open(tmp_path, "w") as f:
            json.dump(self._records, f, indent=2)
        os.replace(tmp_path, self.path)

    def add_submission(self, submission):
        super().add_submission(submission)
        with self._lock:
            self._records["submissions"].append(submission.to_dict())
            self._flush()
        return submission

    def add_solution(self, solution):
        super().add_solution(solution)
        with self._lock:
            self._records["solutions"].append(solution.to_dict())
            self._flush()
        return solution

    def has_solution(self, user_id, problem_id):
        if super().has_solution(user_id, problem_id):
            return True
        with self._lock:
            return any(
                r.get("user_id") == user_id and str(r.get("problem_id")) == str(problem_id)
                for r in self._records["solutions"]
            )


_STATUS_COUNTERS = {
    SubmissionStatus.ACCEPTED: "accepted_submissions",
    SubmissionStatus.WRONG_ANSWER: "wrong_submissions",
    SubmissionStatus.COMPILATION_ERROR: "compilation_errors",
    SubmissionStatus.RUNTIME_ERROR: "runtime_errors",
    SubmissionStatus.TIME_LIMIT_EXCEEDED: "time_limit_exceeded",
    SubmissionStatus.PLAGIARISM_BLOCKED: "plagiarism_blocked",
}


@dataclass
class UserStatistics:
    user_id: str
    problems_solved: int = 0
    easy_solved: int = 0
    medium_solved: int = 0
    hard_solved: int = 0
    total_submissions: int = 0
    accepted_submissions: int = 0
    wrong_submissions: int = 0
    compilation_errors: int = 0
    runtime_errors: int = 0
    time_limit_exceeded: int = 0
    plagiarism_blocked: int = 0
    total_points: int = 0
    streak: int = 0
    last_solved_date: Optional[date] = None
    rank: Optional[int] = None

    def apply(self, status: SubmissionStatus, difficulty: Union[str, Difficulty],
              points: int = 0, first_solve: bool = False, today: Optional[date] = None) -> "UserStatistics":
        """
        Fold one submission into the counters.

        Every submission counts towards the total and its own status
        counter. Only the first accepted solve of a problem bumps the solved
        counts, adds points and moves the streak: the same day keeps it, the
        next day extends it, a longer gap restarts it at 1.
        """
        self.total_submissions += 1
        counter = _STATUS_COUNTERS.get(status)
        if counter:
            setattr(self, counter, getattr(self, counter) + 1)

        if status is not SubmissionStatus.ACCEPTED or not first_solve:
            return self

        today = today or datetime.now(timezone.utc).date()
        self.problems_solved += 1
        bucket = f"{Difficulty(difficulty).value}_solved"
        setattr(self, bucket, getattr(self, bucket) + 1)
        self.total_points += points

        if self.last_solved_date is None:
            self.streak = 1
        else:
            gap = (today - self.last_solved_date).days
            if gap == 1:
                self.streak += 1
            elif gap > 1:
                self.streak = 1
        self.last_solved_date = today
        return self


class StatisticsStore(ABC):
    @abstractmethod
    def get(self, user_id: str) -> Optional[UserStatistics]:
        pass

    @abstractmethod
    def save(self, stats: UserStatistics) -> None:
        pass

    @abstractmethod
    def all(self) -> List[UserStatistics]:
        pass


class InMemoryStatisticsStore(StatisticsStore):
    def __init__(self):
        self._stats: Dict[str, UserStatistics] = {}
        self._lock = threading.Lock()

    def get(self, user_id):
        with self._lock:
            return self._stats.get(user_id)

    def save(self, stats):
        with self._lock:
            self._stats[stats.user_id] = stats

    def all(self):
        with self._lock:
            return list(self._stats.values())


def update_rankings(store: StatisticsStore) -> List[UserStatistics]:
    """Recompute leaderboard ranks (1 = most points). Ties keep insertion order."""
    ranked = sorted(store.all(), key=lambda s: s.total_points, reverse=True)
    for rank, stats in enumerate(ranked, start=1):
        stats.rank = rank
        store.save(stats)
    LOGGER.debug("Updated ranks for %d users", len(ranked))
    return ranked

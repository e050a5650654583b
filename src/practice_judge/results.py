"""
Result records produced by a judge run.

``TestCaseResult`` and ``ExecutionResult`` live only for one run;
``Submission`` is the immutable record handed to persistence.
"""
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from .result_type import FailureReason, PlagiarismAction, SubmissionStatus


@dataclass(frozen=True)
class TestCaseResult:
    __test__ = False  # not a pytest test class

    index: int
    input: str
    expected_output: str
    actual_output: str
    passed: bool
    execution_time_ms: float = 0.0
    memory_mb: Optional[float] = None
    failure: FailureReason = FailureReason.NONE
    error_message: Optional[str] = None
    diff: Optional[str] = None
    is_sample: bool = False
    is_hidden: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["failure"] = self.failure.value
        return data


@dataclass(frozen=True)
class ExecutionResult:
    status: SubmissionStatus
    tests_passed: int = 0
    total_tests: int = 0
    test_case_results: Tuple[TestCaseResult, ...] = ()
    output: str = ""
    execution_time_ms: float = 0.0
    memory_mb: float = 0.0
    compilation_error: bool = False
    error_message: Optional[str] = None
    time_complexity: Optional[str] = None
    space_complexity: Optional[str] = None
    is_optimal: bool = False
    plagiarism_score: Optional[float] = None
    plagiarism_action: PlagiarismAction = PlagiarismAction.NONE
    similar_submission: Optional[Any] = None
    feedback: Tuple[str, ...] = ()

    def __post_init__(self):
        if self.tests_passed > self.total_tests:
            raise ValueError(f"tests_passed ({self.tests_passed}) exceeds total_tests ({self.total_tests})")
        if self.compilation_error and self.total_tests:
            raise ValueError("a compilation error cannot have executed test cases")

    @property
    def success(self) -> bool:
        return self.status is SubmissionStatus.ACCEPTED

    @property
    def potential_plagiarism(self) -> bool:
        return self.plagiarism_action is PlagiarismAction.BLOCK

    @property
    def failed_results(self) -> List[TestCaseResult]:
        return [r for r in self.test_case_results if not r.passed]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.name,
            "status_code": int(self.status),
            "tests_passed": self.tests_passed,
            "total_tests": self.total_tests,
            "execution_time_ms": self.execution_time_ms,
            "memory_mb": self.memory_mb,
            "compilation_error": self.compilation_error,
            "error_message": self.error_message,
            "time_complexity": self.time_complexity,
            "space_complexity": self.space_complexity,
            "is_optimal": self.is_optimal,
            "plagiarism_score": self.plagiarism_score,
            "plagiarism_action": self.plagiarism_action.value,
            "feedback": list(self.feedback),
            "output": self.output,
            "details": [r.to_dict() for r in self.test_case_results],
        }


def determine_status(compilation_error: bool, plagiarism_action: PlagiarismAction,
                     results: List[TestCaseResult]) -> SubmissionStatus:
    """Pick the single verdict for a run, in taxonomy priority order."""
    if compilation_error:
        return SubmissionStatus.COMPILATION_ERROR
    if plagiarism_action is PlagiarismAction.BLOCK:
        return SubmissionStatus.PLAGIARISM_BLOCKED
    if any(r.failure is FailureReason.RUNTIME_ERROR for r in results):
        return SubmissionStatus.RUNTIME_ERROR
    if any(r.failure.is_limit for r in results):
        return SubmissionStatus.TIME_LIMIT_EXCEEDED
    if results and all(r.passed for r in results):
        return SubmissionStatus.ACCEPTED
    return SubmissionStatus.WRONG_ANSWER


@dataclass(frozen=True)
class Submission:
    user_id: str
    problem_id: Any
    code: str
    language: str
    status: SubmissionStatus
    execution_time_ms: float = 0.0
    memory_mb: float = 0.0
    time_complexity: Optional[str] = None
    space_complexity: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_result(cls, user_id: str, problem_id: Any, code: str, language: str,
                    result: ExecutionResult, created_at: Optional[datetime] = None) -> "Submission":
        return cls(
            user_id=user_id,
            problem_id=problem_id,
            code=code,
            language=language,
            status=result.status,
            execution_time_ms=result.execution_time_ms,
            memory_mb=result.memory_mb,
            time_complexity=result.time_complexity,
            space_complexity=result.space_complexity,
            created_at=created_at or datetime.now(timezone.utc),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.name
        data["created_at"] = self.created_at.isoformat()
        return data


@dataclass(frozen=True)
class SecondaryEffectResult:
    """Outcome of a best-effort bookkeeping step. Failures are reported, never raised."""
    name: str
    ok: bool
    error: Optional[str] = None


@dataclass
class SubmissionOutcome:
    success: bool
    message: Optional[str] = None
    submission: Optional[Submission] = None
    execution_result: Optional[ExecutionResult] = None
    points_earned: int = 0
    improvement_suggestions: List[str] = field(default_factory=list)
    side_effects: List[SecondaryEffectResult] = field(default_factory=list)

"""
Judging core for a coding-practice platform.

A submission is statically checked, run against the problem's ordered test
cases through an ``Executor``, compared per problem shape, classified for
complexity and screened for plagiarism:

- Judge: one judge run, producing an ExecutionResult
- Submitter: judge + persistence + best-effort bookkeeping
- normalize / compare / classify / check: the pure building blocks
"""

from .comparator import ComparisonResult, compare
from .complexity import ComplexityEstimate, classify
from .config import JudgeConfig
from .errors import (
    ExecutorError,
    ExecutorUnavailableError,
    JudgeAbortError,
    JudgeError,
    NoTestCasesError,
    ProblemNotFoundError,
    ProblemStoreError,
    UnsupportedLanguageError,
)
from .executors import ExecutionOutput, Executor, RemoteExecutor, SubprocessExecutor
from .judge import Judge
from .languages import CheckResult, Language
from .normalizer import normalize
from .plagiarism import InMemorySimilarityCorpus, PlagiarismResult, PlagiarismScreener, SimilarityCorpus
from .problem import Difficulty, Problem, ProblemType, TestCase
from .result_type import FailureReason, PlagiarismAction, SubmissionStatus
from .results import ExecutionResult, Submission, SubmissionOutcome, TestCaseResult
from .static_checker import StaticChecker, check
from .stores import (
    DirectoryProblemStore,
    InMemoryProblemStore,
    InMemoryStatisticsStore,
    InMemorySubmissionStore,
    JsonSubmissionStore,
    UserStatistics,
)
from .submission import Submitter

__all__ = [
    'Judge',
    'Submitter',
    'JudgeConfig',
    'normalize',
    'compare',
    'ComparisonResult',
    'classify',
    'ComplexityEstimate',
    'check',
    'CheckResult',
    'StaticChecker',
    'Language',
    'Problem',
    'ProblemType',
    'Difficulty',
    'TestCase',
    'SubmissionStatus',
    'FailureReason',
    'PlagiarismAction',
    'ExecutionResult',
    'TestCaseResult',
    'Submission',
    'SubmissionOutcome',
    'Executor',
    'ExecutionOutput',
    'SubprocessExecutor',
    'RemoteExecutor',
    'PlagiarismScreener',
    'PlagiarismResult',
    'SimilarityCorpus',
    'InMemorySimilarityCorpus',
    'DirectoryProblemStore',
    'InMemoryProblemStore',
    'InMemorySubmissionStore',
    'JsonSubmissionStore',
    'InMemoryStatisticsStore',
    'UserStatistics',
    'JudgeError',
    'JudgeAbortError',
    'ProblemNotFoundError',
    'ProblemStoreError',
    'NoTestCasesError',
    'ExecutorError',
    'ExecutorUnavailableError',
    'UnsupportedLanguageError',
]

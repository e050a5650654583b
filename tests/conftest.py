import threading
import time

import pytest

from practice_judge import (
    ExecutionOutput,
    Executor,
    InMemoryProblemStore,
    Judge,
    JudgeConfig,
    PlagiarismScreener,
    Problem,
    SimilarityCorpus,
    TestCase,
)


class FakeExecutor(Executor):
    """Answers from a table keyed by test input; records every call."""

    def __init__(self, answers=None, delays=None, default=None):
        self.answers = answers or {}
        self.delays = delays or {}
        self.default = default
        self.calls = []
        self._lock = threading.Lock()

    def execute(self, code, language, input_data, problem_type=None):
        with self._lock:
            self.calls.append((code, language, input_data, problem_type))
        delay = self.delays.get(input_data)
        if delay:
            time.sleep(delay)
        answer = self.answers.get(input_data, self.default)
        if isinstance(answer, Exception):
            raise answer
        if isinstance(answer, ExecutionOutput):
            return answer
        return ExecutionOutput(output=answer or "")


class FixedCorpus(SimilarityCorpus):
    def __init__(self, score, reference="prior-submission"):
        self.score = score
        self.reference = reference
        self.registered = []

    def similarity(self, normalized_code, problem_id, user_id=None):
        return self.score, self.reference

    def register(self, normalized_code, problem_id, user_id=None, reference=None):
        self.registered.append((normalized_code, problem_id, user_id))


TWO_SUM_HASH = """
def two_sum(nums, target):
    seen = {}
    for i, n in enumerate(nums):
        if target - n in seen:
            return [seen[target - n], i]
        seen[n] = i
"""

TWO_SUM_NESTED = """
def two_sum(nums, target):
    for i in range(len(nums)):
        for j in range(i + 1, len(nums)):
            if nums[i] + nums[j] == target:
                return [i, j]
"""


@pytest.fixture
def two_sum_problem():
    return Problem(
        id="1",
        title="Two Sum",
        difficulty="easy",
        problem_type="two-sum",
        time_limit_ms=1000,
        memory_limit_mb=128,
        time_complexity="O(n)",
        space_complexity="O(n)",
        test_cases=(
            TestCase("[2,7,11,15]\n9", "[0,1]", is_sample=True),
            TestCase("[3,2,4]\n6", "[1,2]", is_hidden=True),
            TestCase("[3,3]\n6", "[0,1]", is_hidden=True),
        ),
    )


@pytest.fixture
def problem_store(two_sum_problem):
    return InMemoryProblemStore([two_sum_problem])


@pytest.fixture
def make_judge(problem_store):
    def factory(executor, corpus=None, **config):
        judge_config = JudgeConfig(**config)
        screener = PlagiarismScreener(corpus) if corpus is not None else None
        return Judge(problem_store, executor, screener=screener, config=judge_config)
    return factory


@pytest.fixture
def correct_answers():
    return {
        "[2,7,11,15]\n9": "[1, 0]",
        "[3,2,4]\n6": "[1,2]",
        "[3,3]\n6": "0,1",
    }

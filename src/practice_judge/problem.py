# problem.py
import json
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

DEFAULT_TIME_LIMIT_MS = 2000
DEFAULT_MEMORY_LIMIT_MB = 128


class ProblemType(str, Enum):
    """Shape tags selecting the normalization/comparison strategy."""
    PAIRED_INDEX  = "two-sum"
    ARRAY         = "array"
    STRING        = "string"
    GENERIC       = "generic"
    # classifier-only tags, judged with the generic shape
    BINARY_SEARCH = "binary-search"
    SORTING       = "sorting"

    @classmethod
    def parse(cls, tag: Union[str, "ProblemType", None]) -> "ProblemType":
        """Map a free-form tag onto a known type; unknown tags become GENERIC."""
        if isinstance(tag, ProblemType):
            return tag
        if not tag:
            return cls.GENERIC
        tag = str(tag).strip().lower()
        for member in cls:
            if member.value == tag:
                return member
        if tag in ("paired-index", "pair", "two_sum", "twosum"):
            return cls.PAIRED_INDEX
        return cls.GENERIC


class Difficulty(str, Enum):
    EASY   = "easy"
    MEDIUM = "medium"
    HARD   = "hard"


@dataclass(frozen=True)
class TestCase:
    __test__ = False  # not a pytest test class

    input: str
    expected_output: str
    is_sample: bool = False
    is_hidden: bool = False


@dataclass(frozen=True)
class Problem:
    id: str
    title: str = ""
    difficulty: Difficulty = Difficulty.EASY
    problem_type: str = ProblemType.GENERIC.value
    time_limit_ms: int = DEFAULT_TIME_LIMIT_MS
    memory_limit_mb: int = DEFAULT_MEMORY_LIMIT_MB
    time_complexity: Optional[str] = None
    space_complexity: Optional[str] = None
    test_cases: Tuple[TestCase, ...] = field(default_factory=tuple)

    @property
    def shape(self) -> ProblemType:
        return ProblemType.parse(self.problem_type)

    def get_test_cases(self) -> List[TestCase]:
        return list(self.test_cases)

    def get_time_limit(self) -> int:
        return self.time_limit_ms

    def get_memory_limit(self) -> int:
        return self.memory_limit_mb

    def get_sample_cases(self) -> List[TestCase]:
        return [tc for tc in self.test_cases if tc.is_sample]

    @classmethod
    def from_dict(cls, data: Dict[str, Any], test_cases: Optional[List[TestCase]] = None) -> "Problem":
        """Build a problem from a ``problem.json``-style mapping (snake or camel case)."""
        if test_cases is None:
            test_cases = [
                TestCase(
                    input=tc.get("input", ""),
                    expected_output=tc.get("expected_output", tc.get("expectedOutput", "")),
                    is_sample=bool(tc.get("is_sample", tc.get("isSample", False))),
                    is_hidden=bool(tc.get("is_hidden", tc.get("isHidden", False))),
                )
                for tc in data.get("test_cases", data.get("testCases", []))
            ]
        difficulty = str(data.get("difficulty", "easy")).lower()
        return cls(
            id=str(data["id"]),
            title=data.get("title", ""),
            difficulty=Difficulty(difficulty) if difficulty in Difficulty._value2member_map_ else Difficulty.EASY,
            problem_type=data.get("problem_type", data.get("problemType", data.get("code", "generic"))) or "generic",
            time_limit_ms=int(data.get("time_limit_ms", data.get("timeLimit", DEFAULT_TIME_LIMIT_MS)) or DEFAULT_TIME_LIMIT_MS),
            memory_limit_mb=int(data.get("memory_limit_mb", data.get("memoryLimit", DEFAULT_MEMORY_LIMIT_MB)) or DEFAULT_MEMORY_LIMIT_MB),
            time_complexity=data.get("time_complexity", data.get("timeComplexity")),
            space_complexity=data.get("space_complexity", data.get("spaceComplexity")),
            test_cases=tuple(test_cases),
        )

    @classmethod
    def from_directory(cls, problem_dir: str) -> "Problem":
        """
        Load a problem laid out on disk.

        Layout::

            <problem_dir>/problem.json      metadata (id defaults to the folder name)
            <problem_dir>/tests/NN.in       test input
            <problem_dir>/tests/NN.out      expected output

        Test cases are ordered by file name. Inputs whose name starts with
        ``sample`` are flagged as samples, all others as hidden. When the
        ``tests`` folder is missing, inline ``test_cases`` from problem.json
        are used.
        """
        with open(os.path.join(problem_dir, "problem.json")) as f:
            config = json.load(f)
        config.setdefault("id", os.path.basename(os.path.normpath(problem_dir)))

        test_dir = os.path.join(problem_dir, "tests")
        if not os.path.isdir(test_dir):
            return cls.from_dict(config)

        inputs = sorted(f for f in os.listdir(test_dir) if f.endswith(".in"))
        test_cases = []
        for name in inputs:
            base_name = name[:-len(".in")]
            output_path = os.path.join(test_dir, base_name + ".out")
            if not os.path.exists(output_path):
                continue
            with open(os.path.join(test_dir, name)) as f:
                input_data = f.read()
            with open(output_path) as f:
                expected = f.read()
            is_sample = base_name.lower().startswith("sample")
            test_cases.append(TestCase(input_data, expected, is_sample=is_sample, is_hidden=not is_sample))
        return cls.from_dict(config, test_cases)

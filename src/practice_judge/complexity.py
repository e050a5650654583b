"""
Static Big-O estimation from source text.

This is a heuristic, not an analyzer: it looks for lexical signals (nested
loops, hash containers, a binary-search shape, library sorts) and maps them
through a per-problem-type decision table. The same text always yields the
same estimate, and any internal failure yields the default estimate.
"""
import logging
import re
from dataclasses import dataclass
from typing import Dict, Optional, Tuple, Union

from .languages import Language, get_language_spec
from .problem import ProblemType

LOGGER = logging.getLogger(__name__)

O_1 = "O(1)"
O_LOG_N = "O(log n)"
O_N = "O(n)"
O_N_LOG_N = "O(n log n)"
O_N2 = "O(n²)"

# reference optimum when a problem does not document its own
REFERENCE_TIME_COMPLEXITY: Dict[ProblemType, str] = {
    ProblemType.PAIRED_INDEX: O_N,
    ProblemType.BINARY_SEARCH: O_LOG_N,
    ProblemType.SORTING: O_N_LOG_N,
}

MID_RE = re.compile(r"\bmid\b")
BOUNDARY_RE = re.compile(r"\b(left|right|lo|hi|low|high)\b")
MID_COMPARISON_RE = re.compile(r"[<>]=?\s*(\w+\s*\[\s*)?mid\b|\bmid\s*\]?\s*[<>]")


@dataclass(frozen=True)
class ComplexityEstimate:
    time_complexity: str = O_N
    space_complexity: str = O_N
    is_optimal: bool = False


@dataclass(frozen=True)
class Signals:
    nested_loops: bool = False
    hash_structure: bool = False
    binary_search: bool = False
    library_sort: bool = False


def canonical_complexity(notation: Optional[str]) -> str:
    """``O(N^2)`` and ``o(n²)`` compare equal."""
    if not notation:
        return ""
    text = re.sub(r"\s+", "", notation).lower()
    return text.replace("^2", "²").replace("**2", "²").replace("logn", "log n").replace("nlog", "n log")


def detect_signals(source: str, language: Union[str, Language]) -> Signals:
    spec = get_language_spec(language)
    for_count, while_count = spec.count_loops(source)
    return Signals(
        nested_loops=for_count >= 2 or while_count >= 2,
        hash_structure=spec.uses_hash_structure(source),
        binary_search=bool(
            MID_RE.search(source) and BOUNDARY_RE.search(source) and MID_COMPARISON_RE.search(source)
        ),
        library_sort=spec.uses_library_sort(source),
    )


def _decide(signals: Signals, shape: ProblemType) -> Optional[Tuple[str, str]]:
    """Decision table. None means the code could not be classified."""
    if shape is ProblemType.PAIRED_INDEX:
        if signals.nested_loops and not signals.hash_structure:
            return O_N2, O_1
        if signals.hash_structure:
            return O_N, O_N
    elif shape is ProblemType.BINARY_SEARCH:
        if signals.binary_search:
            return O_LOG_N, O_1
        return O_N, O_1
    elif shape is ProblemType.SORTING:
        if signals.library_sort:
            return O_N_LOG_N, O_LOG_N
        if signals.nested_loops:
            return O_N2, O_1
    else:
        if signals.nested_loops:
            return O_N2, O_N
        if signals.binary_search:
            return O_LOG_N, O_1
        if signals.library_sort:
            return O_N_LOG_N, O_LOG_N
        if signals.hash_structure:
            return O_N, O_N
    return None


def classify(source: str, language: Union[str, Language],
             problem_type: Union[str, ProblemType, None] = None,
             expected_time: Optional[str] = None,
             expected_space: Optional[str] = None) -> ComplexityEstimate:
    """
    Estimate time/space complexity of ``source``.

    ``is_optimal`` holds only for classified code whose time complexity
    matches ``expected_time`` (or the problem type's reference optimum) and,
    when ``expected_space`` is given, whose space complexity matches it too.
    """
    try:
        shape = ProblemType.parse(problem_type)
        decision = _decide(detect_signals(source or "", language), shape)
        if decision is None:
            return ComplexityEstimate()

        time_complexity, space_complexity = decision
        target_time = expected_time or REFERENCE_TIME_COMPLEXITY.get(shape)
        is_optimal = bool(target_time) and canonical_complexity(time_complexity) == canonical_complexity(target_time)
        if is_optimal and expected_space:
            is_optimal = canonical_complexity(space_complexity) == canonical_complexity(expected_space)
        return ComplexityEstimate(time_complexity, space_complexity, is_optimal)
    except Exception as exc:  # pylint: disable=broad-except
        LOGGER.warning("Complexity analysis failed, using default estimate: %s", exc)
        return ComplexityEstimate()

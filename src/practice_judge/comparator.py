"""
Shape-aware comparison of canonical outputs.

``compare`` decides pass/fail and, on mismatch, explains the difference in a
form suited to the problem shape. It never raises: any failure while
comparing structured data falls back to the plain text diff.
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Union

from .normalizer import INDEX_PAIR_RE, is_index_pair, parse_sequence
from .problem import ProblemType

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ComparisonResult:
    passed: bool
    diff: Optional[str] = None


def compare(expected: Optional[str], actual: Optional[str],
            problem_type: Union[str, ProblemType, None] = None) -> ComparisonResult:
    expected = "" if expected is None else str(expected)
    actual = "" if actual is None else str(actual)
    if expected == actual:
        return ComparisonResult(True)

    shape = ProblemType.parse(problem_type)
    result = None
    try:
        if shape is ProblemType.PAIRED_INDEX:
            result = compare_index_pairs(expected, actual)
        elif shape is ProblemType.ARRAY:
            result = compare_arrays(expected, actual)
    except Exception as exc:  # pylint: disable=broad-except
        LOGGER.debug("Structured comparison failed (%s): %s", shape.value, exc)
        result = None
    return result or scalar_diff(expected, actual)


def compare_index_pairs(expected: str, actual: str) -> Optional[ComparisonResult]:
    """
    Order-insensitive comparison of two-index answers.

    The actual side may be any text containing a ``[i, j]`` pattern. When
    either side is not an index pair the general array comparison applies.
    """
    expected_pair = _load_pair(expected, lenient=False)
    actual_pair = _load_pair(actual, lenient=True)
    if expected_pair is None or actual_pair is None:
        return compare_arrays(expected, actual)

    sorted_expected = sorted(expected_pair)
    sorted_actual = sorted(actual_pair)
    if sorted_expected == sorted_actual:
        return ComparisonResult(True)

    position = 0 if sorted_expected[0] != sorted_actual[0] else 1
    diff = "\n".join([
        f"Index {position} differs: expected {_show(sorted_expected[position])}, "
        f"actual {_show(sorted_actual[position])}",
        f"Expected indices [{', '.join(_show(v) for v in expected_pair)}], "
        f"got [{', '.join(_show(v) for v in actual_pair)}]",
    ])
    return ComparisonResult(False, diff)


def compare_arrays(expected: str, actual: str) -> Optional[ComparisonResult]:
    """
    Element-level comparison of two sequences.

    Missing/extra elements are computed with set semantics over the JSON
    form of each element, so differences only in duplicate counts do not
    show up there; they are reported through the first differing index.
    """
    expected_values = parse_sequence(expected)
    actual_values = parse_sequence(actual)
    if expected_values is None or actual_values is None:
        return None
    expected_list = [_key(v) for v in expected_values]
    actual_list = [_key(v) for v in actual_values]
    if expected_list == actual_list:
        return ComparisonResult(True)

    lines = ["Differences found:"]
    if len(expected_values) != len(actual_values):
        lines.append(f"- Array length mismatch: expected {len(expected_values)}, got {len(actual_values)}")

    expected_keys = _unique_keys(expected_values)
    actual_keys = _unique_keys(actual_values)
    missing = [key for key in expected_keys if key not in actual_keys]
    extra = [key for key in actual_keys if key not in expected_keys]
    if missing:
        lines.append(f"- Missing elements: {', '.join(missing)}")
    if extra:
        lines.append(f"- Extra elements: {', '.join(extra)}")

    if not missing and not extra:
        for index, (want, got) in enumerate(zip(expected_list, actual_list)):
            if want != got:
                lines.append(f"- First difference at index {index}: expected {want}, got {got}")
                break
    return ComparisonResult(False, "\n".join(lines))


def scalar_diff(expected: str, actual: str) -> ComparisonResult:
    lines = ["Differences found:", f"- Expected: {expected}", f"- Actual: {actual}"]
    if len(expected) != len(actual):
        lines.append(f"- Length mismatch: expected {len(expected)}, got {len(actual)}")
    for position, (want, got) in enumerate(zip(expected, actual)):
        if want != got:
            lines.append(f"- First difference at position {position}: expected '{want}', got '{got}'")
            break
    return ComparisonResult(False, "\n".join(lines))


def _load_pair(text: str, lenient: bool) -> Optional[List[Any]]:
    try:
        values = json.loads(text)
    except ValueError:
        if not lenient:
            return None
        match = INDEX_PAIR_RE.search(text)
        if not match:
            return None
        values = json.loads(match.group(0))
    return values if is_index_pair(values) else None


def _key(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def _unique_keys(values: List[Any]) -> List[str]:
    seen = {}
    for value in values:
        seen.setdefault(_key(value), None)
    return list(seen)


def _show(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)

"""
Output normalization.

Raw program output is reduced to a canonical text form so that two outputs
which mean the same thing compare equal as strings. The strategy is picked by
the problem's shape tag; normalization never raises and is idempotent.
"""
import json
import logging
import math
import re
from typing import Any, List, Optional, Union

from .problem import ProblemType

LOGGER = logging.getLogger(__name__)

NUMBER_RE = re.compile(r"^-?\d+(\.\d+)?$")
BOOLEAN_RE = re.compile(r"^(true|false)$", re.IGNORECASE)
INDEX_PAIR_RE = re.compile(r"\[\s*-?\d+\s*,\s*-?\d+\s*\]")
WHITESPACE_RE = re.compile(r"\s+")


def normalize(raw_output: Optional[str], problem_type: Union[str, ProblemType, None] = None) -> str:
    """Canonicalize ``raw_output`` for the given shape tag."""
    if raw_output is None:
        return ""
    shape = ProblemType.parse(problem_type)
    output = str(raw_output).strip()
    if not output:
        return ""
    try:
        if shape is ProblemType.PAIRED_INDEX:
            return normalize_paired_index(output)
        if shape is ProblemType.ARRAY:
            return normalize_array(output)
        if shape is ProblemType.STRING:
            return normalize_string(output)
        return normalize_generic(output)
    except Exception as exc:  # pylint: disable=broad-except
        LOGGER.debug("Normalization failed for %r (%s): %s", output, shape.value, exc)
        return normalize_whitespace(output)


def normalize_whitespace(output: str) -> str:
    """Remove all whitespace and lowercase."""
    return WHITESPACE_RE.sub("", output).lower()


def normalize_scalar(token: str) -> Optional[str]:
    """Canonical text for a numeric or boolean literal, None for anything else."""
    token = token.strip()
    if NUMBER_RE.match(token):
        value = float(token) if "." in token else int(token)
        if isinstance(value, float) and not math.isfinite(value):
            # beyond float range: keep the literal
            return token
        return format_number(value)
    if BOOLEAN_RE.match(token):
        return token.lower()
    return None


def normalize_generic(output: str) -> str:
    compact = normalize_whitespace(output)
    scalar = normalize_scalar(compact)
    return compact if scalar is None else scalar


def normalize_string(output: str) -> str:
    # every matching layer goes, so a second pass has nothing left to strip
    while len(output) >= 2 and output[0] == output[-1] and output[0] in ("'", '"'):
        output = output[1:-1].strip()
    return normalize_whitespace(output)


def normalize_array(output: str) -> str:
    values = parse_sequence(output)
    if values is None:
        return normalize_generic(output)
    return dump_sequence(values)


def normalize_paired_index(output: str) -> str:
    match = INDEX_PAIR_RE.search(output)
    if match:
        values = json.loads(match.group(0))
    else:
        values = parse_sequence(output)
    if values is None:
        return normalize_generic(output)
    if is_index_pair(values):
        values = sorted(values)
    return dump_sequence(values)


def parse_sequence(output: str) -> Optional[List[Any]]:
    """
    Parse a bracketed JSON array or a bare comma-separated list.

    Returns None when the text is not sequence-shaped.
    """
    if output.startswith("[") and output.endswith("]"):
        try:
            values = json.loads(output)
        except ValueError:
            inner = output[1:-1].strip()
            values = [coerce_element(item) for item in inner.split(",")] if inner else []
        if not isinstance(values, list):
            return None
        return [coerce_element(value) for value in values]
    if "," in output:
        return [coerce_element(item) for item in output.split(",")]
    return None


def coerce_element(value: Any) -> Any:
    """Numbers stay numbers, numeric-looking strings become numbers, the rest are trimmed text."""
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, (int, float)):
        return canonical_number(value)
    if isinstance(value, str):
        token = value.strip()
        while len(token) >= 2 and token[0] == token[-1] and token[0] in ("'", '"'):
            token = token[1:-1].strip()
        if NUMBER_RE.match(token):
            return canonical_number(float(token) if "." in token else int(token))
        if BOOLEAN_RE.match(token):
            return token.lower() == "true"
        return token
    return value


def canonical_number(value: Union[int, float]) -> Union[int, float]:
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return int(value)
    return value


def format_number(value: Union[int, float]) -> str:
    value = canonical_number(value)
    if value == 0:
        return "0"
    return json.dumps(value)


def dump_sequence(values: List[Any]) -> str:
    return json.dumps(values, separators=(",", ":"), ensure_ascii=False)


def is_index_pair(values: Any) -> bool:
    return (
        isinstance(values, list)
        and len(values) == 2
        and all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in values)
    )

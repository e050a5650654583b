"""
Judge configuration.

Every tunable of a judge run lives on one dataclass so the pipeline carries
no hardcoded limits. Values come from defaults, a JSON file or environment
variables named ``PRACTICE_JUDGE_<FIELD>``.
"""
import json
import os
import re
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Mapping, Optional

from .plagiarism import BLOCK_THRESHOLD, WARN_THRESHOLD
from .problem import DEFAULT_MEMORY_LIMIT_MB, DEFAULT_TIME_LIMIT_MS

ENV_PREFIX = "PRACTICE_JUDGE_"

_TRUE_VALUES = ("1", "true", "yes", "on")


@dataclass
class JudgeConfig:
    """Configuration for a judge run."""
    max_workers: int = 10
    default_time_limit_ms: int = DEFAULT_TIME_LIMIT_MS
    default_memory_limit_mb: int = DEFAULT_MEMORY_LIMIT_MB
    # hard wait bound on an executor call, as a multiple of the time limit
    time_limit_grace: float = 1.2
    optimal_time_fraction: float = 0.5
    compile_latency_ms: int = 0
    plagiarism_block_threshold: float = BLOCK_THRESHOLD
    plagiarism_warn_threshold: float = WARN_THRESHOLD
    accepted_points: int = 100
    sanitize_source: bool = True

    def __post_init__(self):
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be positive, got {self.max_workers}")
        if self.time_limit_grace < 1.0:
            raise ValueError(f"time_limit_grace must be >= 1.0, got {self.time_limit_grace}")
        if not 0.0 <= self.plagiarism_warn_threshold <= self.plagiarism_block_threshold <= 1.0:
            raise ValueError("plagiarism thresholds must satisfy 0 <= warn <= block <= 1")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "JudgeConfig":
        """Build a config from a mapping with snake_case or camelCase keys. Unknown keys are ignored."""
        known = {f.name: f for f in fields(cls)}
        values = {}
        for key, value in data.items():
            name = _snake_case(key)
            if name in known:
                values[name] = _coerce(known[name].type, value)
        return cls(**values)

    @classmethod
    def from_file(cls, path: str) -> "JudgeConfig":
        with open(path) as f:
            return cls.from_dict(json.load(f))

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None,
                 base: Optional["JudgeConfig"] = None) -> "JudgeConfig":
        """Overlay ``PRACTICE_JUDGE_*`` variables on ``base`` (or the defaults)."""
        environ = os.environ if environ is None else environ
        values = (base or cls()).to_dict()
        for name in values:
            raw = environ.get(ENV_PREFIX + name.upper())
            if raw is not None and raw != "":
                values[name] = raw
        return cls.from_dict(values)


def _snake_case(key: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()


def _coerce(field_type: Any, value: Any) -> Any:
    # field.type is the annotation object here (no postponed evaluation)
    if field_type in (bool, "bool"):
        if isinstance(value, str):
            return value.strip().lower() in _TRUE_VALUES
        return bool(value)
    if field_type in (int, "int"):
        return int(float(value))
    if field_type in (float, "float"):
        return float(value)
    return value

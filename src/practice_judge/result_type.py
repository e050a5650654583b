# this gets its own file to prevent circular imports
from enum import Enum


class SubmissionStatus(int, Enum):
    """Terminal verdicts, declared in decision priority order."""
    COMPILATION_ERROR   = 1
    PLAGIARISM_BLOCKED  = 2
    RUNTIME_ERROR       = 3
    TIME_LIMIT_EXCEEDED = 4
    WRONG_ANSWER        = 5
    ACCEPTED            = 6

    @property
    def label(self) -> str:
        return self.name.replace("_", " ").title()


class FailureReason(str, Enum):
    NONE                  = "none"
    WRONG_ANSWER          = "wrong_answer"
    RUNTIME_ERROR         = "runtime_error"
    TIME_LIMIT_EXCEEDED   = "time_limit_exceeded"
    MEMORY_LIMIT_EXCEEDED = "memory_limit_exceeded"

    @property
    def is_limit(self) -> bool:
        return self in (FailureReason.TIME_LIMIT_EXCEEDED, FailureReason.MEMORY_LIMIT_EXCEEDED)


class PlagiarismAction(str, Enum):
    NONE  = "none"
    WARN  = "warn"
    BLOCK = "block"

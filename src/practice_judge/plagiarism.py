"""
Plagiarism screening.

The screener owns two things: how source code is normalized before it is
compared, and what happens at a given similarity score. Scoring itself is
delegated to a ``SimilarityCorpus``.
"""
import difflib
import logging
import re
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

from .languages import Language, get_language_spec
from .result_type import PlagiarismAction

LOGGER = logging.getLogger(__name__)

BLOCK_THRESHOLD = 0.8
WARN_THRESHOLD = 0.5


@dataclass(frozen=True)
class PlagiarismResult:
    score: float = 0.0
    action: PlagiarismAction = PlagiarismAction.NONE
    similar_submission: Optional[Any] = None

    @property
    def is_plagiarized(self) -> bool:
        return self.action is PlagiarismAction.BLOCK


def normalize_code(source: str, language: Union[str, Language]) -> str:
    """Strip comments and whitespace, lowercase."""
    source = source or ""
    try:
        source = get_language_spec(language).strip_comments(source)
    except Exception as exc:  # pylint: disable=broad-except
        LOGGER.debug("Comment stripping failed for %s: %s", language, exc)
    return re.sub(r"\s+", "", source).lower()


class SimilarityCorpus(ABC):
    """Scores normalized code against prior accepted submissions."""

    @abstractmethod
    def similarity(self, normalized_code: str, problem_id: Any,
                   user_id: Optional[str] = None) -> Tuple[float, Optional[Any]]:
        """Return ``(score in [0, 1], reference to the most similar submission)``."""

    def register(self, normalized_code: str, problem_id: Any, user_id: Optional[str] = None,
                 reference: Optional[Any] = None) -> None:
        """Add an accepted submission to the corpus. Optional for read-only corpora."""


class NullSimilarityCorpus(SimilarityCorpus):
    def similarity(self, normalized_code, problem_id, user_id=None):
        return 0.0, None


class InMemorySimilarityCorpus(SimilarityCorpus):
    """
    Corpus kept in process memory.

    The score is the best ``difflib.SequenceMatcher`` ratio against accepted
    code for the same problem, ignoring the submitting user's own entries.
    """

    def __init__(self):
        self._entries: Dict[Any, List[Tuple[str, Optional[str], Any]]] = {}
        self._lock = threading.Lock()

    def register(self, normalized_code, problem_id, user_id=None, reference=None):
        with self._lock:
            self._entries.setdefault(problem_id, []).append((normalized_code, user_id, reference))

    def similarity(self, normalized_code, problem_id, user_id=None):
        with self._lock:
            entries = list(self._entries.get(problem_id, ()))
        best_score, best_reference = 0.0, None
        for code, owner, reference in entries:
            if user_id is not None and owner == user_id:
                continue
            score = difflib.SequenceMatcher(None, normalized_code, code, autojunk=False).ratio()
            if score > best_score:
                best_score, best_reference = score, reference
        return best_score, best_reference


class PlagiarismScreener:
    def __init__(self, corpus: Optional[SimilarityCorpus] = None,
                 block_threshold: float = BLOCK_THRESHOLD,
                 warn_threshold: float = WARN_THRESHOLD,
                 logger: logging.Logger = None):
        self.corpus = corpus or NullSimilarityCorpus()
        self.block_threshold = block_threshold
        self.warn_threshold = warn_threshold
        self.logger = logger or LOGGER

    def action_for(self, score: float) -> PlagiarismAction:
        if score > self.block_threshold:
            return PlagiarismAction.BLOCK
        if score > self.warn_threshold:
            return PlagiarismAction.WARN
        return PlagiarismAction.NONE

    def screen(self, source: str, language: Union[str, Language], problem_id: Any,
               user_id: Optional[str] = None) -> PlagiarismResult:
        normalized = normalize_code(source, language)
        try:
            score, reference = self.corpus.similarity(normalized, problem_id, user_id)
            score = min(max(float(score), 0.0), 1.0)
        except Exception as exc:  # pylint: disable=broad-except
            self.logger.warning("Similarity lookup failed for problem %s, skipping screen: %s", problem_id, exc)
            return PlagiarismResult()

        action = self.action_for(score)
        if action is not PlagiarismAction.NONE:
            self.logger.info("Plagiarism screen for problem %s: score=%.2f action=%s", problem_id, score, action.value)
        return PlagiarismResult(score, action, reference if action is not PlagiarismAction.NONE else None)

    def register(self, source: str, language: Union[str, Language], problem_id: Any,
                 user_id: Optional[str] = None, reference: Optional[Any] = None) -> None:
        self.corpus.register(normalize_code(source, language), problem_id, user_id, reference)

"""
Pre-execution static gate.

Delegates to the language variant's ``check``. Compiled languages may be
given a fixed simulated latency so that the checking step costs roughly what
a compiler round trip would.
"""
import logging
import time
from typing import Union

from .errors import UnsupportedLanguageError
from .languages import CheckResult, Language, get_language_spec

LOGGER = logging.getLogger(__name__)


class StaticChecker:
    def __init__(self, latency_ms: int = 0, logger: logging.Logger = None):
        self.latency_ms = latency_ms
        self.logger = logger or LOGGER

    def check(self, source: str, language: Union[str, Language]) -> CheckResult:
        try:
            spec = get_language_spec(language)
        except UnsupportedLanguageError as exc:
            return CheckResult(False, str(exc))

        if not spec.compiled:
            self.logger.debug("Interpreted language %s, skipping static checks", spec.language.value)
            return CheckResult(True)

        if self.latency_ms > 0:
            time.sleep(self.latency_ms / 1000.0)

        result = spec.check(source or "")
        if result.success:
            self.logger.debug("Static checks passed for %s", spec.language.value)
        else:
            self.logger.info("Static checks failed for %s: %s", spec.language.value, result.error.splitlines()[0])
        return result


def check(source: str, language: Union[str, Language]) -> CheckResult:
    return StaticChecker().check(source, language)

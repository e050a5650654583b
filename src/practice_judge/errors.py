"""
Exceptions raised by the judging pipeline.

Only failures that make a verdict impossible are raised out of a judge run;
everything else (normalization, comparison, classification, plagiarism
normalization, bookkeeping) degrades locally.
"""


class JudgeError(Exception):
    """Base class for all judge errors."""


class JudgeAbortError(JudgeError):
    """The submission could not be judged; the user should retry."""

    user_message = "Could not judge this submission, please try again"

    def __str__(self) -> str:
        detail = super().__str__()
        return f"{self.user_message}: {detail}" if detail else self.user_message


class ProblemNotFoundError(JudgeAbortError):
    def __init__(self, problem_id):
        super().__init__(f"problem {problem_id!r} not found")
        self.problem_id = problem_id


class NoTestCasesError(JudgeAbortError):
    def __init__(self, problem_id):
        super().__init__(f"no test cases found for problem {problem_id!r}")
        self.problem_id = problem_id


class ProblemStoreError(JudgeAbortError):
    """The problem store failed while loading a problem or its test cases."""


class ExecutorError(JudgeAbortError):
    """The execution collaborator failed while running a test case."""


class ExecutorUnavailableError(JudgeError):
    """Raised by executors when the execution backend cannot be reached."""


class UnsupportedLanguageError(JudgeError, ValueError):
    def __init__(self, language):
        super().__init__(f"Unsupported language: {language}")
        self.language = language

"""
Language variants supported by the judge.

Every supported language is a member of the ``Language`` enum and has exactly
one ``LanguageSpec`` implementation. A spec bundles everything the pipeline
needs to know about a language:

- static pre-execution checks (``check``)
- source sanitization before execution (``sanitize``)
- comment syntax (plagiarism normalization)
- lexical signals for the complexity heuristics
- how a local executor builds and runs a source file
"""
import os
import re
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Pattern, Sequence, Tuple, Union

from .errors import UnsupportedLanguageError


class Language(str, Enum):
    PYTHON     = "python"
    JAVASCRIPT = "javascript"
    JAVA       = "java"
    CPP        = "cpp"

    @classmethod
    def parse(cls, tag: Union[str, "Language"]) -> "Language":
        if isinstance(tag, Language):
            return tag
        key = str(tag).strip().lower()
        key = _LANGUAGE_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            raise UnsupportedLanguageError(tag) from None

    @classmethod
    def from_filename(cls, filename: str) -> "Language":
        """Infer language from a solution file extension."""
        suffix = os.path.splitext(filename)[1].lower()
        if suffix not in _SUFFIXES:
            raise UnsupportedLanguageError(suffix or filename)
        return _SUFFIXES[suffix]


_LANGUAGE_ALIASES = {
    "py": "python", "python3": "python",
    "js": "javascript", "node": "javascript",
    "c++": "cpp", "cxx": "cpp",
}

_SUFFIXES = {
    ".py": Language.PYTHON,
    ".js": Language.JAVASCRIPT,
    ".java": Language.JAVA,
    ".cpp": Language.CPP, ".cc": Language.CPP, ".cxx": Language.CPP,
}


@dataclass(frozen=True)
class CheckResult:
    success: bool
    error: Optional[str] = None


def _neutralize(patterns: Sequence[str], wrap: str) -> Tuple[Pattern, str]:
    """One alternation regex so a match is never rewritten twice."""
    return re.compile("|".join(f"(?:{p})" for p in patterns)), wrap


class LanguageSpec(ABC):
    language: Language
    compiled: bool = False
    source_suffix: str = ""
    line_comment: str = "//"
    block_comments: Tuple[Tuple[str, str], ...] = (("/*", "*/"),)
    hash_identifiers: Tuple[str, ...] = ()
    for_loop: Pattern = re.compile(r"\bfor\s*\(")
    while_loop: Pattern = re.compile(r"\bwhile\s*\(")
    library_sort: Pattern = re.compile(r"\.sort\s*\(")
    # (regex, wrapper) where wrapper formats the neutralized match
    sanitize_rule: Optional[Tuple[Pattern, str]] = None

    def check(self, source: str) -> CheckResult:
        return CheckResult(True)

    def sanitize(self, source: str) -> str:
        """Comment out calls that reach outside the solution's process."""
        if self.sanitize_rule is None:
            return source
        pattern, wrap = self.sanitize_rule
        return pattern.sub(lambda m: wrap.format(m.group(0)), source)

    def strip_comments(self, source: str) -> str:
        for start, end in self.block_comments:
            source = re.sub(re.escape(start) + r"[\s\S]*?" + re.escape(end), "", source)
        return re.sub(re.escape(self.line_comment) + r".*$", "", source, flags=re.MULTILINE)

    def count_loops(self, source: str) -> Tuple[int, int]:
        return len(self.for_loop.findall(source)), len(self.while_loop.findall(source))

    def uses_hash_structure(self, source: str) -> bool:
        return any(identifier in source for identifier in self.hash_identifiers)

    def uses_library_sort(self, source: str) -> bool:
        return bool(self.library_sort.search(source))

    # execution contract used by local executors

    def source_filename(self, source: str) -> str:
        return "solution" + self.source_suffix

    def compile_command(self, source_path: str, work_dir: str) -> Optional[List[str]]:
        return None

    @abstractmethod
    def run_command(self, source_path: str, work_dir: str) -> List[str]:
        pass


class PythonSpec(LanguageSpec):
    language = Language.PYTHON
    source_suffix = ".py"
    line_comment = "#"
    block_comments = (('"""', '"""'), ("'''", "'''"))
    hash_identifiers = ("dict(", "{}", "set(", "defaultdict", "Counter(")
    for_loop = re.compile(r"\bfor\s+[\w\s,()]+?\s+in\b")
    while_loop = re.compile(r"\bwhile\b")
    library_sort = re.compile(r"\bsorted\s*\(|\.sort\s*\(")
    # sys stays importable, solutions read stdin through it
    sanitize_rule = _neutralize(
        [r"\bimport\s+(?:os|subprocess|shutil)\b", r"\bopen\s*\(", r"__import__",
         r"\bexec\s*\(", r"\beval\s*\("],
        "# {}",
    )

    def run_command(self, source_path, work_dir):
        return [sys.executable or "python3", source_path]


class JavaScriptSpec(LanguageSpec):
    language = Language.JAVASCRIPT
    source_suffix = ".js"
    hash_identifiers = ("Map(", "Set(", "Object.")
    sanitize_rule = _neutralize(
        [r"process\.exit", r"require\s*\(\s*['\"]child_process['\"]\s*\)",
         r"require\s*\(\s*['\"]fs['\"]\s*\)", r"\bexec\s*\(", r"\beval\s*\(",
         r"new\s+Function", r"\bFunction\s*\(", r"\bfs\.", r"\bprocess\.(?!stdin)",
         r"\bglobal\.", r"\bwindow\.", r"\bdocument\.", r"XMLHttpRequest",
         r"\bfetch\s*\(", r"\bimport\s*\(", r"\bDeno\.", r"\bBun\."],
        "/* {} */",
    )

    def run_command(self, source_path, work_dir):
        return ["node", source_path]


class CompiledLanguageSpec(LanguageSpec):
    """
    Compiled languages get a static gate before any test case runs.

    The terminator scan is a heuristic stand-in for a compiler front end: it
    flags any code line that does not end in ``;``, ``{`` or ``}``. It has
    false positives on statements split across lines.
    """
    compiled = True
    terminators = (";", "{", "}")
    label = re.compile(r"^(case\b.*|default|public|private|protected)\s*:$")

    @abstractmethod
    def missing_entry_point(self, source: str) -> Optional[str]:
        """Return an error message when the program has no entry point."""

    @abstractmethod
    def is_directive(self, line: str) -> bool:
        pass

    @abstractmethod
    def terminator_error(self, line_number: int, line: str) -> str:
        pass

    def check(self, source: str) -> CheckResult:
        missing = self.missing_entry_point(source)
        if missing:
            return CheckResult(False, missing)

        in_block = False
        for line_number, raw in enumerate(source.splitlines(), start=1):
            line = raw.strip()
            if in_block:
                in_block = "*/" not in line
                continue
            if not line or line.startswith("//") or line.endswith("*/"):
                continue
            if line.startswith("/*"):
                in_block = "*/" not in line
                continue
            if self.is_directive(line):
                continue
            code = re.sub(r"\s*//.*$", "", line)
            if code.endswith(self.terminators) or self.label.match(code):
                continue
            return CheckResult(False, self.terminator_error(line_number, line))
        return CheckResult(True)


class JavaSpec(CompiledLanguageSpec):
    language = Language.JAVA
    source_suffix = ".java"
    hash_identifiers = ("HashMap", "HashSet", "Hashtable")
    library_sort = re.compile(r"\b(?:Arrays|Collections)\.sort\s*\(|\.sort\s*\(")
    sanitize_rule = _neutralize([r"Runtime\.", r"ProcessBuilder", r"System\.exit"], "/* {} */")

    def missing_entry_point(self, source):
        if "class" not in source:
            return "error: class declaration not found\n  program must declare a public class with a main method"
        if "public static void main" not in source:
            return "error: missing 'public static void main' method\n  public class must contain a main method"
        return None

    def is_directive(self, line):
        return line.startswith(("package", "import", "@"))

    def terminator_error(self, line_number, line):
        return f"error: ';' expected\n  at line {line_number}: {line}"

    @staticmethod
    def public_class(source: str) -> Optional[str]:
        """Extract the public class name from Java source, if present."""
        match = re.search(r"public\s+(?:final\s+)?class\s+([A-Za-z_][A-Za-z0-9_]*)", source)
        return match.group(1) if match else None

    def source_filename(self, source):
        return (self.public_class(source) or "Main") + self.source_suffix

    def compile_command(self, source_path, work_dir):
        return ["javac", "-d", work_dir, source_path]

    def run_command(self, source_path, work_dir):
        class_name = os.path.splitext(os.path.basename(source_path))[0]
        return ["java", "-cp", work_dir, class_name]


class CppSpec(CompiledLanguageSpec):
    language = Language.CPP
    source_suffix = ".cpp"
    hash_identifiers = ("unordered_map", "unordered_set")
    library_sort = re.compile(r"\b(?:std::)?(?:stable_)?sort\s*\(")
    sanitize_rule = _neutralize(
        [r"std::system", r"\bsystem\s*\(", r"\bfork\s*\(", r"\bexec[a-z]*\(",
         r"\bpopen\s*\(", r"\bfopen\s*\("],
        "/* {} */",
    )

    def missing_entry_point(self, source):
        if "main(" not in source and "main (" not in source:
            return "error: 'main' function not found\n  program must contain a main function"
        return None

    def is_directive(self, line):
        return line.startswith("#")

    def terminator_error(self, line_number, line):
        return f"error: expected ';' at end of declaration\n  at line {line_number}: {line}"

    def compile_command(self, source_path, work_dir):
        executable = os.path.join(work_dir, "solution")
        return ["g++", "-std=gnu++17", "-O2", "-pipe", "-o", executable, source_path]

    def run_command(self, source_path, work_dir):
        return [os.path.join(work_dir, "solution")]


LANGUAGE_SPECS: Dict[Language, LanguageSpec] = {
    spec.language: spec for spec in (PythonSpec(), JavaScriptSpec(), JavaSpec(), CppSpec())
}
if set(LANGUAGE_SPECS) != set(Language):
    raise RuntimeError("every Language needs a LanguageSpec")


def get_language_spec(language: Union[str, Language]) -> LanguageSpec:
    return LANGUAGE_SPECS[Language.parse(language)]

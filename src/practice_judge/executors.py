"""
Execution collaborators.

The judge only knows the ``Executor`` interface: run ``code`` written in
``language`` on ``input_data`` and report what the program printed. Two
implementations are provided:

- ``SubprocessExecutor`` runs the program on this machine under rlimits and
  psutil monitoring. It is NOT a sandbox; only use it on trusted code.
- ``RemoteExecutor`` posts the program to an HTTP execution service.
"""
import hashlib
import logging
import math
import os
import shutil
import subprocess
import tempfile
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional, Tuple, Union

import backoff
import psutil
import requests

from .errors import ExecutorUnavailableError
from .languages import Language, LanguageSpec, get_language_spec
from .problem import ProblemType

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecutionOutput:
    output: str = ""
    error: Optional[str] = None
    memory_mb: Optional[float] = None
    timed_out: bool = False


class Executor(ABC):
    @abstractmethod
    def execute(self, code: str, language: Union[str, Language], input_data: str,
                problem_type: Union[str, ProblemType, None] = None) -> ExecutionOutput:
        """Run ``code`` on ``input_data``. Raise only when the backend itself fails."""

    def prepare(self, code: str, language: Union[str, Language]) -> Optional[str]:
        """
        Build ``code`` ahead of the timed runs.

        Returns:
            the compiler diagnostics when the build failed, else None
        """
        return None

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()


def set_limits(cpu_seconds: int, address_space_bytes: int = 0) -> None:
    """preexec_fn for solution processes: CPU ceiling, plus address space when given."""
    import resource
    resource.setrlimit(resource.RLIMIT_CPU, (cpu_seconds, cpu_seconds))
    if address_space_bytes:
        resource.setrlimit(resource.RLIMIT_AS, (address_space_bytes, address_space_bytes))


def monitor_process(proc: psutil.Process, cpu_limit_s: float, usage: Dict[str, float],
                    interval: float = 0.01) -> None:
    """
    Sample ``proc`` until it exits, recording peak CPU seconds and resident MB
    into ``usage``. A process that burns more than ``cpu_limit_s`` of CPU is
    killed and ``usage["killed"]`` is set.
    """
    while proc.is_running():
        try:
            times = proc.cpu_times()
            usage["max_cpu_time"] = max(usage["max_cpu_time"], times.user + times.system)
            usage["max_memory"] = max(usage["max_memory"], proc.memory_info().rss / (1024 * 1024))
            if usage["max_cpu_time"] > cpu_limit_s:
                usage["killed"] = True
                proc.kill()
                return
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            return
        time.sleep(interval)


class SubprocessExecutor(Executor):
    """
    Run solutions as local child processes.

    Compiled languages are built once per distinct source text and the
    artifact is reused across test cases. Limits here are a safety ceiling;
    the judge applies the problem's own limits to what this executor reports.

    Args:
        time_limit_s: CPU/wall ceiling per run, in seconds
        memory_limit_mb: address-space ceiling per run (not applied to JVM/node)
        work_root: directory for build artifacts, a fresh temp dir by default
    """

    # runtimes that reserve large virtual address space at startup
    _NO_ADDRESS_LIMIT = (Language.JAVA, Language.JAVASCRIPT)

    def __init__(self, time_limit_s: float = 10.0, memory_limit_mb: float = 512,
                 work_root: Optional[str] = None, compile_timeout_s: float = 60.0):
        self.time_limit_s = time_limit_s
        self.memory_limit_mb = memory_limit_mb
        self.compile_timeout_s = compile_timeout_s
        self._owns_root = work_root is None
        self.work_root = work_root or tempfile.mkdtemp(prefix="practice_judge_")
        self._builds: Dict[str, Tuple[str, Optional[str]]] = {}
        self._build_locks: Dict[str, threading.Lock] = {}
        self._lock = threading.Lock()

    def close(self):
        if self._owns_root:
            shutil.rmtree(self.work_root, ignore_errors=True)

    def prepare(self, code, language):
        _, compile_error = self._build(get_language_spec(language), code)
        return compile_error

    def execute(self, code, language, input_data, problem_type=None):
        spec = get_language_spec(language)
        source_path, compile_error = self._build(spec, code)
        if compile_error is not None:
            return ExecutionOutput(error=compile_error)
        return self._run(spec, source_path, input_data or "")

    def _build(self, spec: LanguageSpec, code: str) -> Tuple[str, Optional[str]]:
        """Write (and compile) the source once; returns (source path, compile error)."""
        key = hashlib.sha256(f"{spec.language.value}\0{code}".encode()).hexdigest()
        with self._lock:
            build_lock = self._build_locks.setdefault(key, threading.Lock())
        with build_lock:
            if key in self._builds:
                return self._builds[key]

            work_dir = os.path.join(self.work_root, key[:16])
            os.makedirs(work_dir, exist_ok=True)
            source_path = os.path.join(work_dir, spec.source_filename(code))
            with open(source_path, "w") as f:
                f.write(code)

            compile_error = None
            command = spec.compile_command(source_path, work_dir)
            if command:
                LOGGER.debug("Compiling with command: %s", " ".join(command))
                try:
                    result = subprocess.run(
                        command,
                        stdout=subprocess.PIPE,
                        stderr=subprocess.PIPE,
                        text=True,
                        timeout=self.compile_timeout_s,
                    )
                    if result.returncode != 0:
                        compile_error = result.stderr or result.stdout or "Compilation failed"
                except subprocess.TimeoutExpired:
                    compile_error = "Compilation timed out"
                except FileNotFoundError as exc:
                    raise ExecutorUnavailableError(f"compiler not available: {command[0]}") from exc

            self._builds[key] = (source_path, compile_error)
            return self._builds[key]

    def _run(self, spec: LanguageSpec, source_path: str, input_data: str) -> ExecutionOutput:
        work_dir = os.path.dirname(source_path)
        command = spec.run_command(source_path, work_dir)

        memory_bytes = 0
        if spec.language not in self._NO_ADDRESS_LIMIT:
            memory_bytes = int(math.ceil(self.memory_limit_mb * 1024 * 1024))
        cpu_limit = int(math.ceil(self.time_limit_s))
        preexec = (lambda: set_limits(cpu_limit, memory_bytes)) if os.name == "posix" else None

        try:
            process = subprocess.Popen(
                command,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                cwd=work_dir,
                preexec_fn=preexec,
            )
        except FileNotFoundError as exc:
            raise ExecutorUnavailableError(f"runtime not available: {command[0]}") from exc

        usage = {"max_cpu_time": 0.0, "max_memory": 0.0, "killed": False}
        monitor_thread = None
        try:
            proc = psutil.Process(process.pid)
            monitor_thread = threading.Thread(
                target=monitor_process, args=(proc, self.time_limit_s, usage), daemon=True
            )
            monitor_thread.start()
        except psutil.NoSuchProcess:
            pass

        timed_out = False
        try:
            stdout_data, stderr_data = process.communicate(input=input_data.encode(), timeout=self.time_limit_s)
        except subprocess.TimeoutExpired:
            LOGGER.debug("Timeout reached, killing process %s", process.pid)
            process.kill()
            stdout_data, stderr_data = process.communicate()
            timed_out = True

        if monitor_thread is not None:
            monitor_thread.join()
        timed_out = timed_out or usage["killed"]

        output = stdout_data.decode(errors="replace") if stdout_data else ""
        error = None
        if timed_out:
            error = "Time limit exceeded"
        elif process.returncode != 0:
            stderr_text = stderr_data.decode(errors="replace").strip() if stderr_data else ""
            error = stderr_text or f"Process exited with code {process.returncode}"
        return ExecutionOutput(output, error, usage["max_memory"] or None, timed_out)


MAX_TRIES = 3


class RemoteExecutor(Executor):
    """
    Client for an HTTP execution service.

    ``POST <base_url>/execute`` with ``{code, language, input, problem_type}``;
    the service answers ``{output, error, memory_mb, timed_out}``. Connection
    failures and timeouts are retried with exponential backoff.
    """

    def __init__(self, base_url: str, timeout_s: float = 30.0, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self.session = session or requests.Session()

    def close(self):
        self.session.close()

    @backoff.on_exception(
        backoff.expo,
        (requests.ConnectionError, requests.Timeout),
        max_tries=MAX_TRIES,
        factor=0.5,
        max_value=5,
    )
    def _post(self, payload: Dict[str, str]) -> requests.Response:
        return self.session.post(f"{self.base_url}/execute", json=payload, timeout=self.timeout_s)

    def execute(self, code, language, input_data, problem_type=None):
        payload = {
            "code": code,
            "language": Language.parse(language).value,
            "input": input_data or "",
            "problem_type": ProblemType.parse(problem_type).value if problem_type else None,
        }
        try:
            response = self._post(payload)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise ExecutorUnavailableError(f"execution service at {self.base_url} failed: {exc}") from exc

        memory = data.get("memory_mb", data.get("memoryUsed"))
        return ExecutionOutput(
            output=data.get("output") or "",
            error=data.get("error") or None,
            memory_mb=float(memory) if memory is not None else None,
            timed_out=bool(data.get("timed_out", False)),
        )

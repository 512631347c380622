"""
Sandbox for executing candidate code with resource limits.

Every invocation runs in a fresh interpreter started with isolation flags, in
an empty temporary directory, with a minimal environment.
Unix: Uses resource module for CPU time, memory and file-size limits.
Windows: Uses timeout parameter (wall-clock time only).

A hung invocation is killed when its wall-clock deadline passes; the process
is never reused, so a timeout cannot leak state into the next case.
The worker echoes a fresh random token in its reply, and replies without it
are rejected.
"""

import ast
import json
import os
import platform
import re
import secrets
import shutil
import signal
import subprocess
import sys
import tempfile
import time
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence, Tuple

from ._worker import find_forbidden_access
from .codec import json_default
from .errors import CatastrophicParseError, InvocationError, TimeLimitExceeded
from .models import DEFAULT_ALLOWED_MODULES, Question


WORKER_PATH = Path(__file__).with_name("_worker.py")


def get_python_executable():
    """Get the appropriate Python executable path."""
    if getattr(sys, 'frozen', False):
        python_path = shutil.which('python3') or shutil.which('python')
        if python_path:
            return python_path, ['-I', '-B']
        raise RuntimeError("Python executable not found. Please ensure Python is installed on the grading host.")
    return sys.executable, ['-I', '-B']


PYTHON_EXE, ISOLATION_FLAGS = get_python_executable()


# ===== SUBMISSION PARSING =====

def _describe_syntax_error(e: SyntaxError) -> str:
    return f"SyntaxError: {e.msg} (line {e.lineno})"


def parse_submission(source: str) -> List[str]:
    """
    Parse candidate source without running it.

    Returns:
        Names of the top-level functions, in definition order

    Raises:
        CatastrophicParseError: If the source is not valid Python, reaches for
            interpreter internals or defines no top-level function
    """
    try:
        tree = ast.parse(source, filename="<submission>")
    except SyntaxError as e:
        raise CatastrophicParseError(_describe_syntax_error(e)) from e
    except (ValueError, MemoryError, RecursionError) as e:
        raise CatastrophicParseError(f"Could not parse submission: {e}") from e

    forbidden = find_forbidden_access(tree)
    if forbidden:
        raise CatastrophicParseError(forbidden)

    names = []
    for node in tree.body:
        if isinstance(node, ast.FunctionDef):
            names.append(node.name)
        elif (isinstance(node, ast.Assign) and isinstance(node.value, ast.Lambda)
              and len(node.targets) == 1 and isinstance(node.targets[0], ast.Name)):
            names.append(node.targets[0].id)

    if not names:
        raise CatastrophicParseError("Submission does not define a top-level function")
    return names


def entry_point_candidates(question: Question) -> List[str]:
    """
    Names the question expects the solution under, most explicit first.

    Order: the question's entry_point, functions defined by its template code,
    then names derived from the title ("Two Sum" -> two_sum, twoSum, TwoSum).
    """
    names = []
    if question.entry_point:
        names.append(question.entry_point)

    if question.template_code:
        try:
            names.extend(parse_submission(question.template_code))
        except CatastrophicParseError:
            pass  # template written for another language

    words = re.findall(r"[A-Za-z0-9]+", question.title)
    if words:
        lowered = [w.lower() for w in words]
        names.append("_".join(lowered))
        names.append(lowered[0] + "".join(w.capitalize() for w in lowered[1:]))
        names.append("".join(w.capitalize() for w in lowered))

    return [n for i, n in enumerate(names) if n.isidentifier() and n not in names[:i]]


def select_entry_point(
    question: Question,
    function_names: Sequence[str],
    session_logger: Optional[Callable[[str, str], None]] = None
) -> str:
    """
    Pick the function to call.

    Falls back to the first top-level function when none of the expected
    names is defined; the fallback is reported to the session logger.
    """
    for name in entry_point_candidates(question):
        if name in function_names:
            return name

    fallback = function_names[0]
    if session_logger:
        session_logger(
            "ENTRY_POINT_FALLBACK",
            f"Question: {question.id}, expected one of {entry_point_candidates(question)}, using '{fallback}'"
        )
    return fallback


# ===== EXECUTION =====

def _minimal_env() -> dict:
    env = {}
    if platform.system() == "Windows":
        # the interpreter cannot start without it
        env["SYSTEMROOT"] = os.environ.get("SYSTEMROOT", r"C:\Windows")
    return env


def _limits_fn(timeout_sec: float, memory_limit_mb: int):
    """preexec_fn applying rlimits in the child (Unix only)."""
    def set_limits():
        try:
            import resource
            try:
                resource.setrlimit(resource.RLIMIT_CPU, (int(timeout_sec) + 1, int(timeout_sec) + 1))
            except (ValueError, OSError):
                pass

            try:
                memory_bytes = memory_limit_mb * 1024 * 1024
                resource.setrlimit(resource.RLIMIT_AS, (memory_bytes, memory_bytes))
            except (ValueError, OSError):
                pass

            try:
                resource.setrlimit(resource.RLIMIT_FSIZE, (0, 0))
            except (ValueError, OSError):
                pass
        except ImportError:
            pass
    return set_limits


def _parse_envelope(stdout: str, stderr: str, returncode: int, token: str) -> Tuple[Any, str]:
    lines = [line for line in stdout.splitlines() if line.strip()]
    if not lines:
        if 'MemoryError' in stderr:
            raise InvocationError("Memory limit exceeded", kind="memory_error")
        detail = stderr.strip()[-500:] or f"Sandbox exited with code {returncode} and no output"
        raise InvocationError(detail)

    try:
        result_data = json.loads(lines[-1])
    except json.JSONDecodeError:
        raise InvocationError(f"Failed to parse output: {stdout[:200]}")

    if not isinstance(result_data, dict) or "status" not in result_data:
        raise InvocationError("Invalid response format")

    if result_data.get("token") != token:
        raise InvocationError("Invalid response format: reply does not carry the run token")

    captured = result_data.get("stdout", "")
    if result_data["status"] == "ok":
        return result_data.get("result"), captured

    raise InvocationError(
        result_data.get("message", "Unknown error"),
        kind=result_data.get("kind", "runtime_error"),
        stdout=captured
    )


def run_function(
    source: str,
    entry_point: str,
    args: list,
    timeout_sec: float,
    memory_limit_mb: int,
    allowed_modules: Optional[List[str]] = None,
    max_output_chars: int = 10000,
    python_executable: Optional[str] = None
) -> Tuple[Any, str]:
    """
    Run a function from candidate source in a fresh sandboxed interpreter.

    Args:
        source: Candidate source text
        entry_point: Name of the function to call
        args: Positional arguments (JSON-compatible values)
        timeout_sec: Wall-clock deadline in seconds
        memory_limit_mb: Address-space limit in MB (Unix only)
        allowed_modules: Modules the candidate may import
        max_output_chars: Cap on captured candidate stdout
        python_executable: Interpreter to use instead of the current one

    Returns:
        Tuple of (return_value, captured_stdout)

    Raises:
        TimeLimitExceeded: If the deadline passed; the process has been killed
        InvocationError: If the candidate code failed or the sandbox misbehaved
    """
    token = secrets.token_hex(16)
    try:
        payload = json.dumps({
            "source": source,
            "entry_point": entry_point,
            "args": list(args),
            "allowed_modules": list(DEFAULT_ALLOWED_MODULES if allowed_modules is None else allowed_modules),
            "max_output_chars": max_output_chars,
            "token": token,
        }, default=json_default)
    except (TypeError, ValueError) as e:
        raise InvocationError(f"Arguments cannot be passed to the sandbox: {e}") from e

    command = [python_executable or PYTHON_EXE, *ISOLATION_FLAGS, str(WORKER_PATH)]
    limit_ms = int(timeout_sec * 1000)

    with tempfile.TemporaryDirectory() as temp_dir:
        run_kwargs = {}
        if platform.system() != "Windows":
            run_kwargs["preexec_fn"] = _limits_fn(timeout_sec, memory_limit_mb)

        start_time = time.monotonic()
        try:
            proc = subprocess.run(
                command,
                input=payload.encode('utf-8'),
                capture_output=True,
                timeout=timeout_sec,
                check=False,
                cwd=temp_dir,
                env=_minimal_env(),
                **run_kwargs
            )
        except subprocess.TimeoutExpired:
            elapsed_ms = int((time.monotonic() - start_time) * 1000)
            raise TimeLimitExceeded(max(elapsed_ms, limit_ms + 1), limit_ms)
        except OSError as e:
            raise InvocationError(f"Could not start sandbox: {e}") from e

        elapsed_ms = int((time.monotonic() - start_time) * 1000)

    stdout = proc.stdout.decode('utf-8', errors='replace')
    stderr = proc.stderr.decode('utf-8', errors='replace')

    if proc.returncode < 0:
        killed_by = -proc.returncode
        if killed_by == getattr(signal, "SIGXCPU", None) or elapsed_ms >= limit_ms:
            raise TimeLimitExceeded(max(elapsed_ms, limit_ms + 1), limit_ms)
        raise InvocationError(f"Process terminated by signal {killed_by}")

    return _parse_envelope(stdout, stderr, proc.returncode, token)

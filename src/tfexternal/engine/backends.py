"""Command execution backend.

Launches external programs without a shell, captures their output to files
in a caller-provided directory, and terminates them when the operation's
context is cancelled.
"""

import logging
import os
import subprocess
import time
from collections.abc import Mapping
from contextlib import ExitStack
from pathlib import Path
from typing import BinaryIO

from tfexternal.engine.context import OperationContext
from tfexternal.engine.protocols import (
    COMBINED_OUTPUT_FILE,
    STDERR_FILE,
    STDIN_FILE,
    STDOUT_FILE,
    CaptureMode,
    ExecutionResult,
)
from tfexternal.exceptions import (
    ImplicitRelativePathError,
    InterchangeFileError,
    ProgramCancelledError,
    ProgramExecutionError,
    ProgramLookupError,
    ProgramMissingError,
)
from tfexternal.log import trace

logger = logging.getLogger(__name__)

# How often a running program is checked against its context
POLL_INTERVAL_SECONDS = 0.05

# Default seconds between SIGTERM and SIGKILL on cancellation
DEFAULT_TERMINATE_GRACE_SECONDS = 5.0

CAPTURE_FILE_MODE = 0o600


def filter_program(argv: list[str], kind: str = "resource") -> list[str]:
    """Drop empty (or null) elements left behind by upstream list filtering.

    Raises:
        ProgramMissingError: nothing is left to execute
    """
    program = [arg for arg in argv if arg]
    if not program:
        raise ProgramMissingError(kind)
    return program


def _is_executable(path: str) -> bool:
    return os.path.isfile(path) and os.access(path, os.X_OK)


def lookup_program(name: str, search_path: str) -> str:
    """Find ``name`` the way a PATH lookup does.

    Names containing a path separator are checked as-is. Otherwise each PATH
    entry is tried in order; an empty entry means the current directory.

    Raises:
        ImplicitRelativePathError: the only match came through a relative entry
        ProgramLookupError: no executable match
    """
    separators = [os.sep] + ([os.altsep] if os.altsep else [])
    if any(sep in name for sep in separators):
        if _is_executable(name):
            return name
        reason = "no such file" if not os.path.exists(name) else "file is not executable"
        raise ProgramLookupError(name, f"{name}: {reason}", search_path)

    for entry in search_path.split(os.pathsep):
        candidate = os.path.join(entry or ".", name)
        if not _is_executable(candidate):
            continue
        if not os.path.isabs(candidate):
            raise ImplicitRelativePathError(name, candidate)
        return candidate

    raise ProgramLookupError(name, f"{name}: executable file not found in $PATH", search_path)


def resolve_program(name: str, search_path: str) -> str:
    """Resolve a program path, accepting matches from relative PATH entries.

    Compatibility only: programs found through a relative PATH entry (for
    example "." in PATH) used to run, so they still do.
    """
    try:
        return lookup_program(name, search_path)
    except ImplicitRelativePathError as e:
        logger.debug("Using %s found through a relative PATH entry", e.found)
        return e.found


def _open_capture(path: Path) -> BinaryIO:
    """Create a fresh owner-only capture file, replacing any leftover one.

    Raises:
        InterchangeFileError: the file could not be created
    """
    try:
        if path.exists():
            path.unlink()
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, CAPTURE_FILE_MODE)
    except OSError as e:
        raise InterchangeFileError(f"Error creating capture file {path}", str(path), str(e)) from e
    return os.fdopen(fd, "wb")


def _stage_stdin(path: Path, data: bytes) -> BinaryIO:
    with _open_capture(path) as f:
        try:
            f.write(data)
        except OSError as e:
            raise InterchangeFileError(f"Error writing {path}", str(path), str(e)) from e
    try:
        return open(path, "rb")
    except OSError as e:
        raise InterchangeFileError(f"Error opening {path}", str(path), str(e)) from e


def _read_capture(path: Path) -> str:
    try:
        return path.read_bytes().decode("utf-8", errors="replace")
    except FileNotFoundError:
        return ""


def _describe_exit(returncode: int) -> str:
    if returncode < 0:
        return f"signal: {-returncode}"
    return f"exit status {returncode}"


class SubprocessExecutor:
    """Execute programs as child processes.

    Output goes to files in ``capture_dir`` rather than pipes, so arbitrarily
    large output is never buffered in memory while the program runs and a
    program that ignores its input cannot block the bridge.
    """

    def __init__(self, terminate_grace: float = DEFAULT_TERMINATE_GRACE_SECONDS) -> None:
        self._terminate_grace = terminate_grace

    def run(
        self,
        argv: list[str],
        *,
        name: str,
        capture_dir: Path,
        env: Mapping[str, str] | None = None,
        cwd: str | Path | None = None,
        capture_mode: CaptureMode = CaptureMode.COMBINED,
        stdin: bytes | None = None,
        context: OperationContext | None = None,
    ) -> ExecutionResult:
        """Run a program to completion, or until the context is done."""
        program = filter_program(argv)
        search_env = os.environ if env is None else env
        resolved = resolve_program(program[0], search_env.get("PATH", os.defpath))
        command = [resolved, *program[1:]]
        capture_dir = Path(capture_dir)

        trace(logger, "Executing external program", name=name, program=program)

        if capture_mode is CaptureMode.COMBINED:
            stdout_path = capture_dir / COMBINED_OUTPUT_FILE
            stderr_path = None
        else:
            stdout_path = capture_dir / STDOUT_FILE
            stderr_path = capture_dir / STDERR_FILE

        start = time.monotonic()
        process: subprocess.Popen[bytes] | None = None
        launch_error: OSError | None = None
        cancelled = False

        with ExitStack() as stack:
            stdout_file = stack.enter_context(_open_capture(stdout_path))
            stderr_target: BinaryIO | int = subprocess.STDOUT
            if stderr_path is not None:
                stderr_target = stack.enter_context(_open_capture(stderr_path))

            stdin_target: BinaryIO | int = subprocess.DEVNULL
            if stdin is not None:
                stdin_target = stack.enter_context(_stage_stdin(capture_dir / STDIN_FILE, stdin))

            try:
                process = subprocess.Popen(
                    command,
                    stdin=stdin_target,
                    stdout=stdout_file,
                    stderr=stderr_target,
                    env=dict(env) if env is not None else None,
                    cwd=cwd or None,
                )
            except OSError as e:
                launch_error = e
            else:
                cancelled = self._wait(process, context)

        result = ExecutionResult(
            command=program,
            exit_code=process.returncode if process is not None else -1,
            output=_read_capture(stdout_path),
            stderr=_read_capture(stderr_path) if stderr_path is not None else "",
            capture_mode=capture_mode,
            duration_seconds=time.monotonic() - start,
            cancelled=cancelled,
        )

        trace(
            logger,
            "Executed external program",
            name=name,
            program=program,
            exit_code=result.exit_code,
            output_bytes=result.output_bytes,
            output=result.output,
            stderr=result.stderr,
        )

        if launch_error is not None:
            raise ProgramExecutionError(name, program, str(launch_error), result) from launch_error
        if cancelled:
            assert context is not None
            raise ProgramCancelledError(
                name,
                program,
                f"{context.reason}, terminated ({_describe_exit(result.exit_code)})",
                result,
            )
        if result.exit_code != 0:
            raise ProgramExecutionError(name, program, _describe_exit(result.exit_code), result)

        logger.debug("%s finished in %.2fs", name, result.duration_seconds)
        return result

    def _wait(self, process: subprocess.Popen[bytes], context: OperationContext | None) -> bool:
        """Wait for the process; return True if it was terminated for cancellation."""
        if context is None:
            process.wait()
            return False

        while True:
            if process.poll() is not None:
                return False
            if context.done():
                self._terminate(process)
                return True
            timeout = POLL_INTERVAL_SECONDS
            remaining = context.remaining()
            if remaining is not None:
                timeout = min(timeout, remaining)
            try:
                process.wait(timeout=timeout)
                return False
            except subprocess.TimeoutExpired:
                continue

    def _terminate(self, process: subprocess.Popen[bytes]) -> None:
        logger.warning("Terminating external program (pid %d)", process.pid)
        process.terminate()
        try:
            process.wait(timeout=self._terminate_grace)
        except subprocess.TimeoutExpired:
            process.kill()
            process.wait()

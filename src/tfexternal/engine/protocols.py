"""Protocols for the command execution engine.

Defines the contract between the lifecycle orchestrator (or the stateless
query runner) and whatever actually launches the external program, so the
orchestrator can be tested without spawning processes.
"""

from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict

if TYPE_CHECKING:
    from tfexternal.engine.context import OperationContext


class CaptureMode(str, Enum):
    """How stdout and stderr of the program are captured."""

    COMBINED = "combined"  # both streams into `stdall`
    SPLIT = "split"  # `stdout` and `stderr` separately


# Capture file names inside the capture directory
COMBINED_OUTPUT_FILE = "stdall"
STDOUT_FILE = "stdout"
STDERR_FILE = "stderr"
STDIN_FILE = "stdin"


class ExecutionResult(BaseModel):
    """Result of one program execution.

    Frozen because results are immutable facts about past executions.
    In combined mode ``output`` holds both streams and ``stderr`` is empty.
    """

    model_config = ConfigDict(frozen=True)

    command: list[str]
    exit_code: int
    output: str
    stderr: str = ""
    capture_mode: CaptureMode = CaptureMode.COMBINED
    duration_seconds: float
    cancelled: bool = False

    @property
    def error_output(self) -> str:
        """Text that best explains a failure: stderr, or everything when combined."""
        if self.capture_mode is CaptureMode.COMBINED:
            return self.output
        return self.stderr

    @property
    def output_bytes(self) -> int:
        return len(self.output.encode()) + len(self.stderr.encode())


@runtime_checkable
class CommandExecutor(Protocol):
    """Protocol for program execution backends.

    Implementations raise ProgramMissingError, ProgramLookupError,
    InterchangeFileError (capture files), ProgramExecutionError or
    ProgramCancelledError; a returned result always has exit code 0.
    """

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
        context: "OperationContext | None" = None,
    ) -> ExecutionResult:
        """Execute a program and return the result."""
        ...

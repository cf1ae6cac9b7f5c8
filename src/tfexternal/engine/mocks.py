"""Mock implementations for testing the engine layer.

MockExecutor stands in for a real program: a handler receives the call
(including the interchange directory) and can read and write files there
exactly like a program would, without spawning a process.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from tfexternal.engine.backends import filter_program
from tfexternal.engine.context import OperationContext
from tfexternal.engine.environment import ENV_DIR
from tfexternal.engine.protocols import CaptureMode, CommandExecutor, ExecutionResult
from tfexternal.exceptions import ProgramExecutionError


@dataclass
class MockCall:
    """One recorded call to MockExecutor.run()."""

    argv: list[str]
    name: str
    capture_dir: Path
    env: dict[str, str] = field(default_factory=dict)
    cwd: str | Path | None = None
    capture_mode: CaptureMode = CaptureMode.COMBINED
    stdin: bytes | None = None

    @property
    def directory(self) -> Path:
        """Directory the program would see as TF_EXTERNAL_DIR."""
        return Path(self.env.get(ENV_DIR, self.capture_dir))

    def read(self, name: str) -> str:
        return (self.directory / name).read_text()

    def write(self, name: str, content: str) -> None:
        (self.directory / name).write_text(content)


# A handler returns (exit_code, output); None means (0, "")
MockHandler = Callable[[MockCall], "tuple[int, str] | None"]


class MockExecutor:
    """Mock execution backend for testing.

    Records all calls and runs an optional handler that simulates the program.
    A nonzero exit code from the handler raises ProgramExecutionError just
    like the real backend.
    """

    def __init__(self, handler: MockHandler | None = None) -> None:
        self.handler = handler
        self.calls: list[MockCall] = []

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
        """Record the call, run the handler, and build the result."""
        program = filter_program(argv)
        call = MockCall(
            argv=program,
            name=name,
            capture_dir=Path(capture_dir),
            env=dict(env or {}),
            cwd=cwd,
            capture_mode=capture_mode,
            stdin=stdin,
        )
        self.calls.append(call)

        exit_code, output = 0, ""
        if self.handler is not None:
            outcome = self.handler(call)
            if outcome is not None:
                exit_code, output = outcome

        result = ExecutionResult(
            command=program,
            exit_code=exit_code,
            output=output,
            capture_mode=capture_mode,
            duration_seconds=0.0,
        )
        if exit_code != 0:
            raise ProgramExecutionError(name, program, f"exit status {exit_code}", result)
        return result

    def set_handler(self, handler: MockHandler | None) -> None:
        """Change the handler for subsequent calls."""
        self.handler = handler

    def reset(self) -> None:
        """Clear all recorded calls."""
        self.calls.clear()


# Verify protocol compliance at import time
assert isinstance(MockExecutor(), CommandExecutor)

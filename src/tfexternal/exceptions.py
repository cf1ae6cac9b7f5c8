"""tfexternal exception hierarchy.

Every component of the bridge raises one of these. Each exception carries a
short ``summary``, a ``detail`` string with remediation text, and a
``severity`` so the lifecycle orchestrator can turn it into a diagnostic
without knowing which component raised it.

Usage:
    from tfexternal.exceptions import ProgramExecutionError, ExternalError

    try:
        run_data_source(["./fetch"], {"name": "x"})
    except ProgramExecutionError as e:
        print(e.result.stderr)
    except ExternalError as e:
        print(f"{e.summary}: {e.detail}")
"""

import platform
from typing import TYPE_CHECKING

from tfexternal.diagnostics import Severity

if TYPE_CHECKING:
    from tfexternal.engine.protocols import ExecutionResult


class ExternalError(Exception):
    """Base exception for all tfexternal errors."""

    severity: Severity = Severity.ERROR

    def __init__(self, summary: str, detail: str = "") -> None:
        self.summary = summary
        self.detail = detail
        self.message = f"{summary}: {detail}" if detail else summary
        super().__init__(self.message)


# Configuration Errors


class ConfigurationError(ExternalError):
    """Invalid resource definition or query options."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__("Invalid Configuration", reason)


# Interchange Directory Errors


class DirectoryCreationError(ExternalError):
    """Setting up the interchange directory failed.

    Raised for the first failing filesystem operation; nothing after it is
    attempted.
    """

    def __init__(self, summary: str, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(summary, reason)


class PathResolutionError(ExternalError):
    """The interchange directory path could not be made absolute."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        super().__init__(f"Failed converting {path!r} to absolute path", reason)


class InterchangeFileError(ExternalError):
    """A file in the interchange directory could not be read or its mode changed."""

    def __init__(self, summary: str, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(summary, reason)


class MissingFileWarning(ExternalError):
    """A file expected in the interchange directory does not exist.

    Not fatal: a vanished file reads as empty content, which for ``id`` is how
    a program signals that the resource is gone.
    """

    severity = Severity.WARNING

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        super().__init__(f"Error retrieving file information for {path}", reason)


class CleanupWarning(ExternalError):
    """The interchange directory could not be removed after the operation."""

    severity = Severity.WARNING

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        super().__init__(f"Error when cleaning up temporary directory {path}", reason)


# Program Errors


class ProgramMissingError(ExternalError):
    """The program vector is empty once empty strings are dropped."""

    def __init__(self, kind: str = "resource") -> None:
        super().__init__(
            "External Program Missing",
            f"The {kind} was configured without a program to execute. "
            "Verify the configuration contains at least one non-empty value.",
        )


class ImplicitRelativePathError(ExternalError):
    """The program was only found through a relative PATH entry.

    Callers resolving a program treat this as success, see
    ``tfexternal.engine.backends.resolve_program``.
    """

    def __init__(self, program: str, found: str) -> None:
        self.program = program
        self.found = found
        super().__init__(
            "External Program Found In Relative Path",
            f"{program!r} resolves to {found!r} through a relative PATH entry",
        )


class ProgramLookupError(ExternalError):
    """The program could not be found or is not executable."""

    def __init__(self, program: str, reason: str, search_path: str = "") -> None:
        self.program = program
        self.reason = reason
        self.search_path = search_path
        detail = (
            "An unexpected error occurred while attempting to find the program.\n\n"
            "The program must be accessible according to the platform where the bridge is running.\n\n"
            "If the expected program should be automatically found, ensure that the program is in "
            "an expected directory. On Unix-based platforms, these directories are typically "
            "searched based on the '$PATH' environment variable. On Windows-based platforms, "
            "these directories are typically searched based on the '%PATH%' environment variable.\n\n"
            "If the expected program is relative to the configuration, include the configuration "
            'directory in the program name, for example: "${path.module}/my-program"\n\n'
            "The program must also be executable according to the platform. On Unix-based "
            "platforms, the file on the filesystem must have the executable bit set.\n"
            f"\nPlatform: {platform.system().lower()}"
            f"\nProgram: {program}"
            f"\nSearched PATH: {search_path}"
            f"\nError: {reason}"
        )
        super().__init__("External Program Lookup Failed", detail)


class ProgramExecutionError(ExternalError):
    """The program could not be launched or exited with a nonzero status.

    Carries the ExecutionResult so callers can inspect the captured output.
    """

    def __init__(
        self,
        name: str,
        command: list[str],
        state: str,
        result: "ExecutionResult | None" = None,
    ) -> None:
        self.name = name
        self.command = command
        self.state = state
        self.result = result
        error_output = result.error_output if result is not None else ""
        detail = "An unexpected error occurred while attempting to execute the program.\n\n"
        if error_output:
            detail += f"Program: {command[0]}\nError Message: {error_output}\nState: {state}"
        else:
            detail += (
                "The program was executed, however it returned no additional error messaging.\n\n"
                f"Program: {command[0]}\nState: {state}"
            )
        detail += f"\nCommand: {command}"
        super().__init__(f"Error when running {name}", detail)

    @property
    def exit_code(self) -> int | None:
        return self.result.exit_code if self.result is not None else None


class ProgramCancelledError(ProgramExecutionError):
    """The program was terminated because the operation was cancelled."""


# Output Errors


class MalformedOutputError(ExternalError):
    """Program output did not match the active protocol contract."""

    def __init__(self, program: str, expectation: str, reason: str) -> None:
        self.program = program
        self.reason = reason
        super().__init__(
            "Unexpected External Program Results",
            "Unexpected results were received after executing the program.\n\n"
            f"{expectation}\n\n"
            "If the error is unclear, the output can be viewed by enabling TRACE logging.\n"
            f"\nProgram: {program}"
            f"\nResult Error: {reason}",
        )


class MissingIdentityError(ExternalError):
    """The program did not write a non-empty ``id`` during create."""

    def __init__(self, name: str, path: str) -> None:
        self.name = name
        self.path = path
        super().__init__(
            f"Missing resource identity after {name}",
            f"The program did not write a non-empty id to {path}; "
            "the resource is considered not created.",
        )

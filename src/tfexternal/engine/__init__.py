"""Execution engine for external programs.

- InterchangeManager: per-step interchange directories
- build_environment: environment exposing the directory to the program
- SubprocessExecutor: launches programs, captures output, honours cancellation
- CommandExecutor: protocol for alternative execution backends
- Container: composition root with overridable defaults
"""

from tfexternal.engine.backends import (
    SubprocessExecutor,
    filter_program,
    lookup_program,
    resolve_program,
)
from tfexternal.engine.context import OperationContext, cancel_on_interrupt
from tfexternal.engine.environment import (
    ENV_DIR,
    ENV_DIR_ABS,
    ENV_MANAGED_FILES,
    build_environment,
)
from tfexternal.engine.interchange import InterchangeDirectory, InterchangeManager
from tfexternal.engine.protocols import CaptureMode, CommandExecutor, ExecutionResult
from tfexternal.engine.container import Container

__all__ = [
    # Composition root
    "Container",
    # Protocols and types
    "CommandExecutor",
    "ExecutionResult",
    "CaptureMode",
    "OperationContext",
    # Implementations
    "SubprocessExecutor",
    "InterchangeManager",
    "InterchangeDirectory",
    # Functions
    "build_environment",
    "filter_program",
    "lookup_program",
    "resolve_program",
    "cancel_on_interrupt",
    # Environment variable names
    "ENV_DIR",
    "ENV_DIR_ABS",
    "ENV_MANAGED_FILES",
]

"""tfexternal - drive resource lifecycles through external programs.

Files in a per-step interchange directory carry attributes between the
engine and an arbitrary program; stateless queries exchange JSON over
stdin and stdout.
"""

from tfexternal.exceptions import (
    CleanupWarning,
    ConfigurationError,
    DirectoryCreationError,
    ExternalError,
    ImplicitRelativePathError,
    InterchangeFileError,
    MalformedOutputError,
    MissingFileWarning,
    MissingIdentityError,
    PathResolutionError,
    ProgramCancelledError,
    ProgramExecutionError,
    ProgramLookupError,
    ProgramMissingError,
)

__version__ = "0.1.0"

__all__ = [
    # Base exception
    "ExternalError",
    # Configuration
    "ConfigurationError",
    # Interchange directory
    "DirectoryCreationError",
    "PathResolutionError",
    "InterchangeFileError",
    "MissingFileWarning",
    "CleanupWarning",
    # Program
    "ProgramMissingError",
    "ImplicitRelativePathError",
    "ProgramLookupError",
    "ProgramExecutionError",
    "ProgramCancelledError",
    # Results
    "MalformedOutputError",
    "MissingIdentityError",
]

"""Pydantic models for managed external resources.

ExternalResource holds both the configuration (program vectors, interchange
directory options) and the attributes the lifecycle protocol moves between
the engine and the program.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Annotated, Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError, model_validator

from tfexternal.diagnostics import Diagnostics
from tfexternal.engine.protocols import CaptureMode
from tfexternal.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Attributes whose values never appear in logs or rendered output
SENSITIVE_ATTRIBUTES = ("input_sensitive", "output_sensitive")

# Argument vector, element 0 is the executable
ProgramArgv = Annotated[list[str], Field(min_length=1)]


class ExternalResource(BaseModel):
    """A resource whose lifecycle is implemented by external programs."""

    model_config = ConfigDict(extra="forbid")

    # Attributes
    id: str = Field(default="", description="Resource identity; empty means it does not exist")
    input: str = Field(default="", description="Caller input, read-only to the program")
    input_sensitive: SecretStr = Field(default=SecretStr(""), description="Sensitive caller input")
    state: str = Field(default="", description="Opaque state blob owned by the program")
    output: str = Field(default="", description="Output computed by the program")
    output_sensitive: SecretStr = Field(default=SecretStr(""), description="Sensitive output")

    # Programs
    program_create: ProgramArgv | None = Field(
        default=None, description="Create command; falls back to program_update"
    )
    program_read: ProgramArgv
    program_update: ProgramArgv
    program_delete: ProgramArgv

    # Execution options
    working_dir: str | None = Field(default=None, description="Working directory of the program")
    program_tmpdir: str = Field(default="", description="Pinned interchange directory")
    program_tmpdir_keep: bool = Field(default=False, description="Never remove the directory")
    program_tmpdir_keep_on_error: bool = Field(
        default=False, description="Keep the directory when the step failed"
    )
    program_output_combined: bool = Field(
        default=True, description="Capture stdout and stderr into one file"
    )

    @model_validator(mode="before")
    @classmethod
    def _fold_deprecated_tmp_dir(cls, data: Any) -> Any:
        """Accept the older ``program_tmp_dir`` spelling of ``program_tmpdir``."""
        if not isinstance(data, dict) or "program_tmp_dir" not in data:
            return data
        data = dict(data)
        legacy = data.pop("program_tmp_dir")
        logger.warning("program_tmp_dir is deprecated, use program_tmpdir")
        if not data.get("program_tmpdir"):
            data["program_tmpdir"] = legacy or ""
        return data

    @property
    def exists(self) -> bool:
        return self.id != ""

    @property
    def capture_mode(self) -> CaptureMode:
        if self.program_output_combined:
            return CaptureMode.COMBINED
        return CaptureMode.SPLIT

    def state_dict(self) -> dict[str, Any]:
        """Dump every field with sensitive values revealed, for state storage."""
        data = self.model_dump(exclude=set(SENSITIVE_ATTRIBUTES))
        for name in SENSITIVE_ATTRIBUTES:
            data[name] = getattr(self, name).get_secret_value()
        return data

    def with_attributes(self, source: "ExternalResource") -> "ExternalResource":
        """Copy of this configuration carrying the computed attributes of ``source``."""
        return self.model_copy(
            update={
                "id": source.id,
                "state": source.state,
                "output": source.output,
                "output_sensitive": source.output_sensitive,
            }
        )

    def planned_from(self, prior: "ExternalResource") -> "ExternalResource":
        """Planned resource for an update of ``prior``.

        ``state`` set explicitly in this configuration wins; otherwise the
        tracked value carries over.
        """
        planned = self.with_attributes(prior)
        if "state" in self.model_fields_set:
            planned = planned.model_copy(update={"state": self.state})
        return planned


@dataclass
class LifecycleResult:
    """Outcome of one lifecycle verb.

    ``resource`` reflects everything read back before the step stopped;
    callers drop it from tracked state when ``exists`` is False.
    """

    resource: ExternalResource
    diagnostics: Diagnostics = field(default_factory=Diagnostics)

    @property
    def exists(self) -> bool:
        return self.resource.exists

    @property
    def has_error(self) -> bool:
        return self.diagnostics.has_error()


def load_resource_definition(path: Path) -> ExternalResource:
    """Load a resource definition from a YAML file.

    Raises:
        ConfigurationError: the file is unreadable or does not validate
    """
    try:
        data = yaml.safe_load(path.read_text()) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"cannot load {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a mapping")

    try:
        return ExternalResource.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"{path}: {e}") from e

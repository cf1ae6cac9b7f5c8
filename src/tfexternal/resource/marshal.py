"""Mapping between resource attributes and interchange files."""

from collections.abc import Mapping

from pydantic import SecretStr

from tfexternal.resource.models import SENSITIVE_ATTRIBUTES, ExternalResource

# Files the program may only write start out write-only; id and state are
# read/write; everything else is read-only to the program.
FILE_PERMS: dict[str, int] = {
    "input": 0o400,
    "input_sensitive": 0o400,
    "output": 0o200,
    "output_sensitive": 0o200,
    "state": 0o600,
    "old_state": 0o400,
    "id": 0o600,
}

MANAGED_FILES = tuple(FILE_PERMS)

# Read back after a successful create/read/update, after `id`
READBACK_ATTRIBUTES = ("state", "output", "output_sensitive")


def resource_fields(
    resource: ExternalResource,
    prior: ExternalResource | None = None,
) -> dict[str, str]:
    """File contents for an interchange directory.

    ``state`` comes from ``resource`` (the planned or current value) and
    ``old_state`` from ``prior``; with no prior (create) it is empty.
    """
    return {
        "input": resource.input,
        "input_sensitive": resource.input_sensitive.get_secret_value(),
        "output": resource.output,
        "output_sensitive": resource.output_sensitive.get_secret_value(),
        "state": resource.state,
        "old_state": prior.state if prior is not None else "",
        "id": resource.id,
    }


def resource_perms() -> dict[str, int]:
    return dict(FILE_PERMS)


def apply_readback(resource: ExternalResource, values: Mapping[str, str]) -> ExternalResource:
    """Return a copy of ``resource`` with read-back file contents applied."""
    update: dict[str, object] = {}
    for name, text in values.items():
        update[name] = SecretStr(text) if name in SENSITIVE_ATTRIBUTES else text
    return resource.model_copy(update=update)

"""Resource lifecycle command implementations.

Attributes between invocations live in a JSON state file next to the
definition. It holds sensitive values in clear text, so it is written
owner-only.
"""

import json
import logging
import os
from enum import Enum
from pathlib import Path

from pydantic import ValidationError

from tfexternal.display import (
    print_diagnostics,
    print_error,
    print_resource,
    print_success,
    print_warning,
)
from tfexternal.engine.container import Container
from tfexternal.engine.context import OperationContext, cancel_on_interrupt
from tfexternal.exceptions import ConfigurationError
from tfexternal.resource.models import ExternalResource, LifecycleResult, load_resource_definition

logger = logging.getLogger(__name__)

STATE_FILE_MODE = 0o600


class Verb(str, Enum):
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"


def default_state_path(definition: Path) -> Path:
    """``app.yaml`` keeps its state in ``app.state.json``."""
    return definition.with_suffix(".state.json")


def load_state(path: Path) -> ExternalResource | None:
    """Load tracked attributes, None when nothing is tracked yet.

    Raises:
        ConfigurationError: the state file is unreadable or invalid
    """
    if not path.exists():
        return None
    try:
        return ExternalResource.model_validate(json.loads(path.read_text()))
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        raise ConfigurationError(f"cannot load state {path}: {e}") from e


def save_state(path: Path, resource: ExternalResource) -> None:
    """Persist the resource, or forget it when it no longer exists."""
    if not resource.exists:
        if path.exists():
            path.unlink()
            logger.debug("Removed state file %s", path)
        return

    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, STATE_FILE_MODE)
    with os.fdopen(fd, "w") as f:
        json.dump(resource.state_dict(), f, indent=2)
        f.write("\n")
    logger.debug("Wrote state file %s", path)


def _load(
    definition: Path, state_path: Path | None
) -> tuple[ExternalResource, ExternalResource | None, Path]:
    state_path = state_path or default_state_path(definition)
    try:
        config = load_resource_definition(definition)
        prior = load_state(state_path)
    except ConfigurationError as e:
        print_error(e.message)
        raise SystemExit(1) from e
    return config, prior, state_path


def _finish(result: LifecycleResult, state_path: Path, action: str) -> None:
    print_diagnostics(result.diagnostics)
    save_state(state_path, result.resource)
    if result.has_error:
        print_error(f"{action} failed")
        raise SystemExit(1)
    print_success(f"{action} complete")
    print_resource(result.resource)


def resource_command(
    verb: Verb,
    definition: Path,
    state_path: Path | None = None,
    timeout: float | None = None,
) -> None:
    """Run one lifecycle verb for the resource defined in ``definition``.

    Args:
        verb: Lifecycle verb to run
        definition: YAML resource definition
        state_path: JSON state file (defaults next to the definition)
        timeout: Seconds before the program is terminated
    """
    config, prior, state_path = _load(definition, state_path)

    if verb is Verb.CREATE and prior is not None and prior.exists:
        print_error(f"Resource already exists with id {prior.id!r}, see {state_path}")
        raise SystemExit(1)
    if verb is not Verb.CREATE and (prior is None or not prior.exists):
        print_error(f"No tracked resource in {state_path}, run create or import first")
        raise SystemExit(1)

    orchestrator = Container.orchestrator()
    with cancel_on_interrupt(OperationContext(timeout=timeout)) as context:
        if verb is Verb.CREATE:
            result = orchestrator.create(config, context=context)
        elif verb is Verb.READ:
            result = orchestrator.read(config.with_attributes(prior), context=context)
        elif verb is Verb.UPDATE:
            result = orchestrator.update(prior, config.planned_from(prior), context=context)
        else:
            result = orchestrator.delete(config.with_attributes(prior), context=context)

    if verb in (Verb.READ, Verb.UPDATE) and not result.exists and not result.has_error:
        print_warning(f"Resource {prior.id!r} no longer exists, dropping it from {state_path}")
    _finish(result, state_path, verb.value.capitalize())


def import_command(
    resource_id: str,
    definition: Path,
    state_path: Path | None = None,
    timeout: float | None = None,
) -> None:
    """Adopt an existing resource by id and read its attributes."""
    config, prior, state_path = _load(definition, state_path)

    if prior is not None and prior.exists:
        print_error(f"Resource already tracked with id {prior.id!r}, see {state_path}")
        raise SystemExit(1)

    with cancel_on_interrupt(OperationContext(timeout=timeout)) as context:
        result = Container.orchestrator().import_resource(resource_id, config, context=context)

    if not result.exists and not result.has_error:
        print_error(f"Resource {resource_id!r} does not exist")
        raise SystemExit(1)
    _finish(result, state_path, "Import")

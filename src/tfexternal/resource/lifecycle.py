"""Lifecycle orchestration for managed external resources.

Each verb is an independent call: open a fresh interchange directory seeded
from the resource's attributes, run one program, read the results back,
close the directory. Failures never raise out of a verb; they become
diagnostics, and the directory is closed on every path once it was opened.
"""

import logging
from collections.abc import Mapping

from tfexternal.diagnostics import Diagnostics
from tfexternal.engine.context import OperationContext
from tfexternal.engine.environment import build_environment
from tfexternal.engine.interchange import InterchangeDirectory, InterchangeManager
from tfexternal.engine.protocols import CommandExecutor
from tfexternal.exceptions import ExternalError, MissingFileWarning, MissingIdentityError
from tfexternal.resource.marshal import (
    READBACK_ATTRIBUTES,
    apply_readback,
    resource_fields,
    resource_perms,
)
from tfexternal.resource.models import ExternalResource, LifecycleResult

logger = logging.getLogger(__name__)


class LifecycleOrchestrator:
    """Implements create/read/update/delete on top of external programs.

    Holds no per-resource state, so one orchestrator can serve concurrent
    verbs for different resources.
    """

    def __init__(
        self,
        interchange: InterchangeManager,
        executor: CommandExecutor,
        base_env: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize with dependencies.

        Args:
            interchange: Manager for per-step interchange directories
            executor: Backend that runs the programs
            base_env: Environment to extend instead of os.environ
        """
        self._interchange = interchange
        self._executor = executor
        self._base_env = base_env

    def create(
        self, planned: ExternalResource, context: OperationContext | None = None
    ) -> LifecycleResult:
        """Create the resource, running program_update when program_create is unset.

        The program must write a non-empty ``id``.
        """
        if planned.program_create:
            name, command = "create>create", planned.program_create
        else:
            name, command = "create>update", planned.program_update
        planned = planned.model_copy(update={"id": ""})
        return self._run(
            "create", name, command, planned, prior=None, require_id=True, context=context
        )

    def read(
        self, current: ExternalResource, context: OperationContext | None = None
    ) -> LifecycleResult:
        """Refresh the resource. An empty ``id`` afterwards means it is gone."""
        return self._run(
            "read", "read", current.program_read, current, prior=current, context=context
        )

    def update(
        self,
        prior: ExternalResource,
        planned: ExternalResource,
        context: OperationContext | None = None,
    ) -> LifecycleResult:
        """Apply a planned change; ``old_state`` carries the prior state."""
        planned = planned.model_copy(update={"id": prior.id})
        return self._run(
            "update", "update", planned.program_update, planned, prior=prior, context=context
        )

    def delete(
        self, current: ExternalResource, context: OperationContext | None = None
    ) -> LifecycleResult:
        """Destroy the resource. Identity is cleared even when the program fails."""
        result = self._run(
            "delete",
            "delete",
            current.program_delete,
            current,
            prior=current,
            readback=False,
            context=context,
        )
        result.resource = result.resource.model_copy(update={"id": ""})
        return result

    def import_resource(
        self,
        resource_id: str,
        config: ExternalResource,
        context: OperationContext | None = None,
    ) -> LifecycleResult:
        """Adopt an existing resource by id, then read it."""
        seeded = config.model_copy(update={"id": resource_id})
        return self.read(seeded, context=context)

    def _run(
        self,
        verb: str,
        name: str,
        command: list[str],
        resource: ExternalResource,
        prior: ExternalResource | None,
        readback: bool = True,
        require_id: bool = False,
        context: OperationContext | None = None,
    ) -> LifecycleResult:
        diagnostics = Diagnostics()
        logger.debug("Running %s for resource %r", name, resource.id)

        try:
            directory = self._interchange.open(
                resource_fields(resource, prior),
                resource_perms(),
                pinned_path=resource.program_tmpdir or None,
            )
        except ExternalError as e:
            diagnostics.add_exception(e)
            return LifecycleResult(resource, diagnostics)

        completed = False
        try:
            resource = self._execute(
                verb, name, command, directory, resource, diagnostics, readback, require_id, context
            )
            completed = True
        finally:
            try:
                self._interchange.close(
                    directory,
                    keep_always=resource.program_tmpdir_keep,
                    keep_on_error=resource.program_tmpdir_keep_on_error,
                    had_error=diagnostics.has_error() or not completed,
                )
            except ExternalError as e:
                diagnostics.add_exception(e)

        return LifecycleResult(resource, diagnostics)

    def _execute(
        self,
        verb: str,
        name: str,
        command: list[str],
        directory: InterchangeDirectory,
        resource: ExternalResource,
        diagnostics: Diagnostics,
        readback: bool,
        require_id: bool,
        context: OperationContext | None,
    ) -> ExternalResource:
        try:
            env = build_environment(directory, self._base_env)
            self._executor.run(
                command,
                name=name,
                env=env,
                cwd=resource.working_dir,
                capture_dir=directory.path,
                capture_mode=resource.capture_mode,
                context=context,
            )
        except ExternalError as e:
            diagnostics.add_exception(e)
            return resource

        if not readback:
            return resource

        resource_id = self._read(directory, "id", diagnostics)
        if resource_id is None:
            return resource
        if require_id and not resource_id:
            diagnostics.add_exception(MissingIdentityError(verb, str(directory.file_path("id"))))
            return resource
        resource = resource.model_copy(update={"id": resource_id})
        if not resource_id:
            logger.info("%s cleared the resource id, resource no longer exists", name)

        values: dict[str, str] = {}
        for attribute in READBACK_ATTRIBUTES:
            text = self._read(directory, attribute, diagnostics)
            if text is not None:
                values[attribute] = text
        return apply_readback(resource, values)

    @staticmethod
    def _read(
        directory: InterchangeDirectory, name: str, diagnostics: Diagnostics
    ) -> str | None:
        """Read one file; None on a hard error, "" (plus a warning) when missing."""
        try:
            return directory.read_file(name)
        except MissingFileWarning as e:
            diagnostics.add_exception(e)
            return ""
        except ExternalError as e:
            diagnostics.add_exception(e)
            return None

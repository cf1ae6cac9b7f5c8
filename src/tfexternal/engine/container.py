"""Composition root for engine dependency injection.

Centralizes the creation and wiring of engine components: the one place
where concrete implementations are bound to protocols and where settings
supply defaults.

Usage:
    # Default usage (production)
    orchestrator = Container.orchestrator()

    # Testing with mocks
    Container.set_executor(MockExecutor(handler))
    Container.set_interchange(InterchangeManager(tmp_path))
    orchestrator = Container.orchestrator()

    # Reset to defaults
    Container.reset()
"""

from typing import TYPE_CHECKING

from tfexternal.engine.backends import SubprocessExecutor
from tfexternal.engine.interchange import InterchangeManager
from tfexternal.engine.protocols import CommandExecutor
from tfexternal.env import get_settings

if TYPE_CHECKING:
    from tfexternal.resource.lifecycle import LifecycleOrchestrator


class Container:
    """Service container for engine dependencies.

    Provides lazy initialization of default implementations and
    allows overriding for testing purposes.
    """

    _executor: CommandExecutor | None = None
    _interchange: InterchangeManager | None = None

    @classmethod
    def executor(cls) -> CommandExecutor:
        """Get the command executor.

        Returns SubprocessExecutor by default.
        """
        if cls._executor is None:
            cls._executor = SubprocessExecutor(
                terminate_grace=get_settings().tf_external_terminate_grace
            )
        return cls._executor

    @classmethod
    def interchange(cls) -> InterchangeManager:
        """Get the interchange directory manager.

        Rooted at ``<TF_DATA_DIR>/terraform-provider-external`` by default.
        """
        if cls._interchange is None:
            cls._interchange = InterchangeManager(get_settings().temp_dir_base)
        return cls._interchange

    @classmethod
    def orchestrator(cls) -> "LifecycleOrchestrator":
        """Create a LifecycleOrchestrator with current dependencies."""
        from tfexternal.resource.lifecycle import LifecycleOrchestrator

        return LifecycleOrchestrator(
            interchange=cls.interchange(),
            executor=cls.executor(),
        )

    @classmethod
    def set_executor(cls, executor: CommandExecutor | None) -> None:
        """Override the executor. Pass None to reset to default on next access."""
        cls._executor = executor

    @classmethod
    def set_interchange(cls, interchange: InterchangeManager | None) -> None:
        """Override the interchange manager. Pass None to reset to default on next access."""
        cls._interchange = interchange

    @classmethod
    def reset(cls) -> None:
        """Reset all overrides to defaults.

        Call this in test teardown to ensure clean state.
        """
        cls._executor = None
        cls._interchange = None

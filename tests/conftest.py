"""Shared pytest fixtures for tfexternal tests.

Provides common fixtures for wiring engine components and building resources.
"""

import os
from collections.abc import Callable
from pathlib import Path

import pytest

from tfexternal.engine import Container
from tfexternal.engine.interchange import InterchangeManager
from tfexternal.engine.mocks import MockExecutor
from tfexternal.env import clear_settings_cache
from tfexternal.resource.models import ExternalResource


@pytest.fixture
def interchange(tmp_path: Path) -> InterchangeManager:
    """Interchange manager rooted in a per-test directory, installed in Container."""
    manager = InterchangeManager(tmp_path / "interchange")
    Container.set_interchange(manager)
    yield manager
    Container.reset()


@pytest.fixture
def mock_executor() -> MockExecutor:
    """Fixture that sets up and tears down a mock executor via Container.

    Yields:
        MockExecutor with no handler (every program succeeds and writes nothing)
    """
    executor = MockExecutor()
    Container.set_executor(executor)
    yield executor
    Container.reset()


@pytest.fixture
def make_resource() -> Callable[..., ExternalResource]:
    """Factory for resources with placeholder programs."""

    def factory(**overrides) -> ExternalResource:
        data = {
            "program_read": ["read-program"],
            "program_update": ["update-program"],
            "program_delete": ["delete-program"],
        }
        data.update(overrides)
        return ExternalResource.model_validate(data)

    return factory


@pytest.fixture
def script(tmp_path: Path) -> Callable[[str, str], str]:
    """Write an executable POSIX shell script and return its path."""

    def factory(name: str, body: str) -> str:
        path = tmp_path / "bin" / name
        path.parent.mkdir(exist_ok=True)
        path.write_text("#!/bin/sh\n" + body)
        os.chmod(path, 0o755)
        return str(path)

    return factory


@pytest.fixture(autouse=True)
def _clean_settings() -> None:
    clear_settings_cache()
    yield
    clear_settings_cache()

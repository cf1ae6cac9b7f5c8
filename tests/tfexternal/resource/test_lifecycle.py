"""Tests for the lifecycle orchestrator."""

import os
import stat
from collections.abc import Callable
from pathlib import Path
from unittest.mock import patch

import pytest

from tfexternal.diagnostics import Severity
from tfexternal.engine.backends import SubprocessExecutor
from tfexternal.engine.environment import ENV_DIR, ENV_DIR_ABS, ENV_MANAGED_FILES
from tfexternal.engine.interchange import InterchangeManager
from tfexternal.engine.mocks import MockCall, MockExecutor, MockHandler
from tfexternal.resource.lifecycle import LifecycleOrchestrator
from tfexternal.resource.models import ExternalResource

ResourceFactory = Callable[..., ExternalResource]


def _orchestrator(
    interchange: InterchangeManager, handler: MockHandler | None = None
) -> tuple[LifecycleOrchestrator, MockExecutor]:
    executor = MockExecutor(handler)
    return LifecycleOrchestrator(interchange, executor, base_env={"PATH": "/bin"}), executor


def _write_id(value: str) -> MockHandler:
    def handler(call: MockCall) -> None:
        call.write("id", value)

    return handler


class TestCreate:
    """Tests for LifecycleOrchestrator.create()."""

    def test_falls_back_to_update(
        self, interchange: InterchangeManager, make_resource: ResourceFactory
    ) -> None:
        orchestrator, executor = _orchestrator(interchange, _write_id("abc"))

        result = orchestrator.create(make_resource())

        assert not result.has_error
        assert result.resource.id == "abc"
        assert executor.calls[0].argv == ["update-program"]
        assert executor.calls[0].name == "create>update"

    def test_uses_program_create(
        self, interchange: InterchangeManager, make_resource: ResourceFactory
    ) -> None:
        orchestrator, executor = _orchestrator(interchange, _write_id("abc"))

        orchestrator.create(make_resource(program_create=["create-program", "--now"]))

        assert executor.calls[0].argv == ["create-program", "--now"]
        assert executor.calls[0].name == "create>create"

    def test_environment_contract(
        self, interchange: InterchangeManager, make_resource: ResourceFactory
    ) -> None:
        seen: dict[str, str] = {}

        def handler(call: MockCall) -> None:
            seen.update(call.env)
            call.write("id", "abc")

        orchestrator, _ = _orchestrator(interchange, handler)
        orchestrator.create(make_resource())

        assert seen["PATH"] == "/bin"
        assert seen[ENV_DIR].startswith(str(interchange.base_path))
        assert os.path.isabs(seen[ENV_DIR_ABS])
        assert set(seen[ENV_MANAGED_FILES].split(":")) == {
            "input",
            "input_sensitive",
            "output",
            "output_sensitive",
            "state",
            "old_state",
            "id",
        }

    def test_program_sees_inputs_and_modes(
        self, interchange: InterchangeManager, make_resource: ResourceFactory
    ) -> None:
        seen: dict[str, object] = {}

        def handler(call: MockCall) -> None:
            seen["input"] = call.read("input")
            seen["input_sensitive"] = call.read("input_sensitive")
            seen["output_mode"] = stat.S_IMODE((call.directory / "output").stat().st_mode)
            seen["sensitive_mode"] = stat.S_IMODE(
                (call.directory / "output_sensitive").stat().st_mode
            )
            call.write("id", "abc")

        orchestrator, _ = _orchestrator(interchange, handler)
        orchestrator.create(make_resource(input="in", input_sensitive="secret"))

        assert seen == {
            "input": "in",
            "input_sensitive": "secret",
            "output_mode": 0o200,
            "sensitive_mode": 0o200,
        }

    def test_reads_back_outputs(
        self, interchange: InterchangeManager, make_resource: ResourceFactory
    ) -> None:
        def handler(call: MockCall) -> None:
            call.write("id", "abc")
            call.write("state", "s1")
            call.write("output", "public")
            call.write("output_sensitive", "private")

        orchestrator, _ = _orchestrator(interchange, handler)
        result = orchestrator.create(make_resource())

        assert result.resource.state == "s1"
        assert result.resource.output == "public"
        assert result.resource.output_sensitive.get_secret_value() == "private"

    def test_missing_identity(
        self, interchange: InterchangeManager, make_resource: ResourceFactory
    ) -> None:
        orchestrator, _ = _orchestrator(interchange)

        result = orchestrator.create(make_resource(id="leftover"))

        assert result.has_error
        assert not result.exists
        assert result.diagnostics.errors[0].summary == "Missing resource identity after create"

    def test_state_round_trip(
        self, interchange: InterchangeManager, make_resource: ResourceFactory
    ) -> None:
        orchestrator, _ = _orchestrator(interchange, _write_id("abc"))

        created = orchestrator.create(make_resource(state="S"))
        orchestrator._executor.set_handler(None)
        refreshed = orchestrator.read(created.resource)

        assert created.resource.state == "S"
        assert refreshed.resource.state == "S"
        assert refreshed.resource.id == "abc"


class TestDirectoryRetention:
    """Tests for interchange directory cleanup."""

    def test_removed_after_success(
        self, interchange: InterchangeManager, make_resource: ResourceFactory
    ) -> None:
        directories: list[Path] = []

        def handler(call: MockCall) -> None:
            directories.append(call.directory)
            call.write("id", "abc")

        orchestrator, _ = _orchestrator(interchange, handler)
        orchestrator.create(make_resource())

        assert not directories[0].exists()

    def test_removed_after_failure(
        self, interchange: InterchangeManager, make_resource: ResourceFactory
    ) -> None:
        directories: list[Path] = []

        def handler(call: MockCall) -> tuple[int, str]:
            directories.append(call.directory)
            return 1, "boom"

        orchestrator, _ = _orchestrator(interchange, handler)
        result = orchestrator.create(make_resource())

        assert result.has_error
        assert "boom" in result.diagnostics.errors[0].detail
        assert not directories[0].exists()

    def test_kept_on_error(
        self, interchange: InterchangeManager, make_resource: ResourceFactory
    ) -> None:
        directories: list[Path] = []

        def handler(call: MockCall) -> tuple[int, str]:
            directories.append(call.directory)
            return 1, "boom"

        orchestrator, _ = _orchestrator(interchange, handler)
        orchestrator.create(make_resource(program_tmpdir_keep_on_error=True))

        assert directories[0].exists()
        assert (directories[0] / "input").exists()

    def test_not_kept_on_success_with_keep_on_error(
        self, interchange: InterchangeManager, make_resource: ResourceFactory
    ) -> None:
        directories: list[Path] = []

        def handler(call: MockCall) -> None:
            directories.append(call.directory)
            call.write("id", "abc")

        orchestrator, _ = _orchestrator(interchange, handler)
        orchestrator.create(make_resource(program_tmpdir_keep_on_error=True))

        assert not directories[0].exists()

    def test_keep_always(
        self, interchange: InterchangeManager, make_resource: ResourceFactory
    ) -> None:
        directories: list[Path] = []

        def handler(call: MockCall) -> None:
            directories.append(call.directory)
            call.write("id", "abc")

        orchestrator, _ = _orchestrator(interchange, handler)
        orchestrator.create(make_resource(program_tmpdir_keep=True))

        assert directories[0].exists()

    def test_pinned_directory(
        self, interchange: InterchangeManager, make_resource: ResourceFactory, tmp_path: Path
    ) -> None:
        pinned = tmp_path / "pinned"
        directories: list[Path] = []

        def handler(call: MockCall) -> None:
            directories.append(call.directory)
            call.write("id", "abc")

        orchestrator, _ = _orchestrator(interchange, handler)
        orchestrator.create(make_resource(program_tmpdir=str(pinned), program_tmpdir_keep=True))

        assert directories[0] == pinned
        assert (pinned / "id").read_text() == "abc"

    def test_open_failure_skips_program(
        self, tmp_path: Path, make_resource: ResourceFactory
    ) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("")
        orchestrator, executor = _orchestrator(InterchangeManager(blocker / "base"))

        result = orchestrator.create(make_resource())

        assert result.has_error
        assert executor.calls == []

    def test_cleanup_failure_is_warning(
        self, interchange: InterchangeManager, make_resource: ResourceFactory
    ) -> None:
        orchestrator, _ = _orchestrator(interchange, _write_id("abc"))

        with patch("tfexternal.engine.interchange.shutil.rmtree", side_effect=OSError("busy")):
            result = orchestrator.create(make_resource())

        assert not result.has_error
        assert result.exists
        assert result.diagnostics[0].severity is Severity.WARNING
        assert "cleaning up" in result.diagnostics[0].summary


class TestRead:
    """Tests for LifecycleOrchestrator.read()."""

    def test_new_state_from_old(
        self, interchange: InterchangeManager, make_resource: ResourceFactory
    ) -> None:
        seen: dict[str, str] = {}

        def handler(call: MockCall) -> None:
            seen["old_state"] = call.read("old_state")
            call.write("id", "abc")
            call.write("state", "new")

        orchestrator, executor = _orchestrator(interchange, handler)
        result = orchestrator.read(make_resource(id="abc", state="old"))

        assert seen["old_state"] == "old"
        assert result.resource.id == "abc"
        assert result.resource.state == "new"
        assert executor.calls[0].argv == ["read-program"]

    def test_cleared_id_means_gone(
        self, interchange: InterchangeManager, make_resource: ResourceFactory
    ) -> None:
        def handler(call: MockCall) -> None:
            call.write("id", "")
            call.write("state", "still here")

        orchestrator, _ = _orchestrator(interchange, handler)
        result = orchestrator.read(make_resource(id="abc"))

        assert not result.has_error
        assert not result.exists

    def test_deleted_id_file_means_gone(
        self, interchange: InterchangeManager, make_resource: ResourceFactory
    ) -> None:
        def handler(call: MockCall) -> None:
            (call.directory / "id").unlink()

        orchestrator, _ = _orchestrator(interchange, handler)
        result = orchestrator.read(make_resource(id="abc"))

        assert not result.has_error
        assert not result.exists
        assert result.diagnostics.warnings

    def test_failure_keeps_tracked_attributes(
        self, interchange: InterchangeManager, make_resource: ResourceFactory
    ) -> None:
        orchestrator, _ = _orchestrator(interchange, lambda call: (2, "denied"))

        result = orchestrator.read(make_resource(id="abc", state="s"))

        assert result.has_error
        assert result.resource.id == "abc"
        assert result.resource.state == "s"


class TestUpdate:
    """Tests for LifecycleOrchestrator.update()."""

    def test_passes_prior_and_planned_state(
        self, interchange: InterchangeManager, make_resource: ResourceFactory
    ) -> None:
        seen: dict[str, str] = {}

        def handler(call: MockCall) -> None:
            seen["id"] = call.read("id")
            seen["state"] = call.read("state")
            seen["old_state"] = call.read("old_state")
            call.write("output", "updated")

        orchestrator, executor = _orchestrator(interchange, handler)
        prior = make_resource(id="abc", state="old")
        planned = make_resource(state="planned", input="changed")

        result = orchestrator.update(prior, planned)

        assert seen == {"id": "abc", "state": "planned", "old_state": "old"}
        assert result.resource.id == "abc"
        assert result.resource.output == "updated"
        assert executor.calls[0].name == "update"


class TestDelete:
    """Tests for LifecycleOrchestrator.delete()."""

    def test_clears_identity(
        self, interchange: InterchangeManager, make_resource: ResourceFactory
    ) -> None:
        def handler(call: MockCall) -> None:
            call.write("output", "ignored")

        orchestrator, executor = _orchestrator(interchange, handler)
        result = orchestrator.delete(make_resource(id="abc", output="before"))

        assert not result.has_error
        assert not result.exists
        assert result.resource.output == "before"
        assert executor.calls[0].argv == ["delete-program"]

    def test_clears_identity_on_failure(
        self, interchange: InterchangeManager, make_resource: ResourceFactory
    ) -> None:
        orchestrator, _ = _orchestrator(interchange, lambda call: (1, "cannot delete"))

        result = orchestrator.delete(make_resource(id="abc"))

        assert result.has_error
        assert not result.exists
        assert "cannot delete" in result.diagnostics.errors[0].detail


class TestImport:
    """Tests for LifecycleOrchestrator.import_resource()."""

    def test_reads_seeded_identity(
        self, interchange: InterchangeManager, make_resource: ResourceFactory
    ) -> None:
        def handler(call: MockCall) -> None:
            call.write("state", f"imported {call.read('id')}")

        orchestrator, executor = _orchestrator(interchange, handler)
        result = orchestrator.import_resource("vm-1", make_resource())

        assert result.resource.id == "vm-1"
        assert result.resource.state == "imported vm-1"
        assert executor.calls[0].name == "read"


@pytest.mark.skipif(os.name != "posix", reason="requires a POSIX shell")
class TestWithPrograms:
    """Full lifecycle through real shell programs."""

    def test_create_read_delete(self, interchange: InterchangeManager) -> None:
        orchestrator = LifecycleOrchestrator(interchange, SubprocessExecutor(terminate_grace=1.0))
        resource = ExternalResource(
            input="hello",
            program_create=[
                "sh",
                "-c",
                'cd "$TF_EXTERNAL_DIR" && printf vm-1 > id && cat input > output'
                " && printf s1 > state",
            ],
            program_read=[
                "sh",
                "-c",
                'cd "$TF_EXTERNAL_DIR_ABS" && test "$(cat old_state)" = s1'
                ' && printf "%s" "$TF_EXTERNAL_MANAGED_FILES" > output',
            ],
            program_update=["sh", "-c", "exit 1"],
            program_delete=["sh", "-c", "echo still attached >&2; exit 2"],
        )

        created = orchestrator.create(resource)
        assert not created.has_error, list(created.diagnostics)
        assert created.resource.id == "vm-1"
        assert created.resource.output == "hello"
        assert created.resource.state == "s1"

        refreshed = orchestrator.read(created.resource)
        assert not refreshed.has_error, list(refreshed.diagnostics)
        assert "old_state" in refreshed.resource.output.split(":")
        assert refreshed.resource.state == "s1"

        deleted = orchestrator.delete(refreshed.resource)
        assert deleted.has_error
        assert not deleted.exists
        assert "still attached" in deleted.diagnostics.errors[0].detail
        assert list(interchange.base_path.iterdir()) == []

    def test_blocked_capture_file_is_diagnostic(
        self, interchange: InterchangeManager, tmp_path: Path
    ) -> None:
        pinned = tmp_path / "pinned"
        (pinned / "stdall").mkdir(parents=True)
        orchestrator = LifecycleOrchestrator(interchange, SubprocessExecutor(terminate_grace=1.0))
        resource = ExternalResource(
            id="vm-1",
            program_read=["sh", "-c", "true"],
            program_update=["sh", "-c", "true"],
            program_delete=["sh", "-c", "true"],
            program_tmpdir=str(pinned),
        )

        result = orchestrator.read(resource)

        assert result.has_error
        assert result.resource.id == "vm-1"
        assert "capture file" in result.diagnostics.errors[0].summary

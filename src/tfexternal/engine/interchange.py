"""Interchange directories.

An interchange directory is the only channel between the bridge and a
lifecycle program: the bridge seeds it with one file per attribute, the
program reads and writes those files, and the bridge reads the results back.
Each directory lives for exactly one lifecycle step.

File modes encode the read/write contract. ``output`` starts write-only
(0200) so a program cannot mistake stale output for input; the bridge
temporarily makes such files readable when collecting results.
"""

import logging
import os
import shutil
import stat
import tempfile
from collections.abc import Mapping
from pathlib import Path

from tfexternal.exceptions import (
    CleanupWarning,
    DirectoryCreationError,
    InterchangeFileError,
    MissingFileWarning,
)

logger = logging.getLogger(__name__)

DEFAULT_FILE_MODE = 0o400
DIRECTORY_MODE = 0o700
READ_MODE = 0o400


class InterchangeDirectory:
    """An open interchange directory and the files seeded into it."""

    def __init__(self, path: Path, files: list[str], pinned: bool = False) -> None:
        self.path = path
        self.files = files
        self.pinned = pinned
        self.closed = False

    def file_path(self, name: str) -> Path:
        return self.path / name

    def read_file(self, name: str) -> str:
        """Read a file, temporarily making it readable if its mode forbids it.

        The original mode is always restored, even when reading fails.

        Raises:
            MissingFileWarning: the file does not exist (or cannot be stat'ed)
            InterchangeFileError: the mode could not be changed or the read failed
        """
        path = self.file_path(name)
        try:
            info = path.stat()
        except OSError as e:
            raise MissingFileWarning(str(path), e.strerror or str(e)) from e

        old_mode = stat.S_IMODE(info.st_mode)
        unreadable = not old_mode & stat.S_IRUSR

        if unreadable:
            try:
                os.chmod(path, READ_MODE)
            except OSError as e:
                raise InterchangeFileError(
                    f"Error when making file readable ({old_mode:#o} -> {READ_MODE:#o}) {path}",
                    str(path),
                    str(e),
                ) from e

        try:
            data = path.read_bytes()
        except OSError as e:
            raise InterchangeFileError(f"Error opening file {path}", str(path), str(e)) from e
        finally:
            if unreadable:
                _restore_mode(path, old_mode)

        return data.decode("utf-8", errors="replace")

    def __repr__(self) -> str:
        return f"InterchangeDirectory({str(self.path)!r}, pinned={self.pinned})"


def _restore_mode(path: Path, mode: int) -> None:
    try:
        os.chmod(path, mode)
    except OSError as e:
        raise InterchangeFileError(
            f"Error when reverting file mode ({READ_MODE:#o} -> {mode:#o}) for {path}",
            str(path),
            str(e),
        ) from e


def _write_file(path: Path, content: str, mode: int) -> None:
    # A pinned directory may still hold a read-only file from an earlier step
    if path.exists():
        path.unlink()
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, mode)
    with os.fdopen(fd, "wb") as f:
        f.write(content.encode())
    os.chmod(path, mode)


class InterchangeManager:
    """Creates, seeds and tears down interchange directories.

    The base path is injected rather than read from a global so that
    concurrent managers (and tests) can use distinct roots.
    """

    def __init__(self, base_path: Path | str) -> None:
        self.base_path = Path(base_path)

    def open(
        self,
        fields: Mapping[str, str],
        perms: Mapping[str, int] | None = None,
        pinned_path: str | Path | None = None,
    ) -> InterchangeDirectory:
        """Create a directory and write one file per field.

        Args:
            fields: File name to content
            perms: File name to mode; names not listed get DEFAULT_FILE_MODE
            pinned_path: Use this directory instead of a fresh unique one

        Raises:
            DirectoryCreationError: on the first failing filesystem operation
        """
        perms = perms or {}
        pinned = bool(pinned_path)

        if pinned:
            path = Path(pinned_path)
            try:
                path.mkdir(mode=DIRECTORY_MODE, parents=True, exist_ok=True)
            except OSError as e:
                raise DirectoryCreationError(
                    f"Error creating temporary directory {path} in {Path.cwd()}", str(path), str(e)
                ) from e
        else:
            try:
                self.base_path.mkdir(mode=DIRECTORY_MODE, parents=True, exist_ok=True)
            except OSError as e:
                raise DirectoryCreationError(
                    f"Error creating temporary directory parent {self.base_path}",
                    str(self.base_path),
                    str(e),
                ) from e
            try:
                path = Path(tempfile.mkdtemp(dir=self.base_path))
            except OSError as e:
                raise DirectoryCreationError(
                    f"Error creating temporary directory in {self.base_path}",
                    str(self.base_path),
                    str(e),
                ) from e

        directory = InterchangeDirectory(path, list(fields), pinned=pinned)

        for name, content in fields.items():
            file_path = directory.file_path(name)
            try:
                _write_file(file_path, content, perms.get(name, DEFAULT_FILE_MODE))
            except OSError as e:
                if not pinned:
                    shutil.rmtree(path, ignore_errors=True)
                raise DirectoryCreationError(
                    f"Error creating file {file_path}", str(file_path), str(e)
                ) from e

        logger.debug("Opened interchange directory %s with %d files", path, len(fields))
        return directory

    def close(
        self,
        directory: InterchangeDirectory,
        keep_always: bool = False,
        keep_on_error: bool = False,
        had_error: bool = False,
    ) -> None:
        """Remove the directory unless the retention policy says to keep it.

        Raises:
            CleanupWarning: removal failed; the operation's outcome stands
        """
        if directory.closed:
            return
        directory.closed = True

        if keep_always or (keep_on_error and had_error):
            logger.info("Keeping interchange directory %s", directory.path)
            return

        try:
            shutil.rmtree(directory.path)
        except OSError as e:
            raise CleanupWarning(str(directory.path), str(e)) from e
        logger.debug("Removed interchange directory %s", directory.path)

"""Process environment for lifecycle programs."""

import os
from collections.abc import Mapping

from tfexternal.engine.interchange import InterchangeDirectory
from tfexternal.exceptions import PathResolutionError

ENV_DIR = "TF_EXTERNAL_DIR"
ENV_DIR_ABS = "TF_EXTERNAL_DIR_ABS"
ENV_MANAGED_FILES = "TF_EXTERNAL_MANAGED_FILES"


def build_environment(
    directory: InterchangeDirectory,
    base_env: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Return a copy of the environment extended with the interchange variables.

    ``os.environ`` itself is never modified.

    Raises:
        PathResolutionError: the directory path cannot be made absolute
    """
    env = dict(os.environ if base_env is None else base_env)
    path = str(directory.path)
    env[ENV_DIR] = path
    try:
        env[ENV_DIR_ABS] = os.path.abspath(path)
    except (OSError, ValueError) as e:
        raise PathResolutionError(path, str(e)) from e
    env[ENV_MANAGED_FILES] = ":".join(directory.files)
    return env

"""Environment configuration for tfexternal.

Uses pydantic-settings for type-safe access to the handful of environment
variables the bridge honours. The settings only supply defaults; every
component takes its configuration explicitly so tests can run side by side
with distinct roots.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import ConfigDict
from pydantic_settings import BaseSettings

# Directory name created under the engine's data directory
TEMP_DIR_NAME = "terraform-provider-external"


class ExternalSettings(BaseSettings):
    """Settings read from the process environment."""

    model_config = ConfigDict(extra="ignore")

    # Engine data directory (TF_DATA_DIR), relative to the working directory
    tf_data_dir: str = ".terraform"

    # Seconds between SIGTERM and SIGKILL when a program is cancelled
    tf_external_terminate_grace: float = 5.0

    @property
    def temp_dir_base(self) -> Path:
        """Parent directory for per-invocation interchange directories."""
        return Path(self.tf_data_dir) / TEMP_DIR_NAME


@lru_cache(maxsize=1)
def get_settings() -> ExternalSettings:
    """Get cached ExternalSettings instance."""
    return ExternalSettings()


def clear_settings_cache() -> None:
    """Clear the settings cache. Useful for testing."""
    get_settings.cache_clear()

"""Runtime settings — environment and ``.env`` driven.

Settings are read once per invocation from (in increasing precedence) the
defaults below, an optional ``.env`` file, the process environment and
explicit overrides, then frozen into a ``BuildConfiguration``.  Nothing
downstream of ``load_settings()`` looks at the environment again.

Examples
--------
Override via environment::

    export ENCLAVEFORGE_REMOTE_IMAGE_NAME=acme/foo
    export ENCLAVEFORGE_PLATFORM=linux/amd64

The Makefile-era names keep working::

    DOCKERHUB_IMAGE_NAME=acme/foo
    DOCKER_IMAGE_NAME=skeram/process-tweet-function
"""

from __future__ import annotations

import shlex
from pathlib import Path
from typing import Any

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from enclaveforge.models.config import BuildConfiguration

DEFAULT_ENV_FILE = Path(".env")


class ForgeSettings(BaseSettings):
    """Mutable settings as loaded; see ``to_configuration()``."""

    model_config = SettingsConfigDict(
        env_file=DEFAULT_ENV_FILE,
        env_prefix="ENCLAVEFORGE_",
        env_file_encoding="utf-8",
        populate_by_name=True,
        extra="ignore",
    )

    # Project identity
    project_name: str = "process-tweet-function"

    # Image names
    local_image_name: str = Field(
        "",
        validation_alias=AliasChoices(
            "ENCLAVEFORGE_LOCAL_IMAGE_NAME", "DOCKER_IMAGE_NAME"
        ),
    )
    remote_image_name: str = Field(
        "",
        validation_alias=AliasChoices(
            "ENCLAVEFORGE_REMOTE_IMAGE_NAME", "DOCKERHUB_IMAGE_NAME"
        ),
    )
    remote_tag: str = "latest"

    # Build inputs
    platform: str = "linux/amd64"
    dockerfile: Path = Path("Dockerfile")
    build_context: Path = Path(".")

    # Measurement container
    container_name: str = "my-switchboard-function"
    unique_container_name: bool = False
    measurement_path: str = "/measurement.txt"
    output_path: Path = Path("measurement.txt")

    # External toolchain
    docker_binary: str = "docker"
    clean_command: str = "cargo clean"
    command_timeout_seconds: float | None = None
    poll_interval_seconds: float = 0.5

    # Observability
    log_level: str = "INFO"

    def derived_local_image_name(self) -> str:
        """Local tag, defaulting to ``skeram/<project_name>``."""
        name = self.local_image_name.strip()
        return name or f"skeram/{self.project_name}"

    def to_configuration(self) -> BuildConfiguration:
        """Freeze the settings into the value passed to every component."""
        return BuildConfiguration(
            project_name=self.project_name,
            dockerfile_path=self.dockerfile,
            build_context_path=self.build_context,
            target_platform=self.platform,
            local_image_name=self.derived_local_image_name(),
            remote_image_name=self.remote_image_name.strip(),
            remote_tag=self.remote_tag,
            container_name=self.container_name,
            unique_container_name=self.unique_container_name,
            measurement_path=self.measurement_path,
            output_path=self.output_path,
            docker_binary=self.docker_binary,
            clean_command=tuple(shlex.split(self.clean_command)),
            command_timeout_seconds=self.command_timeout_seconds,
            poll_interval_seconds=self.poll_interval_seconds,
        )


def load_settings(
    env_file: Path | None = DEFAULT_ENV_FILE, **overrides: Any
) -> ForgeSettings:
    """Load settings from *env_file* and the environment, then apply overrides.

    A missing *env_file* is skipped silently.  Overrides whose value is
    ``None`` are ignored so CLI options left unset fall through to the
    environment.
    """
    settings = ForgeSettings(_env_file=env_file)  # type: ignore[call-arg]
    update = {k: v for k, v in overrides.items() if v is not None}
    if update:
        settings = settings.model_copy(update=update)
    return settings

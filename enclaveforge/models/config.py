"""Build configuration model — immutable once loaded."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict


class BuildConfiguration(BaseModel):
    """Everything a pipeline run needs to know, fixed for its duration.

    Produced by ``ForgeSettings.to_configuration()``.  ``remote_image_name``
    may be empty here; the Orchestrator rejects that before any external
    call is made.
    """

    model_config = ConfigDict(frozen=True)

    project_name: str = "process-tweet-function"
    dockerfile_path: Path = Path("Dockerfile")
    build_context_path: Path = Path(".")
    target_platform: str = "linux/amd64"
    local_image_name: str = "skeram/process-tweet-function"
    remote_image_name: str = ""
    remote_tag: str = "latest"
    container_name: str = "my-switchboard-function"
    unique_container_name: bool = False
    measurement_path: str = "/measurement.txt"
    output_path: Path = Path("measurement.txt")
    docker_binary: str = "docker"
    clean_command: tuple[str, ...] = ("cargo", "clean")
    command_timeout_seconds: float | None = None
    poll_interval_seconds: float = 0.5

    def remote_image_reference(self) -> str:
        """Registry-qualified reference the measurement container runs from.

        ``acme/foo`` becomes ``acme/foo:latest``; a name that already carries
        a tag (``acme/foo:v2``) or digest (``acme/foo@sha256:...``) is kept.
        """
        name = self.remote_image_name.strip()
        last_component = name.rsplit("/", 1)[-1]
        if "@" in name or ":" in last_component:
            return name
        return f"{name}:{self.remote_tag}"

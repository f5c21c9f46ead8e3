"""Options shared by every workflow command, and settings loading from them."""

from __future__ import annotations

from pathlib import Path

import typer

from enclaveforge.config import DEFAULT_ENV_FILE, ForgeSettings, load_settings
from enclaveforge.logging_setup import configure_logging

ENV_FILE = typer.Option(
    DEFAULT_ENV_FILE, "--env-file", help="Key/value overrides file (skipped if absent)."
)
REMOTE_IMAGE = typer.Option(
    None, "--remote-image", "-r", help="Registry image name, e.g. acme/foo."
)
LOCAL_IMAGE = typer.Option(None, "--local-image", help="Local image tag override.")
PLATFORM = typer.Option(None, "--platform", help="Target platform (default linux/amd64).")
CONTAINER_NAME = typer.Option(
    None, "--container-name", help="Name of the measurement container."
)
UNIQUE_NAME = typer.Option(
    False,
    "--unique-name",
    help="Generate a per-run container name instead of the fixed one.",
)
OUTPUT = typer.Option(None, "--output", "-o", help="Host path for measurement.txt.")
TIMEOUT = typer.Option(
    None, "--timeout", help="Deadline in seconds for each external command."
)
LOG_LEVEL = typer.Option(None, "--log-level", help="Logging level (default INFO).")
REPORT = typer.Option(None, "--report", help="Write the run report as JSON to this path.")


def settings_from_options(
    *,
    env_file: Path | None,
    remote_image: str | None = None,
    local_image: str | None = None,
    platform: str | None = None,
    container_name: str | None = None,
    unique_name: bool | None = None,
    output: Path | None = None,
    timeout: float | None = None,
    log_level: str | None = None,
) -> ForgeSettings:
    """Load settings and configure logging from CLI option values."""
    settings = load_settings(
        env_file,
        remote_image_name=remote_image,
        local_image_name=local_image,
        platform=platform,
        container_name=container_name,
        unique_container_name=unique_name or None,
        output_path=output,
        command_timeout_seconds=timeout,
        log_level=log_level,
    )
    configure_logging(settings.log_level)
    return settings

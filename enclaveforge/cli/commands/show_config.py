"""``enclaveforge show-config`` — print the effective configuration."""

from __future__ import annotations

from pathlib import Path

from enclaveforge.cli import options
from enclaveforge.monitor.renderer import ReportRenderer


def show_config_cmd(
    env_file: Path = options.ENV_FILE,
    remote_image: str = options.REMOTE_IMAGE,
    local_image: str = options.LOCAL_IMAGE,
    platform: str = options.PLATFORM,
) -> None:
    """Show the configuration a workflow would run with.  Makes no external calls."""
    settings = options.settings_from_options(
        env_file=env_file,
        remote_image=remote_image,
        local_image=local_image,
        platform=platform,
    )
    ReportRenderer().print_configuration(settings.to_configuration())

"""``enclaveforge clean`` — discard local build caches."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from enclaveforge.cli import options
from enclaveforge.core.errors import PipelineError
from enclaveforge.core.orchestrator import Orchestrator
from enclaveforge.monitor.renderer import ReportRenderer

console = Console(stderr=True)


def clean_cmd(
    env_file: Path = options.ENV_FILE,
    log_level: str = options.LOG_LEVEL,
) -> None:
    """Run the configured clean command (``cargo clean`` by default)."""
    settings = options.settings_from_options(env_file=env_file, log_level=log_level)
    orchestrator = Orchestrator(settings.to_configuration())
    try:
        orchestrator.clean()
    except PipelineError as exc:
        ReportRenderer(console).print_failure(exc.diagnostic())
        raise typer.Exit(code=exc.exit_code)
    console.print("[green]Clean complete.[/green]")

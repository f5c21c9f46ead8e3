"""Main Typer application — registers all CLI commands.

Entry point: ``enclaveforge`` (configured via pyproject.toml project.scripts).
"""

from __future__ import annotations

import typer

from enclaveforge.cli.commands.clean import clean_cmd
from enclaveforge.cli.commands.show_config import show_config_cmd
from enclaveforge.cli.commands.workflows import (
    build_cmd,
    measurement_cmd,
    publish_cmd,
)

app = typer.Typer(
    name="enclaveforge",
    help="Build an enclave function image and extract its MRENCLAVE measurement.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

app.command(name="build", help="Build the image locally, then run the measurement.")(build_cmd)
app.command(name="publish", help="Build and push the image, then run the measurement.")(publish_cmd)
app.command(name="measurement", help="Extract the measurement from the published image.")(measurement_cmd)
app.command(name="clean", help="Discard local build caches.")(clean_cmd)
app.command(name="show-config", help="Show the effective configuration.")(show_config_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()

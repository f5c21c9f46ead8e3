"""``clean`` — hand local build caches back to the toolchain to discard."""

from __future__ import annotations

import logging

from enclaveforge.core.errors import BuildError, ToolchainError
from enclaveforge.core.toolchain import DockerCli
from enclaveforge.models.config import BuildConfiguration

logger = logging.getLogger(__name__)


def clean(cli: DockerCli, config: BuildConfiguration) -> None:
    """Run the configured clean command inside the build context.

    Failures surface as ``BuildError`` with stage ``clean``.
    """
    if not config.clean_command:
        raise BuildError("no clean command configured", stage="clean")

    logger.info("Cleaning: %s", " ".join(config.clean_command))
    try:
        result = cli.run_raw(config.clean_command, cwd=config.build_context_path)
    except ToolchainError as exc:
        raise BuildError(str(exc), stage="clean") from exc
    if not result.ok:
        raise BuildError(result.diagnostic, stage="clean")

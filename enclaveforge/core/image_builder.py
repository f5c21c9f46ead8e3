"""Image builder — platform-pinned ``buildx`` builds into the local cache."""

from __future__ import annotations

import logging

from enclaveforge.core.errors import BuildError, ToolchainError
from enclaveforge.core.toolchain import DockerCli
from enclaveforge.models.artifacts import ImageArtifact
from enclaveforge.models.config import BuildConfiguration

logger = logging.getLogger(__name__)


class ImageBuilder:
    """Builds the function image from the configured Dockerfile and context.

    One builder performs at most one build; a second call raises
    ``BuildError`` so a pipeline run can never rebuild mid-way.
    """

    def __init__(self, cli: DockerCli) -> None:
        self._cli = cli
        self._built: ImageArtifact | None = None

    def build(self, config: BuildConfiguration, *, for_push: bool = False) -> ImageArtifact:
        """Build and ``--load`` the image.

        Tags with ``local_image_name``, or with the full remote reference
        (name plus ``remote_tag``) when the image is about to be pushed, so
        the pushed tag is the one later measured.  Raises ``BuildError`` carrying the
        toolchain's output on any non-zero exit.
        """
        if self._built is not None:
            raise BuildError(
                f"image already built in this run: {self._built.reference}"
            )

        reference = config.remote_image_reference() if for_push else config.local_image_name
        args = [
            "buildx", "build",
            "--platform", config.target_platform,
            "-f", str(config.dockerfile_path),
            "-t", reference,
            "--load",
            str(config.build_context_path),
        ]
        logger.info("Building %s for %s", reference, config.target_platform)
        try:
            result = self._cli.run(args)
        except ToolchainError as exc:
            raise BuildError(str(exc)) from exc
        if not result.ok:
            raise BuildError(result.diagnostic)

        self._built = ImageArtifact(reference=reference, platform=config.target_platform)
        logger.info("Built %s", reference)
        return self._built

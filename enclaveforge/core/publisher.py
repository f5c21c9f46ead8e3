"""Registry publisher."""

from __future__ import annotations

import logging

import docker
from docker.errors import APIError, DockerException
from docker.utils import parse_repository_tag

from enclaveforge.core.docker_client import explain
from enclaveforge.core.errors import PushError
from enclaveforge.models.artifacts import ImageArtifact

logger = logging.getLogger(__name__)


class Publisher:
    """Pushes a built image under its tag.

    Re-pushing a tag overwrites it remotely.  A failed push is not repaired;
    the caller retries the whole push.
    """

    def __init__(self, client: docker.DockerClient) -> None:
        self._client = client

    def push(self, artifact: ImageArtifact) -> None:
        repository, tag = parse_repository_tag(artifact.reference)
        logger.info("Pushing %s", artifact.reference)
        try:
            for line in self._client.images.push(
                repository, tag=tag, stream=True, decode=True
            ):
                # Authentication and layer failures arrive in the stream.
                if "error" in line or "errorDetail" in line:
                    detail = line.get("errorDetail", {}).get("message")
                    raise PushError(detail or line.get("error", "push failed"))
                if "status" in line:
                    logger.debug("push %s: %s", artifact.reference, line["status"])
        except APIError as exc:
            raise PushError(explain(exc)) from exc
        except (DockerException, OSError) as exc:
            raise PushError(str(exc)) from exc
        logger.info("Pushed %s", artifact.reference)

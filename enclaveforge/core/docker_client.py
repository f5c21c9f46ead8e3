"""Docker Engine API client used for container control and registry pushes.

``buildx`` has no SDK equivalent, so image builds stay on ``DockerCli``;
everything else goes through ``docker.DockerClient``.
"""

from __future__ import annotations

import logging
import math

import docker
from docker.errors import DockerException

from enclaveforge.core.errors import ToolchainError

logger = logging.getLogger(__name__)


def connect(timeout: float | None = None) -> docker.DockerClient:
    """Connect to the daemon named by ``DOCKER_HOST`` (or the local socket).

    *timeout* bounds each API request; ``None`` waits forever.  Raises
    ``ToolchainError`` when the daemon cannot be reached.
    """
    request_timeout = None if timeout is None else max(1, math.ceil(timeout))
    try:
        client = docker.from_env(timeout=request_timeout)
    except DockerException as exc:
        raise ToolchainError(f"cannot reach the container runtime: {exc}") from exc
    logger.debug("Connected to container runtime (timeout=%s)", request_timeout)
    return client


def explain(exc: Exception) -> str:
    """The daemon's own message for *exc*, falling back to ``str(exc)``."""
    explanation = getattr(exc, "explanation", None)
    if explanation:
        return explanation.decode() if isinstance(explanation, bytes) else str(explanation)
    return str(exc)

"""Artifact extractor — copy the measurement file out of a container.

The runtime hands the file back as a tar stream.  Its content lands in a
hidden staging file beside the output path and only replaces the output
once it is known to be non-empty, so a failed extraction never creates or
clobbers ``measurement.txt``.
"""

from __future__ import annotations

import io
import logging
import os
import shutil
import tarfile
from pathlib import Path

import docker
from docker.errors import APIError, DockerException

from enclaveforge.core.docker_client import explain
from enclaveforge.core.errors import ContainerRuntimeError
from enclaveforge.core.hasher import content_address
from enclaveforge.models.artifacts import EnclaveMeasurement
from enclaveforge.models.containers import ContainerInstance, ContainerState

logger = logging.getLogger(__name__)

_COPYABLE_STATES = (ContainerState.RUNNING, ContainerState.STOPPED)


def _failure(message: str) -> ContainerRuntimeError:
    return ContainerRuntimeError(f"extraction failed: {message}", stage="extract")


class ArtifactExtractor:
    """Copies a known file out of a container and records it as a measurement."""

    def __init__(self, client: docker.DockerClient) -> None:
        self._client = client

    def extract(
        self, instance: ContainerInstance, remote_path: str, local_path: Path
    ) -> EnclaveMeasurement:
        """Copy *remote_path* from *instance* to *local_path*.

        Raises ``ContainerRuntimeError("extraction failed: ...")`` when the
        path is missing, the copy fails, the copied file is empty, or the
        host cannot write *local_path*.
        """
        if instance.lifecycle_state not in _COPYABLE_STATES:
            raise _failure(f"{instance.name} is {instance.lifecycle_state.value}")

        source = f"{instance.name}:{remote_path}"
        logger.info("Copying %s -> %s", source, local_path)
        raw = self._fetch(instance.name, remote_path)
        value = raw.decode("utf-8", errors="replace").strip()
        if not value:
            raise _failure(f"{source} is empty")

        local_path = Path(local_path)
        try:
            _write_atomic(local_path, raw)
        except OSError as exc:
            raise _failure(str(exc)) from exc

        measurement = EnclaveMeasurement(
            raw_bytes=raw,
            value=value,
            source_file_path=remote_path,
            local_path=str(local_path),
            digest=content_address(raw),
        )
        logger.info("Measurement %s written to %s", measurement.digest[:19], local_path)
        return measurement

    def _fetch(self, name: str, remote_path: str) -> bytes:
        source = f"{name}:{remote_path}"
        try:
            container = self._client.containers.get(name)
            chunks, _stat = container.get_archive(remote_path)
            archive = io.BytesIO(b"".join(chunks))
        except APIError as exc:
            raise _failure(explain(exc)) from exc
        except (DockerException, OSError) as exc:
            raise _failure(str(exc)) from exc

        try:
            with tarfile.open(fileobj=archive) as tar:
                member = tar.next()
                if member is None or not member.isfile():
                    raise _failure(f"{source} did not produce a file")
                handle = tar.extractfile(member)
                if handle is None:
                    raise _failure(f"{source} did not produce a file")
                return handle.read()
        except tarfile.TarError as exc:
            raise _failure(f"unreadable archive for {source}: {exc}") from exc


def _write_atomic(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    staging = path.with_name(f".{path.name}.partial")
    _discard(staging)
    try:
        staging.write_bytes(data)
        os.replace(staging, path)
    finally:
        _discard(staging)


def _discard(path: Path) -> None:
    if path.is_dir():
        shutil.rmtree(path)
    else:
        path.unlink(missing_ok=True)

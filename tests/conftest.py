"""Shared test fixtures for enclaveforge."""

from __future__ import annotations

import io
import os
import posixpath
import tarfile
from collections.abc import Callable, Iterator, Sequence
from pathlib import Path
from types import SimpleNamespace
from typing import Any

import pytest
from docker.errors import APIError, ImageNotFound, NotFound
from requests.exceptions import ReadTimeout

from enclaveforge.core.container_runner import ContainerRunner
from enclaveforge.core.errors import ToolchainError, ToolchainTimeout
from enclaveforge.core.orchestrator import Orchestrator
from enclaveforge.core.toolchain import CommandResult, DockerCli
from enclaveforge.models.config import BuildConfiguration

MEASUREMENT_BYTES = b"Ym9ndXMtbXJlbmNsYXZlLWZvci10ZXN0aW5nLW9ubHktMDEyMzQ1Njc4OQ==\n"
MEASUREMENT_VALUE = MEASUREMENT_BYTES.decode().strip()

# Marks a container path that holds a directory rather than a file.
DIRECTORY = object()

_LEGACY_ENV = ("DOCKERHUB_IMAGE_NAME", "DOCKER_IMAGE_NAME")


def api_error(status: int, message: str, cls: type[APIError] = APIError) -> APIError:
    """An Engine API error as the SDK raises it, without a live HTTP response."""
    response = SimpleNamespace(
        status_code=status,
        url="http+docker://localhost/v1.43/test",
        reason="Test",
    )
    return cls(message, response=response, explanation=message)


class FakeRuntime:
    """Simulated container daemon shared by the fake CLI and the fake client.

    Holds named containers, per-image filesystems, local images and pushed
    tags.  Every call either fake makes is recorded in ``calls`` as a tuple
    whose first element is the verb (``buildx``, ``push``, ``run``,
    ``inspect``, ``cp``, ``stop``, ``rm``) or, for the clean command, the
    command's own argv.

    Failure injection
    -----------------
    ``fail[verb] = "message"`` makes that verb fail the way the daemon
    reports it: a non-zero exit for CLI verbs, an ``APIError`` (or an error
    line in the push stream) for client verbs.  ``raise_on[verb] = exc``
    makes it raise *exc* instead.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, ...]] = []
        self.images: set[str] = set()
        self.pushed: list[str] = []
        self.containers: dict[str, dict[str, Any]] = {}
        self.image_files: dict[str, dict[str, Any]] = {}
        self.default_files: dict[str, Any] = {"/measurement.txt": MEASUREMENT_BYTES}
        self.start_status = "running"
        self.inspect_statuses: list[str] = []
        self.fail: dict[str, str] = {}
        self.raise_on: dict[str, Exception] = {}

    def count(self, verb: str) -> int:
        return sum(1 for call in self.calls if call and call[0] == verb)

    def verbs(self) -> list[str]:
        return [call[0] for call in self.calls]

    def add_container(self, name: str, image: str = "other:latest") -> None:
        self.containers[name] = {"status": "running", "image": image, "files": {}}

    def record(self, call: tuple[str, ...]) -> None:
        """Log *call* and apply any injected failure for its verb."""
        self.calls.append(call)
        verb = call[0]
        if verb in self.raise_on:
            raise self.raise_on[verb]
        if verb in self.fail and verb != "push":
            raise api_error(500, self.fail[verb])


class FakeDockerCli(DockerCli):
    """``DockerCli`` whose ``buildx`` and clean command hit a ``FakeRuntime``."""

    def __init__(self, runtime: FakeRuntime) -> None:
        super().__init__("docker")
        self.runtime = runtime

    def run(self, args: Sequence[str], *, cwd: Path | None = None) -> CommandResult:
        args = tuple(args)
        self.runtime.calls.append(args)
        verb = args[0]
        if verb in self.runtime.raise_on:
            raise self.runtime.raise_on[verb]
        if verb in self.runtime.fail:
            return CommandResult(args, 1, "", self.runtime.fail[verb])
        if verb != "buildx":
            raise AssertionError(f"unexpected CLI call: {args}")
        self.runtime.images.add(args[args.index("-t") + 1])
        return CommandResult(args, 0, "", "#1 DONE 0.1s")

    def run_raw(self, argv: Sequence[str], *, cwd: Path | None = None) -> CommandResult:
        argv = tuple(argv)
        self.runtime.calls.append(argv)
        if "clean" in self.runtime.raise_on:
            raise self.runtime.raise_on["clean"]
        if "clean" in self.runtime.fail:
            return CommandResult(argv, 101, "", self.runtime.fail["clean"])
        return CommandResult(argv, 0, "", "")


class FakeContainer:
    """The slice of ``docker.models.containers.Container`` the pipeline uses."""

    def __init__(self, runtime: FakeRuntime, name: str) -> None:
        self._runtime = runtime
        self.name = name
        self.id = "c0ffee" * 4
        self.status = runtime.containers[name]["status"]

    def _state(self) -> dict[str, Any]:
        state = self._runtime.containers.get(self.name)
        if state is None:
            raise api_error(404, f"No such container: {self.name}", NotFound)
        return state

    def reload(self) -> None:
        self._runtime.record(("inspect", self.name))
        state = self._state()
        if self._runtime.inspect_statuses:
            self.status = self._runtime.inspect_statuses.pop(0)
        else:
            self.status = state["status"]

    def stop(self, **kwargs: Any) -> None:
        self._runtime.record(("stop", self.name))
        self._state()["status"] = "exited"

    def remove(self, force: bool = False, **kwargs: Any) -> None:
        self._runtime.record(("rm", "-f", self.name) if force else ("rm", self.name))
        state = self._state()
        if state["status"] == "running" and not force:
            raise api_error(
                409,
                f"You cannot remove a running container {self.id}. "
                "Stop the container before attempting removal or force remove",
            )
        del self._runtime.containers[self.name]

    def get_archive(self, path: str, **kwargs: Any) -> tuple[Iterator[bytes], dict[str, Any]]:
        self._runtime.record(("cp", self.name, path))
        files = self._state()["files"]
        if path not in files:
            raise api_error(
                404, f"Could not find the file {path} in container {self.name}", NotFound
            )
        payload = _tar_of(posixpath.basename(path), files[path])
        # The SDK streams the archive in chunks.
        chunks = iter([payload[:512], payload[512:]])
        return chunks, {"name": posixpath.basename(path), "size": len(payload)}


class FakeContainers:
    def __init__(self, runtime: FakeRuntime) -> None:
        self._runtime = runtime

    def run(self, image: str, command: Any = None, **kwargs: Any) -> FakeContainer:
        assert kwargs.get("detach") is True
        name = kwargs["name"]
        self._runtime.record(("run", name, image, kwargs.get("platform", "")))
        if name in self._runtime.containers:
            raise api_error(
                409,
                f'Conflict. The container name "/{name}" is already in use by '
                'container "deadbeef". You have to remove (or rename) that '
                "container to be able to reuse that name.",
            )
        files = dict(self._runtime.image_files.get(image, self._runtime.default_files))
        self._runtime.containers[name] = {
            "status": self._runtime.start_status,
            "image": image,
            "files": files,
        }
        return FakeContainer(self._runtime, name)

    def get(self, name: str) -> FakeContainer:
        if name not in self._runtime.containers:
            raise api_error(404, f"No such container: {name}", NotFound)
        return FakeContainer(self._runtime, name)


class FakeImages:
    def __init__(self, runtime: FakeRuntime) -> None:
        self._runtime = runtime

    def push(
        self, repository: str, tag: str | None = None, **kwargs: Any
    ) -> Iterator[dict[str, Any]]:
        reference = f"{repository}:{tag}" if tag else repository
        self._runtime.record(("push", reference))
        if reference not in self._runtime.images:
            raise api_error(
                404, f"An image does not exist locally with the tag: {reference}",
                ImageNotFound,
            )
        message = self._runtime.fail.get("push")
        if message is not None:
            return iter([
                {"status": f"The push refers to repository [docker.io/{repository}]"},
                {"errorDetail": {"message": message}, "error": message},
            ])
        self._runtime.pushed.append(reference)
        return iter([
            {"status": f"The push refers to repository [docker.io/{repository}]"},
            {"status": f"{tag or 'latest'}: digest: sha256:abc size: 1234"},
        ])


class FakeDockerClient:
    """Stand-in for ``docker.DockerClient`` backed by a ``FakeRuntime``."""

    def __init__(self, runtime: FakeRuntime) -> None:
        self.runtime = runtime
        self.containers = FakeContainers(runtime)
        self.images = FakeImages(runtime)


def _tar_of(name: str, content: Any) -> bytes:
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w") as tar:
        info = tarfile.TarInfo(name=name)
        if content is DIRECTORY:
            info.type = tarfile.DIRTYPE
            tar.addfile(info)
        else:
            info.size = len(content)
            tar.addfile(info, io.BytesIO(content))
    return buffer.getvalue()


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep the developer's environment and .env out of every test."""
    for key in _LEGACY_ENV:
        monkeypatch.delenv(key, raising=False)
    for key in list(os.environ):
        if key.startswith("ENCLAVEFORGE_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def runtime() -> FakeRuntime:
    return FakeRuntime()


@pytest.fixture
def fake_cli(runtime: FakeRuntime) -> FakeDockerCli:
    return FakeDockerCli(runtime)


@pytest.fixture
def fake_client(runtime: FakeRuntime) -> FakeDockerClient:
    return FakeDockerClient(runtime)


@pytest.fixture
def output_path(tmp_path: Path) -> Path:
    return tmp_path / "out" / "measurement.txt"


@pytest.fixture
def config(output_path: Path) -> BuildConfiguration:
    """A valid configuration pointing at ``acme/foo``."""
    return BuildConfiguration(
        remote_image_name="acme/foo",
        output_path=output_path,
        poll_interval_seconds=0,
    )


@pytest.fixture
def runner(fake_client: FakeDockerClient) -> ContainerRunner:
    return ContainerRunner(fake_client, poll_interval=0, sleep=lambda _: None)


@pytest.fixture
def make_orchestrator(
    fake_cli: FakeDockerCli, fake_client: FakeDockerClient, config: BuildConfiguration
) -> Callable[..., Orchestrator]:
    """Factory fixture: an Orchestrator on the fake runtime."""

    def _factory(**updates: Any) -> Orchestrator:
        cfg = config.model_copy(update=updates) if updates else config
        return Orchestrator(cfg, cli=fake_cli, client=fake_client, run_id="ef-test-run")

    return _factory


@pytest.fixture
def orchestrator_factory(
    fake_cli: FakeDockerCli, fake_client: FakeDockerClient
) -> Callable[[BuildConfiguration], Orchestrator]:
    """Drop-in for the ``Orchestrator`` class the CLI commands construct."""

    def _factory(config: BuildConfiguration) -> Orchestrator:
        return Orchestrator(config, cli=fake_cli, client=fake_client)

    return _factory


@pytest.fixture
def toolchain_timeout() -> ToolchainError:
    return ToolchainTimeout("docker buildx exceeded the 1.0s deadline")


@pytest.fixture
def daemon_timeout() -> Exception:
    """What the SDK raises when the daemon does not answer in time."""
    return ReadTimeout(
        "UnixHTTPConnectionPool(host='localhost', port=None): Read timed out. "
        "(read timeout=1)"
    )


@pytest.fixture
def directory_entry() -> object:
    """File-table value that makes a container path a directory."""
    return DIRECTORY


@pytest.fixture
def measurement_bytes() -> bytes:
    """The bytes every fake image holds at ``/measurement.txt``."""
    return MEASUREMENT_BYTES


@pytest.fixture
def measurement_value() -> str:
    return MEASUREMENT_VALUE

"""Container engine backed by the ``docker`` command line client."""

from __future__ import annotations

import logging
import os
from pathlib import Path
import subprocess
import tempfile
import time
from typing import Sequence

from benchwatch.models.container import ExecResult, ImageRef
from benchwatch.providers.container.base import ContainerEngine

logger = logging.getLogger(__name__)


class DockerCommandError(RuntimeError):
    def __init__(self, command: Sequence[str], result: ExecResult) -> None:
        self.command = list(command)
        self.result = result
        super().__init__(
            f"Docker command failed ({result.exit_code}): "
            f"{' '.join(command)}\n{result.stderr.strip()}"
        )


class DockerEngine(ContainerEngine):
    def __init__(self, docker: str = "docker", env: dict[str, str] | None = None) -> None:
        self._docker = docker
        self._env = env

    def pull(self, reference: str) -> ImageRef:
        logger.info("Pulling %s", reference)
        self._run_docker(["pull", "--quiet", reference])
        output = self._run_docker(
            ["image", "inspect", "--format", "{{index .RepoDigests 0}}", reference]
        )
        digest = output.stdout.strip() or None
        return ImageRef(reference=reference, digest=digest)

    def build(
        self,
        dockerfile: str,
        context: Path,
        tag: str | None = None,
        pull: bool = False,
    ) -> str:
        with tempfile.TemporaryDirectory(prefix="benchwatch-build-") as scratch:
            dockerfile_path = Path(scratch) / "Dockerfile"
            dockerfile_path.write_text(dockerfile, encoding="utf-8")
            iidfile = Path(scratch) / "image-id"
            command = ["build", "--file", str(dockerfile_path), "--iidfile", str(iidfile)]
            if pull:
                command.append("--pull")
            if tag:
                command.extend(["--tag", tag])
            command.append(str(context))
            logger.info("Building image from %s", context)
            self._run_docker(command)
            return iidfile.read_text(encoding="utf-8").strip()

    def run(
        self,
        image: str,
        run_args: Sequence[str],
        command: Sequence[str],
        timeout_s: int | None = None,
    ) -> ExecResult:
        logger.info("Running %s in %s", " ".join(command), image)
        return self._run_docker(
            ["run", "--rm", *run_args, image, *command], timeout_s=timeout_s
        )

    def image_exists(self, image: str) -> bool:
        result = self._exec(["image", "inspect", image])
        return result.exit_code == 0

    def _exec(self, args: Sequence[str], timeout_s: int | None = None) -> ExecResult:
        command = [self._docker, *args]
        start = time.monotonic()
        process = subprocess.run(
            command,
            env=self._merge_env(self._env),
            capture_output=True,
            text=True,
            timeout=timeout_s,
            check=False,
        )
        duration_ms = int((time.monotonic() - start) * 1000)
        logger.debug("%s exited %s after %sms", " ".join(command), process.returncode, duration_ms)
        return ExecResult(
            exit_code=process.returncode,
            stdout=process.stdout,
            stderr=process.stderr,
            duration_ms=duration_ms,
        )

    def _run_docker(self, args: Sequence[str], timeout_s: int | None = None) -> ExecResult:
        result = self._exec(args, timeout_s=timeout_s)
        if result.exit_code != 0:
            raise DockerCommandError([self._docker, *args], result)
        return result

    def _merge_env(self, env: dict[str, str] | None) -> dict[str, str]:
        merged = os.environ.copy()
        if env:
            merged.update(env)
        return merged

from __future__ import annotations

from pathlib import Path
from typing import Sequence

import pytest

from benchwatch.config import Settings
from benchwatch.models.container import ExecResult, ImageRef
from benchwatch.models.pipeline import SlackChannel
from benchwatch.models.scm import CommitRef, RepositoryRef

REPO = RepositoryRef(owner="mirage", name="index")
RESULT = b'{"results": [{"name": "index", "metrics": {}}]}\n'


def mount_source(run_args: Sequence[str]) -> Path:
    spec = run_args[list(run_args).index("--mount") + 1]
    options = dict(part.split("=", 1) for part in spec.split(","))
    return Path(options["source"])


class FakeEngine:
    def __init__(self, exit_code: int = 0, output: bytes = RESULT) -> None:
        self.exit_code = exit_code
        self.output = output
        self.pulls: list[str] = []
        self.builds: list[tuple[str, Path, str | None]] = []
        self.runs: list[tuple[str, list[str], list[str]]] = []
        self.images: set[str] = set()

    def pull(self, reference: str) -> ImageRef:
        self.pulls.append(reference)
        return ImageRef(reference=reference, digest=f"{reference}@sha256:{len(self.pulls):064x}")

    def build(self, dockerfile: str, context: Path, tag: str | None = None, pull: bool = False) -> str:
        self.builds.append((dockerfile, context, tag))
        image_id = f"sha256:{len(self.builds):064x}"
        self.images.add(image_id)
        return image_id

    def run(self, image: str, run_args: Sequence[str], command: Sequence[str], timeout_s: int | None = None) -> ExecResult:
        self.runs.append((image, list(run_args), list(command)))
        if self.exit_code == 0:
            mount_source(run_args).write_bytes(self.output)
        return ExecResult(exit_code=self.exit_code, stdout="", stderr="boom" if self.exit_code else "", duration_ms=5)

    def image_exists(self, image: str) -> bool:
        return image in self.images


class FakeScm:
    def __init__(self, sha: str = "a" * 40) -> None:
        self.sha = sha
        self.fetches: list[CommitRef] = []

    def get_repo_default_branch(self, repo: RepositoryRef) -> str:
        return "main"

    def head_commit(self, repo: RepositoryRef) -> CommitRef:
        return CommitRef(repo=repo, sha=self.sha, branch="main")

    def fetch(self, commit: CommitRef, dest: Path) -> Path:
        self.fetches.append(commit)
        dest.mkdir(parents=True, exist_ok=True)
        return dest


class FakePoster:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.posts: list[tuple[SlackChannel, bytes, str]] = []

    def post(self, channel: SlackChannel, payload: bytes, key: str = "output") -> None:
        if self.error is not None:
            raise self.error
        self.posts.append((channel, payload, key))


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def scm() -> FakeScm:
    return FakeScm()


@pytest.fixture
def poster() -> FakePoster:
    return FakePoster()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    tmp_dir = tmp_path / "tmp"
    tmp_dir.mkdir()
    return Settings(repo=REPO, workspace=tmp_path / "work", tmp_dir=tmp_dir)


@pytest.fixture
def slack_file(tmp_path: Path) -> Path:
    path = tmp_path / "slack.uri"
    path.write_text("  https://hooks.example/abc\n", encoding="utf-8")
    return path

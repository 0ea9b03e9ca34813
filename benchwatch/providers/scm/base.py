"""SCM provider interface."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from benchwatch.models.scm import CommitRef, RepositoryRef


class ScmProvider(Protocol):
    def get_repo_default_branch(self, repo: RepositoryRef) -> str:
        ...

    def head_commit(self, repo: RepositoryRef) -> CommitRef:
        ...

    def fetch(self, commit: CommitRef, dest: Path) -> Path:
        ...

"""Data models for SCM interactions."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RepositoryRef:
    owner: str
    name: str

    @classmethod
    def parse(cls, value: str) -> "RepositoryRef":
        owner, sep, name = value.strip().partition("/")
        if not sep or not owner or not name or "/" in name:
            raise ValueError(f"Repository must be given as owner/name: {value!r}")
        return cls(owner=owner, name=name)

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    @property
    def clone_url(self) -> str:
        return f"https://github.com/{self.full_name}.git"

    def __str__(self) -> str:
        return self.full_name


@dataclass(frozen=True)
class CommitRef:
    repo: RepositoryRef
    sha: str
    branch: str = "main"

    @property
    def short(self) -> str:
        return self.sha[:12]

"""Data models for container engine interactions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ImageRef:
    reference: str
    digest: Optional[str] = None

    @property
    def pinned(self) -> str:
        """Reference usable in ``FROM``, pinned to the digest when known."""
        return self.digest or self.reference


@dataclass(frozen=True)
class ExecResult:
    exit_code: int
    stdout: str
    stderr: str
    duration_ms: int

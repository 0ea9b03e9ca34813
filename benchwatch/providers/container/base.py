"""Container engine interface."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, Sequence

from benchwatch.models.container import ExecResult, ImageRef


class ContainerEngine(Protocol):
    def pull(self, reference: str) -> ImageRef:
        ...

    def build(
        self,
        dockerfile: str,
        context: Path,
        tag: str | None = None,
        pull: bool = False,
    ) -> str:
        ...

    def run(
        self,
        image: str,
        run_args: Sequence[str],
        command: Sequence[str],
        timeout_s: int | None = None,
    ) -> ExecResult:
        ...

    def image_exists(self, image: str) -> bool:
        ...

"""Data models passed between pipeline stages."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from benchwatch.models.scm import CommitRef


@dataclass(frozen=True)
class ResultEnvelope:
    notify_path: Path
    payload: bytes


@dataclass(frozen=True)
class SlackChannel:
    uri: str


@dataclass(frozen=True)
class PipelineOutcome:
    commit: CommitRef
    image_id: Optional[str] = None
    result_path: Optional[Path] = None
    notified: bool = False
    skipped: bool = False

"""Shared data models for the benchwatch application."""

from benchwatch.models.container import ExecResult, ImageRef
from benchwatch.models.pipeline import PipelineOutcome, ResultEnvelope, SlackChannel
from benchwatch.models.scm import CommitRef, RepositoryRef

__all__ = [
    "CommitRef",
    "ExecResult",
    "ImageRef",
    "PipelineOutcome",
    "RepositoryRef",
    "ResultEnvelope",
    "SlackChannel",
]

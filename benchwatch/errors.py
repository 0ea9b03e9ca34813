"""Failure taxonomy for a benchmark pipeline run.

Every error aborts the current run. None of them is retried here; the engine
logs the failure and waits for the next trigger.
"""

from __future__ import annotations


class PipelineError(RuntimeError):
    """Base class for failures of a single pipeline run."""


class ConfigurationError(PipelineError):
    """Operator misconfiguration: bad path, unreadable file, malformed URI."""


class BuildError(PipelineError):
    """The image recipe failed to build."""


class ExecutionError(PipelineError):
    """The benchmark container crashed or exited non-zero."""


class PersistenceError(PipelineError):
    """The result file could not be moved to its permanent destination."""


class NotificationError(PipelineError):
    """The result could not be delivered to the notification endpoint."""

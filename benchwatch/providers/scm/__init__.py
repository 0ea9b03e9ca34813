"""SCM provider implementations and interfaces."""

from benchwatch.providers.scm.base import ScmProvider
from benchwatch.providers.scm.github import GitHubProvider

__all__ = ["GitHubProvider", "ScmProvider"]

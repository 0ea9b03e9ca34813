"""Provider package for SCM, container engine, and notification integrations."""

from benchwatch.providers.container import ContainerEngine, DockerEngine
from benchwatch.providers.notify import NotificationPoster, SlackPoster
from benchwatch.providers.scm import GitHubProvider, ScmProvider

__all__ = [
    "ContainerEngine",
    "DockerEngine",
    "GitHubProvider",
    "NotificationPoster",
    "ScmProvider",
    "SlackPoster",
]

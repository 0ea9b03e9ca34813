"""Container engine implementations and interfaces."""

from benchwatch.providers.container.base import ContainerEngine
from benchwatch.providers.container.docker import DockerCommandError, DockerEngine

__all__ = ["ContainerEngine", "DockerCommandError", "DockerEngine"]

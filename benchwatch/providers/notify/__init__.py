"""Notification provider implementations and interfaces."""

from benchwatch.providers.notify.base import NotificationPoster
from benchwatch.providers.notify.slack import SlackPoster

__all__ = ["NotificationPoster", "SlackPoster"]

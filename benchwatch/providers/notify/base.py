"""Notification provider interface."""

from __future__ import annotations

from typing import Protocol

from benchwatch.models.pipeline import SlackChannel


class NotificationPoster(Protocol):
    def post(self, channel: SlackChannel, payload: bytes, key: str = "output") -> None:
        ...

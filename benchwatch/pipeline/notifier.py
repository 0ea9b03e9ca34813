"""Deliver a benchmark result to the configured Slack channel."""

from __future__ import annotations

import logging
from pathlib import Path
from urllib.parse import urlsplit

from benchwatch.errors import ConfigurationError, NotificationError
from benchwatch.models.pipeline import ResultEnvelope, SlackChannel
from benchwatch.providers.notify.base import NotificationPoster

logger = logging.getLogger(__name__)

OUTPUT_KEY = "output"


def read_channel_uri(path: Path) -> SlackChannel:
    try:
        raw = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigurationError(f"Cannot read Slack endpoint file {path}: {exc}") from exc
    uri = raw.strip()
    try:
        parts = urlsplit(uri)
    except ValueError as exc:
        raise ConfigurationError(f"Malformed Slack endpoint URI in {path}: {exc}") from exc
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ConfigurationError(f"Malformed Slack endpoint URI in {path}: {uri!r}")
    return SlackChannel(uri=uri)


def notify(envelope: ResultEnvelope | None, poster: NotificationPoster) -> bool:
    """Post the envelope's payload; returns whether anything was posted."""
    if envelope is None:
        return False
    channel = read_channel_uri(envelope.notify_path)
    try:
        poster.post(channel, envelope.payload, key=OUTPUT_KEY)
    except RuntimeError as exc:
        raise NotificationError(f"Failed to post benchmark result: {exc}") from exc
    return True

"""Slack incoming-webhook poster."""

from __future__ import annotations

import json
import logging
import threading
import urllib.error
import urllib.request

from benchwatch.models.pipeline import SlackChannel
from benchwatch.providers.notify.base import NotificationPoster

logger = logging.getLogger(__name__)


class SlackPoster(NotificationPoster):
    """Posts payloads to Slack, skipping a payload already posted under its key."""

    def __init__(self, timeout_s: float = 30.0) -> None:
        self._timeout_s = timeout_s
        self._posted: dict[tuple[str, str], bytes] = {}
        self._lock = threading.Lock()

    def post(self, channel: SlackChannel, payload: bytes, key: str = "output") -> None:
        cache_key = (channel.uri, key)
        with self._lock:
            if self._posted.get(cache_key) == payload:
                logger.info("Payload for %r unchanged, not re-posting", key)
                return
        text = payload.decode("utf-8", errors="replace")
        data = json.dumps({"text": text}).encode("utf-8")
        request = urllib.request.Request(channel.uri, data=data, method="POST")
        request.add_header("Content-Type", "application/json")
        request.add_header("User-Agent", "benchwatch")
        try:
            with urllib.request.urlopen(request, timeout=self._timeout_s) as response:
                response.read()
        except urllib.error.HTTPError as exc:
            body = exc.read().decode("utf-8", errors="replace")
            raise RuntimeError(f"Slack API error {exc.code}: {body}") from exc
        except urllib.error.URLError as exc:
            raise RuntimeError(f"Slack endpoint unreachable: {exc.reason}") from exc
        except OSError as exc:
            raise RuntimeError(f"Slack delivery failed: {exc}") from exc
        with self._lock:
            self._posted[cache_key] = payload
        logger.info("Posted %d bytes under %r", len(payload), key)

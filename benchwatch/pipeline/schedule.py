"""Refresh schedule for the pulled base image."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta


@dataclass(frozen=True)
class Schedule:
    valid_for: timedelta

    def is_stale(self, last_refresh: datetime | None, now: datetime) -> bool:
        if last_refresh is None:
            return True
        return now - last_refresh >= self.valid_for


WEEKLY = Schedule(valid_for=timedelta(days=7))

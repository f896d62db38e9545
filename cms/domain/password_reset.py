from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone


@dataclass(frozen=True, slots=True)
class PasswordResetWindow:
    """Defines how long an emailed reset token stays usable.

    Semantics:
    - A reset requested at ``sent_at`` may be completed while
      ``now - sent_at <= window``.
    - The boundary is inclusive: completing exactly at the window edge is allowed.
    - A missing ``sent_at`` means no reset was requested, which counts as expired.
    """

    window: timedelta

    def is_expired(self, *, sent_at: datetime | None, now: datetime) -> bool:
        if sent_at is None:
            return True
        return _as_utc(now) - _as_utc(sent_at) > self.window


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)

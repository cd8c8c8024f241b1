"""Time-related helpers.

All certificate timestamps are handled as aware UTC ``datetime`` instances.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

_BACKDATE = timedelta(minutes=1)


def utc_now() -> datetime:
    """Return the current UTC time as an aware ``datetime`` instance."""

    return datetime.now(timezone.utc)


def validity_window(days: int, now: datetime | None = None) -> tuple[datetime, datetime]:
    """Return ``(not_before, not_after)`` for a certificate valid *days* from now.

    ``not_before`` is moved back slightly so that peers with a lagging clock
    accept the certificate immediately.  Both bounds are whole seconds, the
    precision X.509 stores.
    """

    if days <= 0:
        raise ValueError("validity must be at least one day")
    current = (now or utc_now()).replace(microsecond=0)
    return current - _BACKDATE, current + timedelta(days=days)


def format_residual(delta: timedelta) -> str:
    """Render a remaining lifetime the way expiration reports show it."""

    if delta.total_seconds() <= 0:
        return "<invalid>"
    if delta.days >= 365:
        return f"{delta.days // 365}y"
    if delta.days >= 1:
        return f"{delta.days}d"
    hours = int(delta.total_seconds() // 3600)
    if hours >= 1:
        return f"{hours}h"
    return f"{int(delta.total_seconds() // 60)}m"

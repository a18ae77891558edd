"""Time utilities with timezone-aware defaults."""

from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return current UTC time with tzinfo."""

    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    """ISO-8601 timestamp used for locally created messages."""

    return utc_now().isoformat(timespec="seconds")


__all__ = ["utc_now", "utc_now_iso"]

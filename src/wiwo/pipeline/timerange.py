"""Compact duration tokens ("30d", "2w", "6m", "1y") and the cutoff they imply."""

from __future__ import annotations

import datetime as dt
from typing import Optional

from wiwo.errors import InvalidFormat, InvalidUnit

# Months and years are approximated as fixed day counts.
UNIT_DAYS = {
    "d": 1,
    "w": 7,
    "m": 30,
    "y": 365,
}


def parse_time_range(token: str) -> dt.timedelta:
    """Convert a token such as ``30d`` into a timedelta.

    Raises InvalidFormat when the token is shorter than two characters or its
    prefix is not a non-negative integer, and InvalidUnit for an unknown unit.
    """
    token = (token or "").strip()
    if len(token) < 2:
        raise InvalidFormat(
            "Invalid time format. Use a format like '30d' for 30 days or '1m' for 1 month"
        )

    amount_str, unit = token[:-1], token[-1]
    if not amount_str.isdecimal():
        raise InvalidFormat(f"Invalid number in time range: {amount_str!r}")
    amount = int(amount_str)

    if unit not in UNIT_DAYS:
        raise InvalidUnit(
            "Invalid time unit. Use 'd' for days, 'w' for weeks, 'm' for months, or 'y' for years"
        )
    try:
        return dt.timedelta(days=amount * UNIT_DAYS[unit])
    except OverflowError as exc:
        raise InvalidFormat(f"Time range too large: {token!r}") from exc


def cutoff_for(duration: dt.timedelta, now: Optional[dt.datetime] = None) -> dt.datetime:
    """Return the earliest instant still inside the window ending at ``now``.

    Raises InvalidFormat when that instant falls before the first representable date.
    """
    now = now or dt.datetime.now(dt.timezone.utc)
    try:
        return now - duration
    except OverflowError as exc:
        raise InvalidFormat(f"Time range reaches before year 1: {duration.days} days") from exc


__all__ = ["UNIT_DAYS", "parse_time_range", "cutoff_for"]

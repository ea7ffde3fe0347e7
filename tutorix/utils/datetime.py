# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""DateTime utilities for Tutorix.

All timestamps are stored in UTC and all Python datetimes handled by the
auth core are timezone-aware, so that expiry comparisons never mix naive
and aware values.

Usage:
------
    from tutorix.utils.datetime import utc_now

    expires_at = utc_now() + timedelta(minutes=30)
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Timezone-aware datetime representing current UTC time.
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Ensure a datetime is timezone-aware UTC.

    Args:
        dt: A datetime object (naive or aware) or None.

    Returns:
        Timezone-aware UTC datetime or None.

    Note:
        - If dt is None, returns None
        - If dt is naive, assumes UTC and adds tzinfo
        - If dt is aware, converts to UTC
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


# Epoch values at or above this are read as milliseconds (year 5138 in seconds)
EPOCH_MILLIS_THRESHOLD = 100_000_000_000


def parse_timestamp(value: datetime | str | int | float | None) -> datetime:
    """Parse a caller-supplied timestamp into an aware UTC datetime.

    Accepts datetime objects, ISO 8601 strings (a trailing ``Z`` is
    understood as UTC) and Unix epoch numbers in seconds or milliseconds,
    as JavaScript's ``Date.now()`` produces. All-digit strings are read as
    epoch numbers too.

    Args:
        value: Timestamp to parse.

    Returns:
        Timezone-aware UTC datetime.

    Raises:
        ValueError: If the value is missing or not a parseable date.
    """
    if isinstance(value, datetime):
        return ensure_utc(value)  # type: ignore[return-value]

    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        seconds = value / 1000 if abs(value) >= EPOCH_MILLIS_THRESHOLD else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError) as e:
            raise ValueError(f"Invalid timestamp: {value!r}") from e

    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Invalid timestamp: {value!r}")

    dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    return ensure_utc(dt)  # type: ignore[return-value]


def is_expired(expiry: datetime | None, at: datetime | None = None) -> bool:
    """Check if an expiry datetime has passed.

    Args:
        expiry: The expiry datetime to check.
        at: Reference time, defaults to now.

    Returns:
        True if expired or expiry is None, False otherwise.
    """
    if expiry is None:
        return True

    reference = ensure_utc(at) if at is not None else utc_now()
    return reference > ensure_utc(expiry)  # type: ignore[operator]

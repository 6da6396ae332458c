"""
Timestamp utilities for consistent time handling across the system.
"""

import time
from datetime import datetime
from typing import Optional

HOUR_MS = 60 * 60 * 1000

_last_sequence_id = 0


def now_ms() -> int:
    """Current wall-clock instant in milliseconds since the epoch."""
    return int(time.time() * 1000)


def to_display_time(timestamp_ms: Optional[int] = None) -> str:
    """Convert a millisecond instant to the HH:MM string shown beside messages.

    Args:
        timestamp_ms: Unix timestamp in milliseconds (optional, uses current time if None)

    Returns:
        Local time as a two-digit hour and minute string
    """
    if timestamp_ms is None:
        timestamp_ms = now_ms()
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime('%H:%M')


def next_sequence_id() -> str:
    """Return a strictly increasing identifier derived from the nanosecond clock.

    Two calls within the same clock tick still yield distinct, ordered values.
    """
    global _last_sequence_id
    candidate = time.time_ns()
    if candidate <= _last_sequence_id:
        candidate = _last_sequence_id + 1
    _last_sequence_id = candidate
    return str(candidate)

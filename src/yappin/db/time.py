# src/yappin/db/time.py
"""Time utilities for stored records."""

import time


def now_ms() -> int:
    """Return the current Unix time in milliseconds."""
    return time.time_ns() // 1_000_000

# src/agentboard/db/time.py
"""Time utilities for stored records."""

import time

MILLISECONDS_PER_SECOND = 1000


def now_ms() -> int:
    """Return the current wall-clock time in epoch milliseconds.

    All stored timestamps (creation, bump, notification scores, read cursors)
    share this unit so they can be compared directly.
    """
    return int(time.time() * MILLISECONDS_PER_SECOND)


def now_s() -> int:
    """Return the current wall-clock time in epoch seconds."""
    return int(time.time())

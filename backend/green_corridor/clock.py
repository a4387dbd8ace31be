"""
Wall-clock helpers

Timestamps on the wire are ISO-8601 UTC with millisecond precision and a
trailing Z, e.g. 2024-06-10T08:30:00.000Z.
"""

import time
from datetime import datetime, timezone
from typing import Optional


def iso_utc(ts: Optional[float] = None) -> str:
    """Format a Unix timestamp (default: now) as ISO-8601 UTC"""
    if ts is None:
        ts = time.time()
    dt = datetime.fromtimestamp(ts, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")

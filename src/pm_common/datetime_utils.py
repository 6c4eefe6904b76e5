"""UTC time utilities. Domain timestamps are int epoch milliseconds."""

import time
from collections.abc import Callable
from datetime import datetime, timezone

Clock = Callable[[], int]


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def now_ms() -> int:
    """Default clock: current epoch time in milliseconds."""
    return time.time_ns() // 1_000_000


def ms_to_iso(ts_ms: int) -> str:
    """Render an epoch-ms timestamp as an ISO8601 UTC string."""
    return datetime.fromtimestamp(ts_ms / 1000, tz=timezone.utc).isoformat()

"""
Time and expiry helpers.

- Duration strings such as "10m" or "1h" used for code lifetimes
- Timezone-aware "now" and normalisation of stored timestamps
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Optional

_DURATION_PATTERN = re.compile(r"^(\d+)([smhd])$")

_UNIT_SECONDS = {
    "s": 1,
    "m": 60,
    "h": 60 * 60,
    "d": 24 * 60 * 60,
}

_UNIT_NAMES = (
    (24 * 60 * 60, "day"),
    (60 * 60, "hour"),
    (60, "minute"),
    (1, "second"),
)


def parse_duration(value: str) -> timedelta:
    """
    Parse a duration string of the form <integer><s|m|h|d>.

    Examples: "30s", "10m", "1h", "7d"

    Raises:
        ValueError: if the string does not match the format
    """
    match = _DURATION_PATTERN.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise ValueError(f"Invalid duration format: {value!r}")

    amount = int(match.group(1))
    return timedelta(seconds=amount * _UNIT_SECONDS[match.group(2)])


def humanize_duration(delta: timedelta) -> str:
    """Render a duration using its largest whole unit, e.g. "10 minutes"."""
    total = int(delta.total_seconds())
    for seconds, name in _UNIT_NAMES:
        if total >= seconds and total % seconds == 0:
            count = total // seconds
            return f"{count} {name}" + ("" if count == 1 else "s")
    return f"{total} seconds"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Attach UTC to naive timestamps.

    SQLite returns naive datetimes even for timezone-aware columns, so values
    read back from the store are normalised before comparison.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)

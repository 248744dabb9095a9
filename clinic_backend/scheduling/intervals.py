"""Minute-of-day interval arithmetic shared by the enumerator and validator.

All intervals are half-open ``[start, end)`` and expressed in minutes from
local midnight. A buffered end may run past 24:00.
"""

from datetime import time

from clinic_backend.core.errors import ConfigurationError, InputError

MINUTES_PER_DAY = 24 * 60

Interval = tuple[int, int]


def time_to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def minutes_to_time(minutes: int) -> time:
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise InputError(f"{minutes} minutes is outside a single day.")
    return time(minutes // 60, minutes % 60)


def format_minutes(minutes: int) -> str:
    """Render minutes as "HH:MM" without wrapping at midnight."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def parse_time(value: str | time) -> time:
    """Parse "HH:MM" (or "HH:MM:SS") into a ``time``."""
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    try:
        return time.fromisoformat(value.strip()).replace(second=0, microsecond=0)
    except (AttributeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid time value: {value!r}") from exc


def require_duration(duration_minutes: int) -> None:
    if duration_minutes <= 0:
        raise InputError("Duration must be a positive number of minutes.")


def require_buffer(buffer_minutes: int) -> None:
    if buffer_minutes < 0:
        raise ConfigurationError("Buffer minutes must be a non-negative number.")


def occupied_interval(start: time, duration_minutes: int, buffer_minutes: int) -> Interval:
    """Range a booking removes from availability: service time plus trailing buffer."""
    start_minutes = time_to_minutes(start)
    return start_minutes, start_minutes + duration_minutes + buffer_minutes


def intervals_overlap(first: Interval, second: Interval) -> bool:
    return first[0] < second[1] and first[1] > second[0]


def blocked_until(start: time, duration_minutes: int, buffer_minutes: int) -> str:
    """Time at which the next appointment may start, for the admin dashboard."""
    _, end = occupied_interval(start, duration_minutes, buffer_minutes)
    return format_minutes(end)

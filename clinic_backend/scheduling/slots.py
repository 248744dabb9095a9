"""
Available start times for a service on one day.

Combines the weekly template, the day's blocks and bookings and the buffer
setting. Pure: callers pass a snapshot and get a list back, nothing is read
or cached here.

Whether a service may be booked on a weekend is decided by the booking flow
(see ``pricing.ensure_bookable_on``), not here: the enumerator only answers
"which times are free".
"""

from datetime import date, datetime, time
from typing import Iterable

from clinic_backend.scheduling.calendar import WeeklyTemplate
from clinic_backend.scheduling.intervals import (
    Interval,
    intervals_overlap,
    minutes_to_time,
    require_buffer,
    require_duration,
    time_to_minutes,
)
from clinic_backend.scheduling.records import Block, Booking

DEFAULT_STEP_MINUTES = 30


def enumerate_slots(
    target_date: date,
    duration_minutes: int,
    template: WeeklyTemplate,
    blocks: Iterable[Block],
    bookings: Iterable[Booking],
    buffer_minutes: int,
    step_minutes: int = DEFAULT_STEP_MINUTES,
    now: datetime | None = None,
) -> list[time]:
    """
    Return bookable start times in ascending order.

    An empty list means no availability; it is never an error. Past dates
    yield nothing and times at or before ``now`` are dropped. ``now``
    defaults to the current time, as in ``validate_slot``, so a slot listed
    here passes validation against the same data.
    """
    require_duration(duration_minutes)
    require_buffer(buffer_minutes)
    require_duration(step_minutes)

    now = now or datetime.now()
    if target_date < now.date():
        return []

    hours = template.hours_for(target_date)
    if hours.closed:
        return []

    day_blocks = [block for block in blocks if block.date == target_date]
    if any(block.full_day for block in day_blocks):
        return []

    taken = unavailable_intervals(target_date, day_blocks, bookings, buffer_minutes)
    earliest = _earliest_start(target_date, now)

    open_minutes, close_minutes = hours.window
    slots: list[time] = []
    candidate = open_minutes
    while candidate + duration_minutes <= close_minutes:
        occupied = (candidate, candidate + duration_minutes + buffer_minutes)
        if candidate >= earliest and not any(intervals_overlap(occupied, other) for other in taken):
            slots.append(minutes_to_time(candidate))
        candidate += step_minutes

    return slots


def unavailable_intervals(
    target_date: date,
    blocks: Iterable[Block],
    bookings: Iterable[Booking],
    buffer_minutes: int,
) -> list[Interval]:
    """Partial blocks as-is, plus each occupying booking's buffered interval."""
    intervals = [
        block.interval
        for block in blocks
        if block.date == target_date and not block.full_day
    ]
    intervals.extend(
        booking.occupied_interval(buffer_minutes)
        for booking in bookings
        if booking.date == target_date and booking.occupies_calendar
    )
    return intervals


def _earliest_start(target_date: date, now: datetime) -> int:
    if target_date > now.date():
        return 0
    # Same day: the next whole minute after now.
    return time_to_minutes(now.time()) + 1

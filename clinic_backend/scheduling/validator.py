"""
Authoritative slot check run when a booking is written.

Re-derives conflicts from the data it is handed, independent of what the
enumerator returned earlier. It does not lock anything: between this check
and the insert another request may take the slot, so the store keeps its own
guard (see ``SqlScheduleStore.create_booking``).
"""

from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum
from typing import Iterable

from clinic_backend.scheduling.calendar import WeeklyTemplate
from clinic_backend.scheduling.intervals import (
    intervals_overlap,
    occupied_interval,
    require_buffer,
    require_duration,
    time_to_minutes,
)
from clinic_backend.scheduling.records import Block, Booking


class ConflictReason(str, Enum):
    PAST_DATE = "past_date"
    PAST_TIME = "past_time"
    CLOSED_DAY = "closed_day"
    FULL_DAY_BLOCK = "full_day_block"
    OUTSIDE_OPENING_HOURS = "outside_opening_hours"
    PARTIAL_BLOCK_OVERLAP = "partial_block_overlap"
    BOOKING_OVERLAP = "booking_overlap"


CONFLICT_MESSAGES = {
    ConflictReason.PAST_DATE: "Appointments must be scheduled in the future.",
    ConflictReason.PAST_TIME: "This time has already passed.",
    ConflictReason.CLOSED_DAY: "The clinic is closed on this day.",
    ConflictReason.FULL_DAY_BLOCK: "This day is blocked.",
    ConflictReason.OUTSIDE_OPENING_HOURS: "Appointment is outside opening hours.",
    ConflictReason.PARTIAL_BLOCK_OVERLAP: "This time is blocked.",
    ConflictReason.BOOKING_OVERLAP: "This time is already booked.",
}


@dataclass(frozen=True)
class SlotCheck:
    reason: ConflictReason | None = None
    conflicting_booking_id: int | None = None

    @property
    def ok(self) -> bool:
        return self.reason is None

    @property
    def message(self) -> str | None:
        return CONFLICT_MESSAGES.get(self.reason)


SLOT_OK = SlotCheck()


def validate_slot(
    target_date: date,
    start_time: time,
    duration_minutes: int,
    template: WeeklyTemplate,
    blocks: Iterable[Block],
    bookings: Iterable[Booking],
    buffer_minutes: int,
    now: datetime | None = None,
    exclude_booking_id: int | None = None,
) -> SlotCheck:
    require_duration(duration_minutes)
    require_buffer(buffer_minutes)

    now = now or datetime.now()
    if target_date < now.date():
        return SlotCheck(ConflictReason.PAST_DATE)
    if datetime.combine(target_date, start_time) <= now:
        return SlotCheck(ConflictReason.PAST_TIME)

    hours = template.hours_for(target_date)
    if hours.closed:
        return SlotCheck(ConflictReason.CLOSED_DAY)

    day_blocks = [block for block in blocks if block.date == target_date]
    if any(block.full_day for block in day_blocks):
        return SlotCheck(ConflictReason.FULL_DAY_BLOCK)

    open_minutes, close_minutes = hours.window
    start_minutes = time_to_minutes(start_time)
    if start_minutes < open_minutes or start_minutes + duration_minutes > close_minutes:
        return SlotCheck(ConflictReason.OUTSIDE_OPENING_HOURS)

    requested = occupied_interval(start_time, duration_minutes, buffer_minutes)

    for block in day_blocks:
        if not block.full_day and intervals_overlap(requested, block.interval):
            return SlotCheck(ConflictReason.PARTIAL_BLOCK_OVERLAP)

    for booking in bookings:
        if booking.date != target_date or not booking.occupies_calendar:
            continue
        if exclude_booking_id is not None and booking.id == exclude_booking_id:
            continue
        if intervals_overlap(requested, booking.occupied_interval(buffer_minutes)):
            return SlotCheck(ConflictReason.BOOKING_OVERLAP, conflicting_booking_id=booking.id)

    return SLOT_OK

from datetime import date, datetime, time

import pytest

from clinic_backend.core.errors import InputError
from clinic_backend.scheduling.calendar import WeeklyTemplate
from clinic_backend.scheduling.records import Block, Booking, BookingStatus
from clinic_backend.scheduling.slots import enumerate_slots
from clinic_backend.scheduling.validator import ConflictReason, validate_slot

TUESDAY = date(2026, 1, 6)
MONDAY = date(2026, 1, 5)
BEFORE = datetime(2026, 1, 1, 8, 0)

TEMPLATE = WeeklyTemplate.from_mapping({
    'tue': {'open': '11:00', 'close': '22:00', 'closed': False},
})


def _check(start: time, duration=60, blocks=(), bookings=(), buffer=20, target_date=TUESDAY, now=BEFORE, **kwargs):
    return validate_slot(target_date, start, duration, TEMPLATE, list(blocks), list(bookings), buffer, now=now, **kwargs)


def test_free_slot_is_accepted() -> None:
    check = _check(time(14, 0))

    assert check.ok
    assert check.message is None


def test_past_date_is_rejected() -> None:
    assert _check(time(14, 0), now=datetime(2026, 1, 7, 8, 0)).reason == ConflictReason.PAST_DATE


@pytest.mark.parametrize('now', [datetime(2026, 1, 6, 14, 0), datetime(2026, 1, 6, 15, 0)])
def test_start_at_or_before_now_is_rejected(now: datetime) -> None:
    assert _check(time(14, 0), now=now).reason == ConflictReason.PAST_TIME


def test_later_start_on_same_day_is_accepted() -> None:
    assert _check(time(14, 0), now=datetime(2026, 1, 6, 13, 59)).ok


def test_closed_day_is_rejected() -> None:
    assert _check(time(14, 0), target_date=MONDAY).reason == ConflictReason.CLOSED_DAY


def test_full_day_block_is_rejected() -> None:
    block = Block(date=TUESDAY, full_day=True)

    assert _check(time(14, 0), blocks=[block]).reason == ConflictReason.FULL_DAY_BLOCK


@pytest.mark.parametrize(('start', 'duration'), [(time(10, 30), 60), (time(21, 30), 60), (time(21, 0), 90)])
def test_outside_opening_hours_is_rejected(start: time, duration: int) -> None:
    assert _check(start, duration=duration).reason == ConflictReason.OUTSIDE_OPENING_HOURS


def test_buffer_may_run_past_closing() -> None:
    assert _check(time(21, 0)).ok


def test_partial_block_overlap_is_rejected() -> None:
    block = Block(date=TUESDAY, full_day=False, start_time=time(15, 0), end_time=time(16, 0))

    assert _check(time(14, 0), blocks=[block]).reason == ConflictReason.PARTIAL_BLOCK_OVERLAP
    assert _check(time(16, 0), blocks=[block]).ok


def test_booking_overlap_reports_conflicting_booking() -> None:
    booking = Booking(date=TUESDAY, start_time=time(14, 0), duration_minutes=60, id=7)

    check = _check(time(15, 0), bookings=[booking])

    assert check.reason == ConflictReason.BOOKING_OVERLAP
    assert check.conflicting_booking_id == 7
    assert check.message == 'This time is already booked.'


def test_cancelled_booking_does_not_conflict() -> None:
    booking = Booking(date=TUESDAY, start_time=time(14, 0), duration_minutes=60, status=BookingStatus.CANCELLED)

    assert _check(time(14, 0), bookings=[booking]).ok


def test_excluded_booking_is_ignored() -> None:
    booking = Booking(date=TUESDAY, start_time=time(14, 0), duration_minutes=60, id=3)

    assert _check(time(14, 30), bookings=[booking], exclude_booking_id=3).ok
    assert _check(time(14, 30), bookings=[booking], exclude_booking_id=4).reason == ConflictReason.BOOKING_OVERLAP


def test_first_failing_check_wins() -> None:
    block = Block(date=TUESDAY, full_day=True)
    booking = Booking(date=TUESDAY, start_time=time(14, 0), duration_minutes=60)

    check = _check(time(23, 0), blocks=[block], bookings=[booking], now=datetime(2026, 1, 6, 23, 30))

    assert check.reason == ConflictReason.PAST_TIME


def test_non_positive_duration_is_an_input_error() -> None:
    with pytest.raises(InputError):
        _check(time(14, 0), duration=0)


@pytest.mark.parametrize('now', [BEFORE, datetime(2026, 1, 6, 15, 10)])
def test_every_enumerated_slot_passes_validation(now: datetime) -> None:
    blocks = [Block(date=TUESDAY, full_day=False, start_time=time(12, 0), end_time=time(12, 45))]
    bookings = [
        Booking(date=TUESDAY, start_time=time(16, 0), duration_minutes=90),
        Booking(date=TUESDAY, start_time=time(19, 30), duration_minutes=20),
    ]

    slots = enumerate_slots(TUESDAY, 60, TEMPLATE, blocks, bookings, 20, now=now)

    assert slots
    for start in slots:
        assert _check(start, blocks=blocks, bookings=bookings, now=now).ok


def test_buffered_end_touching_block_start_is_accepted() -> None:
    # 14:00 + 60 min + 20 min buffer ends exactly at 15:20.
    block = Block(date=TUESDAY, full_day=False, start_time=time(15, 20), end_time=time(16, 0))

    assert _check(time(14, 0), blocks=[block]).ok


def test_buffered_end_one_minute_into_block_is_rejected() -> None:
    block = Block(date=TUESDAY, full_day=False, start_time=time(15, 19), end_time=time(16, 0))

    assert _check(time(14, 0), blocks=[block]).reason == ConflictReason.PARTIAL_BLOCK_OVERLAP


def test_start_at_block_end_is_accepted() -> None:
    block = Block(date=TUESDAY, full_day=False, start_time=time(13, 0), end_time=time(14, 0))

    assert _check(time(14, 0), blocks=[block]).ok


def test_missing_now_means_current_time() -> None:
    assert _check(time(14, 0), now=None).reason == ConflictReason.PAST_DATE

from datetime import date, time

import pytest

from clinic_backend.core.errors import ConfigurationError
from clinic_backend.scheduling.calendar import DAY_KEYS, DayHours, WeeklyTemplate
from clinic_backend.scheduling.intervals import blocked_until, format_minutes, parse_time
from clinic_backend.scheduling.records import Block, BookingConfig


def test_template_maps_weekdays_monday_first() -> None:
    template = WeeklyTemplate.from_mapping({
        'mon': {'open': '09:00', 'close': '10:00', 'closed': False},
        'sun': {'open': '11:00', 'close': '15:00', 'closed': False},
    })

    assert template.hours_for(date(2026, 1, 5)).opens_at == time(9, 0)
    assert template.hours_for(date(2026, 1, 11)).closes_at == time(15, 0)
    assert template.is_closed(date(2026, 1, 6))


def test_closed_day_ignores_its_times() -> None:
    template = WeeklyTemplate.from_mapping({'mon': {'open': '18:00', 'close': '09:00', 'closed': True}})

    assert template.is_closed(date(2026, 1, 5))


def test_open_day_needs_opening_before_closing() -> None:
    with pytest.raises(ConfigurationError):
        WeeklyTemplate.from_mapping({'tue': {'open': '22:00', 'close': '11:00', 'closed': False}})


def test_open_day_needs_both_times() -> None:
    with pytest.raises(ConfigurationError):
        WeeklyTemplate.from_mapping({'tue': {'open': '11:00', 'closed': False}})


def test_unknown_day_key_is_rejected() -> None:
    with pytest.raises(ConfigurationError):
        WeeklyTemplate.from_mapping({'tuesday': {'open': '11:00', 'close': '22:00', 'closed': False}})


def test_malformed_time_is_rejected() -> None:
    with pytest.raises(ConfigurationError):
        parse_time('25:99')


def test_to_mapping_fills_every_day() -> None:
    template = WeeklyTemplate.from_mapping({'tue': {'open': '11:00', 'close': '22:00', 'closed': False}})

    mapping = template.to_mapping()

    assert tuple(mapping) == DAY_KEYS
    assert mapping['tue'] == {'open': '11:00', 'close': '22:00', 'closed': False}
    assert mapping['mon']['closed'] is True
    assert WeeklyTemplate.from_mapping(mapping) == template


def test_day_hours_window_in_minutes() -> None:
    assert DayHours(time(11, 0), time(22, 0), closed=False).window == (660, 1320)


def test_partial_block_needs_both_times() -> None:
    with pytest.raises(ConfigurationError):
        Block(date=date(2026, 1, 6), full_day=False, start_time=time(12, 0))


def test_partial_block_needs_start_before_end() -> None:
    with pytest.raises(ConfigurationError):
        Block(date=date(2026, 1, 6), full_day=False, start_time=time(13, 0), end_time=time(12, 0))


def test_full_day_block_ignores_times() -> None:
    block = Block(date=date(2026, 1, 6), full_day=True, start_time=time(13, 0), end_time=time(12, 0))

    assert block.full_day


@pytest.mark.parametrize('fields', [{'buffer_minutes': -1}, {'slot_step_minutes': 20}])
def test_booking_config_rejects_invalid_values(fields: dict) -> None:
    with pytest.raises(ConfigurationError):
        BookingConfig(**fields)


def test_blocked_until_adds_duration_and_buffer() -> None:
    assert blocked_until(time(14, 0), 60, 20) == '15:20'
    assert blocked_until(time(21, 30), 90, 20) == '23:20'


def test_format_minutes_does_not_wrap_past_midnight() -> None:
    assert format_minutes(24 * 60 + 10) == '24:10'

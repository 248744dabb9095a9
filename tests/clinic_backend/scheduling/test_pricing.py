from datetime import date

import pytest

from clinic_backend.core.errors import ConfigurationError, InputError, WeekendUnavailableError
from clinic_backend.scheduling.pricing import ensure_bookable_on, is_weekend, resolve_price
from clinic_backend.scheduling.records import ServicePricing

TUESDAY = date(2026, 1, 6)
SATURDAY = date(2026, 1, 10)
SUNDAY = date(2026, 1, 11)

VISIT = ServicePricing(id='visit_60', name='Visit', duration_minutes=60, price_weekday=200, price_weekend=250)
CONSULTATION = ServicePricing(id='consultation', name='Consultation', duration_minutes=20, price_weekday=50)


@pytest.mark.parametrize(
    ('target_date', 'expected'),
    [(TUESDAY, False), (date(2026, 1, 9), False), (SATURDAY, True), (SUNDAY, True)],
)
def test_is_weekend(target_date: date, expected: bool) -> None:
    assert is_weekend(target_date) is expected


def test_weekday_price() -> None:
    assert resolve_price(VISIT, TUESDAY) == 200


@pytest.mark.parametrize('target_date', [SATURDAY, SUNDAY])
def test_weekend_price(target_date: date) -> None:
    assert resolve_price(VISIT, target_date) == 250


def test_weekday_only_service_on_weekday() -> None:
    assert resolve_price(CONSULTATION, TUESDAY) == 50


def test_weekend_price_for_weekday_only_service_fails_loudly() -> None:
    with pytest.raises(WeekendUnavailableError) as exception_info:
        resolve_price(CONSULTATION, SATURDAY)

    assert exception_info.value.service_id == 'consultation'
    assert isinstance(exception_info.value, InputError)


def test_ensure_bookable_on_allows_weekend_priced_service() -> None:
    ensure_bookable_on(VISIT, SUNDAY)


def test_zero_weekend_price_is_still_a_weekend_price() -> None:
    free = ServicePricing(id='free', name='Free', duration_minutes=30, price_weekday=0, price_weekend=0)

    assert resolve_price(free, SUNDAY) == 0


@pytest.mark.parametrize(
    'fields',
    [
        {'duration_minutes': 0, 'price_weekday': 100},
        {'duration_minutes': 30, 'price_weekday': -1},
        {'duration_minutes': 30, 'price_weekday': 100, 'price_weekend': -5},
    ],
)
def test_invalid_service_definitions_are_rejected(fields: dict) -> None:
    with pytest.raises(ConfigurationError):
        ServicePricing(id='broken', name='Broken', **fields)


def test_service_from_mapping_reads_null_weekend_price() -> None:
    service = ServicePricing.from_mapping(
        {'id': 'consultation', 'name': 'Konsultacja', 'duration_minutes': 20, 'price_weekday': 50, 'price_weekend': None}
    )

    assert service.available_on_weekends is False
    assert service.is_active is True


def test_service_from_mapping_rejects_missing_fields() -> None:
    with pytest.raises(ConfigurationError):
        ServicePricing.from_mapping({'id': 'visit'})

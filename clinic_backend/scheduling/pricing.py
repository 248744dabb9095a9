"""Service prices. All amounts are whole PLN."""

from datetime import date

from clinic_backend.core.errors import WeekendUnavailableError
from clinic_backend.scheduling.records import ServicePricing


def is_weekend(target_date: date) -> bool:
    return target_date.weekday() >= 5


def ensure_bookable_on(service: ServicePricing, target_date: date) -> None:
    """Raise if the service has no weekend price and the date is a weekend."""
    if is_weekend(target_date) and not service.available_on_weekends:
        raise WeekendUnavailableError(service.id)


def resolve_price(service: ServicePricing, target_date: date) -> int:
    """
    Price of ``service`` on ``target_date``.

    Weekend requests for a weekday-only service fail loudly instead of
    falling back to the weekday price.
    """
    if is_weekend(target_date):
        ensure_bookable_on(service, target_date)
        return service.price_weekend
    return service.price_weekday

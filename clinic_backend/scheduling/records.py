"""Immutable snapshots the scheduling functions compute over."""

from dataclasses import dataclass, field
from datetime import date, time
from enum import Enum

from clinic_backend.core.errors import ConfigurationError
from clinic_backend.scheduling.calendar import WeeklyTemplate
from clinic_backend.scheduling.intervals import Interval, occupied_interval, time_to_minutes

ALLOWED_SLOT_STEPS = (15, 30, 60)


class BookingStatus(str, Enum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    NO_SHOW = "no_show"

    @property
    def occupies_calendar(self) -> bool:
        return self in (BookingStatus.CONFIRMED, BookingStatus.COMPLETED)


OCCUPYING_STATUSES = tuple(status.value for status in BookingStatus if status.occupies_calendar)


@dataclass(frozen=True)
class Block:
    """
    Administrator-defined unavailable time on one date.

    A full-day block ignores its times. A partial block needs both and
    ``start_time < end_time``.
    """
    date: date
    full_day: bool
    start_time: time | None = None
    end_time: time | None = None
    reason: str | None = None
    id: int | None = None

    def __post_init__(self):
        if self.full_day:
            return
        if self.start_time is None or self.end_time is None:
            raise ConfigurationError("Partial blocks need both a start and an end time.")
        if self.start_time >= self.end_time:
            raise ConfigurationError("Block start time must be earlier than its end time.")

    @property
    def interval(self) -> Interval:
        return time_to_minutes(self.start_time), time_to_minutes(self.end_time)


@dataclass(frozen=True)
class Booking:
    date: date
    start_time: time
    duration_minutes: int
    status: BookingStatus = BookingStatus.CONFIRMED
    id: int | None = None

    @property
    def occupies_calendar(self) -> bool:
        return BookingStatus(self.status).occupies_calendar

    def occupied_interval(self, buffer_minutes: int) -> Interval:
        return occupied_interval(self.start_time, self.duration_minutes, buffer_minutes)


@dataclass(frozen=True)
class ServicePricing:
    """
    A bookable service.

    ``price_weekend`` of ``None`` means the service cannot be booked on
    Saturday or Sunday.
    """
    id: str
    name: str
    duration_minutes: int
    price_weekday: int
    price_weekend: int | None = None
    is_active: bool = True

    def __post_init__(self):
        if self.duration_minutes <= 0:
            raise ConfigurationError(f"Invalid duration for service {self.name}")
        if self.price_weekday < 0:
            raise ConfigurationError(f"Invalid weekday price for service {self.name}")
        if self.price_weekend is not None and self.price_weekend < 0:
            raise ConfigurationError(f"Invalid weekend price for service {self.name}")

    @property
    def available_on_weekends(self) -> bool:
        return self.price_weekend is not None

    @classmethod
    def from_mapping(cls, data: dict) -> "ServicePricing":
        try:
            return cls(
                id=str(data["id"]),
                name=str(data.get("name") or data["id"]),
                duration_minutes=int(data["duration_minutes"]),
                price_weekday=int(data["price_weekday"]),
                price_weekend=None if data.get("price_weekend") is None else int(data["price_weekend"]),
                is_active=bool(data.get("is_active", True)),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid service definition: {data!r}") from exc

    def to_mapping(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "duration_minutes": self.duration_minutes,
            "price_weekday": self.price_weekday,
            "price_weekend": self.price_weekend,
            "is_active": self.is_active,
        }


@dataclass(frozen=True)
class BookingConfig:
    """
    Scheduling density settings.

    Attributes:
        buffer_minutes: Reserved after every booking before the next may start.
        slot_step_minutes: Grid step for candidate start times (15/30/60).
    """
    buffer_minutes: int = 20
    slot_step_minutes: int = 30

    def __post_init__(self):
        if self.buffer_minutes < 0:
            raise ConfigurationError("Buffer minutes must be a non-negative number.")
        if self.slot_step_minutes not in ALLOWED_SLOT_STEPS:
            raise ConfigurationError(
                f"slot_step_minutes must be 15, 30, or 60, got {self.slot_step_minutes}"
            )


@dataclass(frozen=True)
class ClinicSettingsSnapshot:
    """Configuration read once per request and passed explicitly to the core."""
    template: WeeklyTemplate
    booking: BookingConfig = field(default_factory=BookingConfig)
    services: tuple[ServicePricing, ...] = ()

    def find_service(self, service_id: str, active_only: bool = True) -> ServicePricing | None:
        for service in self.services:
            if service.id == service_id and (service.is_active or not active_only):
                return service
        return None

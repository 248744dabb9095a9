"""Weekly opening-hours template."""

from dataclasses import dataclass
from datetime import date, time
from types import MappingProxyType
from typing import Mapping

from clinic_backend.core.errors import ConfigurationError
from clinic_backend.scheduling.intervals import parse_time, time_to_minutes

# Index matches date.weekday(): 0 = Monday, 6 = Sunday.
DAY_KEYS = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")


@dataclass(frozen=True)
class DayHours:
    opens_at: time = time(0, 0)
    closes_at: time = time(0, 0)
    closed: bool = True

    def __post_init__(self):
        if not self.closed and self.opens_at >= self.closes_at:
            raise ConfigurationError(
                f"Opening time {self.opens_at:%H:%M} must be earlier than closing time {self.closes_at:%H:%M}."
            )

    @property
    def window(self) -> tuple[int, int]:
        return time_to_minutes(self.opens_at), time_to_minutes(self.closes_at)

    def to_mapping(self) -> dict:
        return {
            "open": self.opens_at.strftime("%H:%M"),
            "close": self.closes_at.strftime("%H:%M"),
            "closed": self.closed,
        }


CLOSED_DAY = DayHours()


class WeeklyTemplate:
    """
    Opening hours keyed by weekday.

    Days without an entry read as closed so a gap in the stored settings
    never exposes phantom slots.
    """

    def __init__(self, days: Mapping[str, DayHours]):
        unknown = set(days) - set(DAY_KEYS)
        if unknown:
            raise ConfigurationError(f"Unknown weekday keys: {', '.join(sorted(unknown))}")
        self._days = MappingProxyType(dict(days))

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Mapping]) -> "WeeklyTemplate":
        days: dict[str, DayHours] = {}
        for key, entry in mapping.items():
            if key not in DAY_KEYS:
                raise ConfigurationError(f"Unknown weekday key: {key!r}")
            if entry is None or entry.get("closed", False):
                days[key] = CLOSED_DAY
                continue
            if not entry.get("open") or not entry.get("close"):
                raise ConfigurationError(f"Opening hours for {key} need both open and close times.")
            days[key] = DayHours(
                opens_at=parse_time(entry["open"]),
                closes_at=parse_time(entry["close"]),
                closed=False,
            )
        return cls(days)

    def to_mapping(self) -> dict[str, dict]:
        return {key: self._days.get(key, CLOSED_DAY).to_mapping() for key in DAY_KEYS}

    def hours_for(self, target_date: date) -> DayHours:
        return self._days.get(DAY_KEYS[target_date.weekday()], CLOSED_DAY)

    def is_closed(self, target_date: date) -> bool:
        return self.hours_for(target_date).closed

    def __eq__(self, other):
        if not isinstance(other, WeeklyTemplate):
            return NotImplemented
        return self.to_mapping() == other.to_mapping()

    def __hash__(self):
        return hash(tuple(sorted((key, tuple(value.items())) for key, value in self.to_mapping().items())))

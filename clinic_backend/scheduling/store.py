"""Read interface the scheduling core depends on.

Each call returns a point-in-time snapshot. The three reads are not taken in
one transaction, so settings, blocks and bookings may be up to one request
apart; the write path re-validates under a lock to make up for it.
"""

from datetime import date
from typing import Protocol

from clinic_backend.scheduling.calendar import WeeklyTemplate
from clinic_backend.scheduling.records import Block, Booking, ClinicSettingsSnapshot


class ScheduleReader(Protocol):
    def get_settings(self) -> ClinicSettingsSnapshot:
        ...

    def get_weekly_template(self) -> WeeklyTemplate:
        ...

    def get_blocks(self, target_date: date) -> list[Block]:
        ...

    def get_bookings(self, target_date: date) -> list[Booking]:
        """Bookings that occupy calendar time (confirmed or completed)."""
        ...

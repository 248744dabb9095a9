"""
SQLAlchemy record store for bookings, blocks and clinic settings.

Implements ``ScheduleReader`` for the scheduling core and owns the write
path. Booking writes lock the settings row (created on first use), validate
the slot against fresh data, insert, then re-check the day's bookings inside
the same transaction before committing. On PostgreSQL the row lock
serialises booking writers; SQLite ignores ``FOR UPDATE`` but allows one
writer at a time. The post-insert re-check catches an overlapping booking
committed after validation ran. The unique index on active start times only
rejects identical starts.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clinic_backend.core import config
from clinic_backend.core.errors import InputError
from clinic_backend.models.blocked_slot import BlockedSlot
from clinic_backend.models.booking import Booking
from clinic_backend.models.clinic_setting import CLINIC_SETTINGS_ID, ClinicSetting
from clinic_backend.scheduling import records
from clinic_backend.scheduling.calendar import WeeklyTemplate
from clinic_backend.scheduling.intervals import intervals_overlap
from clinic_backend.scheduling.records import (
    OCCUPYING_STATUSES,
    BookingConfig,
    BookingStatus,
    ClinicSettingsSnapshot,
    ServicePricing,
)
from clinic_backend.scheduling.store import ScheduleReader
from clinic_backend.scheduling.validator import SLOT_OK, ConflictReason, SlotCheck, validate_slot

logger = logging.getLogger(__name__)


@dataclass
class BookingDraft:
    service: ServicePricing
    price_pln: int
    date: date
    start_time: time
    first_name: str
    last_name: str
    phone: str
    email: str
    notes: str | None = None


def default_settings() -> ClinicSettingsSnapshot:
    return ClinicSettingsSnapshot(
        template=WeeklyTemplate.from_mapping(config.DEFAULT_OPENING_HOURS),
        booking=BookingConfig(
            buffer_minutes=config.DEFAULT_BUFFER_MINUTES,
            slot_step_minutes=config.SLOT_STEP_MINUTES,
        ),
        services=tuple(ServicePricing.from_mapping(item) for item in config.DEFAULT_SERVICES),
    )


def settings_from_row(row: ClinicSetting) -> ClinicSettingsSnapshot:
    return ClinicSettingsSnapshot(
        template=WeeklyTemplate.from_mapping(row.opening_hours or {}),
        booking=BookingConfig(
            buffer_minutes=row.buffer_minutes,
            slot_step_minutes=row.slot_step_minutes,
        ),
        services=tuple(ServicePricing.from_mapping(item) for item in row.services or []),
    )


def write_settings(row: ClinicSetting, settings: ClinicSettingsSnapshot) -> None:
    row.opening_hours = settings.template.to_mapping()
    row.services = [service.to_mapping() for service in settings.services]
    row.buffer_minutes = settings.booking.buffer_minutes
    row.slot_step_minutes = settings.booking.slot_step_minutes


def to_block(row: BlockedSlot) -> records.Block:
    return records.Block(
        date=row.date,
        full_day=bool(row.is_full_day),
        start_time=row.time_start,
        end_time=row.time_end,
        reason=row.reason,
        id=row.id,
    )


def to_booking(row: Booking) -> records.Booking:
    return records.Booking(
        date=row.date,
        start_time=row.start_time,
        duration_minutes=row.duration_minutes,
        status=BookingStatus(row.status),
        id=row.id,
    )


class SqlScheduleStore(ScheduleReader):
    def __init__(self, db: Session):
        self.db = db

    # ── Reads ───────────────────────────────────────────────────────────

    def get_settings(self) -> ClinicSettingsSnapshot:
        row = self.db.get(ClinicSetting, CLINIC_SETTINGS_ID)
        if row is None:
            return default_settings()
        return settings_from_row(row)

    def get_weekly_template(self) -> WeeklyTemplate:
        return self.get_settings().template

    def get_blocks(self, target_date: date) -> list[records.Block]:
        return [to_block(row) for row in self.list_blocks(target_date, target_date)]

    def get_bookings(self, target_date: date) -> list[records.Booking]:
        rows = self.db.query(Booking).filter(
            Booking.date == target_date,
            Booking.status.in_(OCCUPYING_STATUSES),
        ).order_by(Booking.start_time.asc()).all()
        return [to_booking(row) for row in rows]

    def list_blocks(self, date_from: date | None = None, date_to: date | None = None) -> list[BlockedSlot]:
        query = self.db.query(BlockedSlot)
        if date_from:
            query = query.filter(BlockedSlot.date >= date_from)
        if date_to:
            query = query.filter(BlockedSlot.date <= date_to)
        return query.order_by(BlockedSlot.date.asc(), BlockedSlot.time_start.asc()).all()

    def list_bookings(
        self,
        date_from: date | None = None,
        date_to: date | None = None,
        status: str | None = None,
        search: str | None = None,
        email: str | None = None,
    ) -> list[Booking]:
        query = self.db.query(Booking)
        if date_from:
            query = query.filter(Booking.date >= date_from)
        if date_to:
            query = query.filter(Booking.date <= date_to)
        if status:
            query = query.filter(Booking.status == status)
        if email:
            query = query.filter(Booking.email == email.strip().lower())
        if search:
            pattern = f'%{search.strip()}%'
            query = query.filter(
                or_(
                    Booking.first_name.ilike(pattern),
                    Booking.last_name.ilike(pattern),
                    Booking.email.ilike(pattern),
                    Booking.phone.ilike(pattern),
                    Booking.service_name.ilike(pattern),
                )
            )
        return query.order_by(Booking.date.desc(), Booking.start_time.desc()).all()

    def get_booking(self, booking_id: int) -> Booking | None:
        return self.db.get(Booking, booking_id)

    # ── Writes ──────────────────────────────────────────────────────────

    def create_booking(self, draft: BookingDraft, now: datetime | None = None) -> tuple[SlotCheck, Booking | None]:
        """Re-validate under the settings lock and insert if the slot is still free."""
        settings = self._lock_settings()
        check = validate_slot(
            draft.date,
            draft.start_time,
            draft.service.duration_minutes,
            settings.template,
            self.get_blocks(draft.date),
            self.get_bookings(draft.date),
            settings.booking.buffer_minutes,
            now=now,
        )
        if not check.ok:
            self.db.rollback()
            return check, None

        booking = Booking(
            service_id=draft.service.id,
            service_name=draft.service.name,
            duration_minutes=draft.service.duration_minutes,
            price_pln=draft.price_pln,
            date=draft.date,
            start_time=draft.start_time,
            first_name=draft.first_name,
            last_name=draft.last_name,
            phone=draft.phone,
            email=draft.email,
            notes=draft.notes,
            status=BookingStatus.CONFIRMED.value,
        )
        self.db.add(booking)
        check = self._commit_occupying(booking, settings.booking.buffer_minutes)
        if not check.ok:
            logger.warning('Booking insert for %s %s lost a race to another booking', draft.date, draft.start_time)
            return check, None
        self.db.refresh(booking)
        return check, booking

    def update_booking(
        self,
        booking: Booking,
        changes: dict,
        now: datetime | None = None,
    ) -> SlotCheck:
        """
        Apply admin changes to a booking.

        Moving a booking, or returning a cancelled one to an occupying status,
        re-validates the new interval with the booking itself excluded.
        """
        new_status = BookingStatus(changes.get('status', booking.status))
        new_date = changes.get('date', booking.date)
        new_time = changes.get('start_time', booking.start_time)
        moved = new_date != booking.date or new_time != booking.start_time
        reoccupies = new_status.occupies_calendar and not BookingStatus(booking.status).occupies_calendar
        needs_check = new_status.occupies_calendar and (moved or reoccupies)

        buffer_minutes = 0
        if needs_check:
            settings = self._lock_settings()
            buffer_minutes = settings.booking.buffer_minutes
            check = validate_slot(
                new_date,
                new_time,
                booking.duration_minutes,
                settings.template,
                self.get_blocks(new_date),
                self.get_bookings(new_date),
                buffer_minutes,
                now=now,
                exclude_booking_id=booking.id,
            )
            if not check.ok:
                self.db.rollback()
                return check

        booking.status = new_status.value
        booking.date = new_date
        booking.start_time = new_time
        if 'notes' in changes:
            booking.notes = changes['notes']

        if needs_check:
            check = self._commit_occupying(booking, buffer_minutes)
        else:
            self.db.commit()
            check = SLOT_OK
        if check.ok:
            self.db.refresh(booking)
        return check

    def delete_booking(self, booking_id: int) -> bool:
        row = self.get_booking(booking_id)
        if row is None:
            return False
        self.db.delete(row)
        self.db.commit()
        return True

    def create_block(self, block: records.Block) -> BlockedSlot:
        row = BlockedSlot(
            date=block.date,
            time_start=None if block.full_day else block.start_time,
            time_end=None if block.full_day else block.end_time,
            is_full_day=block.full_day,
            reason=block.reason,
        )
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return row

    def delete_block(self, block_id: int) -> bool:
        row = self.db.get(BlockedSlot, block_id)
        if row is None:
            return False
        self.db.delete(row)
        self.db.commit()
        return True

    def save_settings(self, settings: ClinicSettingsSnapshot) -> ClinicSettingsSnapshot:
        service_ids = [service.id for service in settings.services]
        if len(service_ids) != len(set(service_ids)):
            raise InputError('Service ids must be unique.')

        row = self.db.get(ClinicSetting, CLINIC_SETTINGS_ID)
        if row is None:
            row = ClinicSetting(id=CLINIC_SETTINGS_ID)
            self.db.add(row)
        write_settings(row, settings)
        self.db.commit()
        return settings_from_row(row)

    def _commit_occupying(self, booking: Booking, buffer_minutes: int) -> SlotCheck:
        """
        Flush ``booking`` and commit unless another occupying booking now overlaps it.

        Runs after validation, in the same transaction as the write, so it also
        sees bookings committed since the day was first read.
        """
        try:
            self.db.flush()
            conflict = self._find_overlap(booking, buffer_minutes)
            if conflict is not None:
                self.db.rollback()
                return SlotCheck(ConflictReason.BOOKING_OVERLAP, conflicting_booking_id=conflict.id)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            return SlotCheck(ConflictReason.BOOKING_OVERLAP)
        return SLOT_OK

    def _find_overlap(self, booking: Booking, buffer_minutes: int) -> records.Booking | None:
        requested = to_booking(booking).occupied_interval(buffer_minutes)
        for other in self.get_bookings(booking.date):
            if other.id != booking.id and intervals_overlap(requested, other.occupied_interval(buffer_minutes)):
                return other
        return None

    def _lock_settings(self) -> ClinicSettingsSnapshot:
        row = self._settings_row_for_update()
        if row is None:
            # Fresh install: the lock needs a row to hold.
            self._create_default_settings_row()
            row = self._settings_row_for_update()
        return settings_from_row(row)

    def _settings_row_for_update(self) -> ClinicSetting | None:
        return (
            self.db.query(ClinicSetting)
            .filter(ClinicSetting.id == CLINIC_SETTINGS_ID)
            .with_for_update()
            .first()
        )

    def _create_default_settings_row(self) -> None:
        row = ClinicSetting(id=CLINIC_SETTINGS_ID)
        write_settings(row, default_settings())
        self.db.add(row)
        try:
            self.db.commit()
        except IntegrityError:
            # Another request created it between our read and insert.
            self.db.rollback()
            logger.info('Clinic settings row created concurrently; using the stored one')

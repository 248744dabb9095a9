import logging
from datetime import date, datetime, time, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_backend.auth.dependencies import AdminIdentity, get_current_admin
from clinic_backend.core.errors import ConfigurationError, InputError
from clinic_backend.models.booking import Booking
from clinic_backend.routes.booking_routes import CreateBookingRequest, place_booking
from clinic_backend.routes.dependencies import (
    database_unavailable,
    ensure_database_ready,
    get_db,
    settings_invalid,
    slot_conflict,
)
from clinic_backend.scheduling import records
from clinic_backend.scheduling.calendar import WeeklyTemplate
from clinic_backend.scheduling.intervals import blocked_until
from clinic_backend.scheduling.records import (
    OCCUPYING_STATUSES,
    BookingConfig,
    BookingStatus,
    ClinicSettingsSnapshot,
    ServicePricing,
)
from clinic_backend.services.schedule_store import SqlScheduleStore

router = APIRouter(tags=['admin'], dependencies=[Depends(get_current_admin)])

logger = logging.getLogger(__name__)

UPCOMING_WINDOW_DAYS = 7
UPCOMING_LIMIT = 10


class CreateBlockedSlotRequest(BaseModel):
    date: date
    time_start: time | None = None
    time_end: time | None = None
    is_full_day: bool | None = None
    reason: str | None = None

    @field_validator('reason')
    @classmethod
    def normalize_reason(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None


class BlockedSlotResponse(BaseModel):
    id: int
    date: date
    time_start: time | None = None
    time_end: time | None = None
    is_full_day: bool
    reason: str | None = None

    class Config:
        from_attributes = True


class AdminBookingResponse(BaseModel):
    id: int
    service_id: str
    service_name: str
    duration_minutes: int
    price_pln: int
    date: date
    start_time: time
    blocked_until: str
    first_name: str
    last_name: str
    phone: str
    email: str
    notes: str | None = None
    status: str


class UpdateBookingRequest(BaseModel):
    status: BookingStatus | None = None
    new_date: date | None = Field(default=None, alias='date')
    new_time: time | None = Field(default=None, alias='time')
    notes: str | None = None


class DayHoursPayload(BaseModel):
    open: str
    close: str
    closed: bool = False


class ServicePayload(BaseModel):
    id: str
    name: str
    duration_minutes: int
    price_weekday: int
    price_weekend: int | None = None
    is_active: bool = True


class SettingsPayload(BaseModel):
    opening_hours: dict[str, DayHoursPayload]
    services: list[ServicePayload]
    buffer_minutes: int = Field(ge=0)
    slot_step_minutes: int = 30


class ClientResponse(BaseModel):
    email: str
    first_name: str
    last_name: str
    phone: str
    visit_count: int
    last_visit: date
    total_spent: int


class DashboardStatsResponse(BaseModel):
    today_bookings: int
    week_bookings: int
    month_revenue: int
    total_clients: int


class DashboardResponse(BaseModel):
    stats: DashboardStatsResponse
    today_appointments: list[AdminBookingResponse]
    upcoming_appointments: list[AdminBookingResponse]


def to_admin_booking(booking: Booking, buffer_minutes: int) -> AdminBookingResponse:
    return AdminBookingResponse(
        id=booking.id,
        service_id=booking.service_id,
        service_name=booking.service_name,
        duration_minutes=booking.duration_minutes,
        price_pln=booking.price_pln,
        date=booking.date,
        start_time=booking.start_time,
        blocked_until=blocked_until(booking.start_time, booking.duration_minutes, buffer_minutes),
        first_name=booking.first_name,
        last_name=booking.last_name,
        phone=booking.phone,
        email=booking.email,
        notes=booking.notes,
        status=booking.status,
    )


def settings_to_payload(settings: ClinicSettingsSnapshot) -> SettingsPayload:
    return SettingsPayload(
        opening_hours=settings.template.to_mapping(),
        services=[service.to_mapping() for service in settings.services],
        buffer_minutes=settings.booking.buffer_minutes,
        slot_step_minutes=settings.booking.slot_step_minutes,
    )


def payload_to_settings(payload: SettingsPayload) -> ClinicSettingsSnapshot:
    return ClinicSettingsSnapshot(
        template=WeeklyTemplate.from_mapping(
            {key: hours.model_dump() for key, hours in payload.opening_hours.items()}
        ),
        booking=BookingConfig(
            buffer_minutes=payload.buffer_minutes,
            slot_step_minutes=payload.slot_step_minutes,
        ),
        services=tuple(ServicePricing.from_mapping(service.model_dump()) for service in payload.services),
    )


# ── Blocked slots ────────────────────────────────────────────────────────


@router.get('/blocked-slots', response_model=list[BlockedSlotResponse])
def list_blocked_slots(
    date_from: date | None = Query(default=None),
    date_to: date | None = Query(default=None),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return SqlScheduleStore(db).list_blocks(date_from, date_to)
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


@router.post('/blocked-slots', response_model=BlockedSlotResponse, status_code=status.HTTP_201_CREATED)
def create_blocked_slot(data: CreateBlockedSlotRequest, db: Session = Depends(get_db)):
    is_full_day = data.is_full_day if data.is_full_day is not None else data.time_start is None

    try:
        block = records.Block(
            date=data.date,
            full_day=is_full_day,
            start_time=data.time_start,
            end_time=data.time_end,
            reason=data.reason,
        )
    except ConfigurationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    ensure_database_ready()

    try:
        row = SqlScheduleStore(db).create_block(block)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc

    logger.info(
        'Blocked %s (%s)',
        data.date,
        'full day' if is_full_day else f'{data.time_start:%H:%M}-{data.time_end:%H:%M}',
    )
    return row


@router.delete('/blocked-slots/{slot_id}', status_code=status.HTTP_204_NO_CONTENT)
def remove_blocked_slot(slot_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        deleted = SqlScheduleStore(db).delete_block(slot_id)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc

    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Blocked slot not found.',
        )


# ── Bookings ─────────────────────────────────────────────────────────────


@router.get('/bookings', response_model=list[AdminBookingResponse])
def list_bookings(
    date_from: date | None = Query(default=None),
    date_to: date | None = Query(default=None),
    booking_status: BookingStatus | None = Query(default=None, alias='status'),
    search: str | None = Query(default=None),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        store = SqlScheduleStore(db)
        buffer_minutes = store.get_settings().booking.buffer_minutes
        bookings = store.list_bookings(
            date_from=date_from,
            date_to=date_to,
            status=booking_status.value if booking_status else None,
            search=search,
        )
        return [to_admin_booking(booking, buffer_minutes) for booking in bookings]
    except ConfigurationError as exc:
        raise settings_invalid(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


@router.patch('/bookings/{booking_id}', response_model=AdminBookingResponse)
def update_booking(booking_id: int, data: UpdateBookingRequest, db: Session = Depends(get_db)):
    changes = {}
    if data.status is not None:
        changes['status'] = data.status.value
    if data.new_date is not None:
        changes['date'] = data.new_date
    if data.new_time is not None:
        changes['start_time'] = data.new_time.replace(second=0, microsecond=0)
    if 'notes' in data.model_fields_set:
        changes['notes'] = data.notes.strip() if data.notes else None

    if not changes:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='No changes supplied.',
        )

    ensure_database_ready()

    try:
        store = SqlScheduleStore(db)
        booking = store.get_booking(booking_id)
        if booking is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Booking not found.',
            )

        check = store.update_booking(booking, changes)
        if not check.ok:
            logger.warning('Update of booking %s rejected: %s', booking_id, check.reason.value)
            raise slot_conflict(check)

        logger.info('Booking %s updated: %s', booking_id, sorted(changes))
        return to_admin_booking(booking, store.get_settings().booking.buffer_minutes)
    except InputError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except ConfigurationError as exc:
        raise settings_invalid(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.post('/bookings', response_model=AdminBookingResponse, status_code=status.HTTP_201_CREATED)
def create_admin_booking(data: CreateBookingRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    # Phone bookings may be entered beyond the public booking horizon.
    booking = place_booking(data, db, enforce_horizon=False)

    try:
        buffer_minutes = SqlScheduleStore(db).get_settings().booking.buffer_minutes
    except ConfigurationError as exc:
        raise settings_invalid(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc
    return to_admin_booking(booking, buffer_minutes)


@router.get('/bookings/{booking_id}', response_model=AdminBookingResponse)
def get_booking(booking_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        store = SqlScheduleStore(db)
        booking = store.get_booking(booking_id)
        if booking is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Booking not found.',
            )
        return to_admin_booking(booking, store.get_settings().booking.buffer_minutes)
    except ConfigurationError as exc:
        raise settings_invalid(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


@router.delete('/bookings/{booking_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_booking(booking_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        deleted = SqlScheduleStore(db).delete_booking(booking_id)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc

    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Booking not found.',
        )
    logger.info('Booking %s deleted', booking_id)


# ── Clients ──────────────────────────────────────────────────────────────


@router.get('/clients', response_model=list[ClientResponse])
def list_clients(db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        return summarize_clients(SqlScheduleStore(db).list_bookings())
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


@router.get('/clients/{email}/bookings', response_model=list[AdminBookingResponse])
def list_client_bookings(email: str, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        store = SqlScheduleStore(db)
        buffer_minutes = store.get_settings().booking.buffer_minutes
        return [to_admin_booking(booking, buffer_minutes) for booking in store.list_bookings(email=email)]
    except ConfigurationError as exc:
        raise settings_invalid(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


def summarize_clients(bookings: list[Booking]) -> list[ClientResponse]:
    """Group bookings by email. Contact details come from the latest visit."""
    clients: dict[str, ClientResponse] = {}

    for booking in bookings:
        spent = booking.price_pln if booking.status != BookingStatus.CANCELLED.value else 0
        client = clients.get(booking.email)
        if client is None:
            clients[booking.email] = ClientResponse(
                email=booking.email,
                first_name=booking.first_name,
                last_name=booking.last_name,
                phone=booking.phone,
                visit_count=1,
                last_visit=booking.date,
                total_spent=spent,
            )
            continue

        client.visit_count += 1
        client.total_spent += spent
        if booking.date > client.last_visit:
            client.last_visit = booking.date
            client.first_name = booking.first_name
            client.last_name = booking.last_name
            client.phone = booking.phone

    return sorted(clients.values(), key=lambda client: client.last_visit, reverse=True)


# ── Settings─────────────────────────────────────────────────────────────


@router.get('/settings', response_model=SettingsPayload)
def get_settings(db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        return settings_to_payload(SqlScheduleStore(db).get_settings())
    except ConfigurationError as exc:
        raise settings_invalid(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


@router.put('/settings', response_model=SettingsPayload)
def update_settings(
    data: SettingsPayload,
    db: Session = Depends(get_db),
    current_admin: AdminIdentity = Depends(get_current_admin),
):
    try:
        settings = payload_to_settings(data)
    except ConfigurationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    ensure_database_ready()

    try:
        saved = SqlScheduleStore(db).save_settings(settings)
    except InputError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc

    logger.info('Clinic settings updated by %s', current_admin.email)
    return settings_to_payload(saved)


# ── Dashboard ────────────────────────────────────────────────────────────


@router.get('/dashboard', response_model=DashboardResponse)
def get_dashboard(db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        store = SqlScheduleStore(db)
        buffer_minutes = store.get_settings().booking.buffer_minutes
        return build_dashboard(store.list_bookings(), buffer_minutes, datetime.now().date())
    except ConfigurationError as exc:
        raise settings_invalid(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


def build_dashboard(bookings: list[Booking], buffer_minutes: int, today: date) -> DashboardResponse:
    week_end = today + timedelta(days=UPCOMING_WINDOW_DAYS)
    month_start = today.replace(day=1)
    next_month = (month_start + timedelta(days=32)).replace(day=1)

    active = [booking for booking in bookings if booking.status != BookingStatus.CANCELLED.value]
    today_bookings = sorted(
        (booking for booking in active if booking.date == today),
        key=lambda booking: booking.start_time,
    )
    week_bookings = [booking for booking in active if today <= booking.date <= week_end]
    upcoming = sorted(
        (booking for booking in active if today < booking.date <= week_end),
        key=lambda booking: (booking.date, booking.start_time),
    )[:UPCOMING_LIMIT]
    month_revenue = sum(
        booking.price_pln
        for booking in bookings
        if month_start <= booking.date < next_month and booking.status in OCCUPYING_STATUSES
    )

    return DashboardResponse(
        stats=DashboardStatsResponse(
            today_bookings=len(today_bookings),
            week_bookings=len(week_bookings),
            month_revenue=month_revenue,
            total_clients=len({booking.email for booking in bookings}),
        ),
        today_appointments=[to_admin_booking(booking, buffer_minutes) for booking in today_bookings],
        upcoming_appointments=[to_admin_booking(booking, buffer_minutes) for booking in upcoming],
    )

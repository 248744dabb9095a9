import logging
import re
from datetime import date, datetime, time

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_backend.core import config
from clinic_backend.core.errors import ConfigurationError, InputError, WeekendUnavailableError
from clinic_backend.models.booking import Booking
from clinic_backend.routes.availability_routes import is_within_booking_horizon
from clinic_backend.routes.dependencies import (
    database_unavailable,
    ensure_database_ready,
    get_db,
    settings_invalid,
    slot_conflict,
)
from clinic_backend.scheduling.pricing import ensure_bookable_on, is_weekend, resolve_price
from clinic_backend.services.schedule_store import BookingDraft, SqlScheduleStore

router = APIRouter(tags=['bookings'])

logger = logging.getLogger(__name__)

MAX_BOOKING_NOTES_LENGTH = 600
EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
PHONE_PATTERN = re.compile(r'^(\+48)?[0-9]{9}$')


class CreateBookingRequest(BaseModel):
    service_id: str
    date: date
    time: time
    first_name: str
    last_name: str
    phone: str
    email: str
    notes: str | None = None

    @field_validator('service_id', 'first_name', 'last_name')
    @classmethod
    def validate_required_text(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('This field is required.')
        return normalized

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        normalized = value.strip().lower()
        if not EMAIL_PATTERN.match(normalized):
            raise ValueError('Invalid email address.')
        return normalized

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, value: str) -> str:
        normalized = re.sub(r'[\s-]', '', value)
        if not PHONE_PATTERN.match(normalized):
            raise ValueError('Invalid phone number.')
        return normalized

    @field_validator('time')
    @classmethod
    def truncate_time(cls, value: time) -> time:
        return value.replace(second=0, microsecond=0)

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > MAX_BOOKING_NOTES_LENGTH:
            raise ValueError(f'Notes must be {MAX_BOOKING_NOTES_LENGTH} characters or fewer.')

        return normalized


class BookingResponse(BaseModel):
    id: int
    service_id: str
    service_name: str
    duration_minutes: int
    price_pln: int
    date: date
    start_time: time
    first_name: str
    last_name: str
    phone: str
    email: str
    notes: str | None = None
    status: str

    class Config:
        from_attributes = True


def place_booking(data: CreateBookingRequest, db: Session, enforce_horizon: bool = True) -> Booking:
    """
    Price and store a booking for an active service.

    Shared by the public form and the admin panel. The price is always
    resolved here from the stored service; callers never supply it.
    """
    try:
        store = SqlScheduleStore(db)
        settings = store.get_settings()
        now = datetime.now()

        service = settings.find_service(data.service_id)
        if service is None:
            logger.error(
                'Service %s not found; available: %s',
                data.service_id,
                [(item.id, item.is_active) for item in settings.services],
            )
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='Selected service does not exist or is inactive.',
            )

        if enforce_horizon and not is_within_booking_horizon(data.date, now.date()):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f'Appointments can only be booked within the next {config.BOOKING_HORIZON_DAYS} days.',
            )

        try:
            ensure_bookable_on(service, data.date)
        except WeekendUnavailableError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='This service is not available on weekends.',
            ) from exc

        price = resolve_price(service, data.date)
        logger.info(
            'Price calculated server-side: service=%s date=%s weekend=%s price=%s',
            service.id,
            data.date,
            is_weekend(data.date),
            price,
        )

        if price < config.MIN_PRICE:
            logger.error('Price %s for service %s is below the minimum %s', price, service.id, config.MIN_PRICE)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail='Price calculation error. Please contact the clinic.',
            )

        check, booking = store.create_booking(
            BookingDraft(
                service=service,
                price_pln=price,
                date=data.date,
                start_time=data.time,
                first_name=data.first_name,
                last_name=data.last_name,
                phone=data.phone,
                email=data.email,
                notes=data.notes,
            ),
            now=now,
        )
        if not check.ok:
            logger.warning('Slot %s %s rejected: %s', data.date, data.time, check.reason.value)
            raise slot_conflict(check)

        logger.info('Booking %s created for %s %s (%s)', booking.id, data.date, data.time, service.id)
        return booking
    except InputError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except ConfigurationError as exc:
        raise settings_invalid(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.post('', response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(data: CreateBookingRequest, db: Session = Depends(get_db)):
    ensure_database_ready()
    return place_booking(data, db)

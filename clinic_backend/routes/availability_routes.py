from datetime import date, datetime, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_backend.core import config
from clinic_backend.core.errors import ConfigurationError, InputError
from clinic_backend.routes.dependencies import (
    database_unavailable,
    ensure_database_ready,
    get_db,
    settings_invalid,
)
from clinic_backend.scheduling.pricing import is_weekend
from clinic_backend.scheduling.slots import enumerate_slots
from clinic_backend.services.schedule_store import SqlScheduleStore

router = APIRouter(tags=['availability'])

DEFAULT_DURATION_MINUTES = 60


class OpeningHoursResponse(BaseModel):
    open: str
    close: str
    closed: bool


class AvailabilityResponse(BaseModel):
    date: date
    service_id: str | None = None
    duration_minutes: int
    is_closed: bool
    is_blocked: bool
    service_available: bool
    opening_hours: OpeningHoursResponse
    available_slots: list[str]


class ServiceOptionResponse(BaseModel):
    id: str
    name: str
    duration_minutes: int
    price_weekday: int
    price_weekend: int | None = None
    available_on_weekends: bool


def is_within_booking_horizon(target_date: date, today: date) -> bool:
    return target_date <= today + timedelta(days=config.BOOKING_HORIZON_DAYS)


@router.get('/services', response_model=list[ServiceOptionResponse])
def list_services(db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        settings = SqlScheduleStore(db).get_settings()
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc
    except ConfigurationError as exc:
        raise settings_invalid(exc) from exc

    return [
        ServiceOptionResponse(
            id=service.id,
            name=service.name,
            duration_minutes=service.duration_minutes,
            price_weekday=service.price_weekday,
            price_weekend=service.price_weekend,
            available_on_weekends=service.available_on_weekends,
        )
        for service in settings.services
        if service.is_active
    ]


@router.get('', response_model=AvailabilityResponse)
def get_availability(
    target_date: date = Query(..., alias='date'),
    service_id: str | None = Query(default=None),
    duration: int | None = Query(default=None),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        store = SqlScheduleStore(db)
        settings = store.get_settings()

        service = None
        if service_id is not None:
            service = settings.find_service(service_id.strip())
            if service is None:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail='Selected service does not exist or is inactive.',
                )
            duration_minutes = service.duration_minutes
        else:
            duration_minutes = duration if duration is not None else DEFAULT_DURATION_MINUTES

        blocks = store.get_blocks(target_date)
        hours = settings.template.hours_for(target_date)
        now = datetime.now()

        # Weekend eligibility is a booking-flow rule; the enumerator only reports free times.
        service_available = not (service and is_weekend(target_date) and not service.available_on_weekends)

        available_slots = []
        if service_available and is_within_booking_horizon(target_date, now.date()):
            available_slots = enumerate_slots(
                target_date,
                duration_minutes,
                settings.template,
                blocks,
                store.get_bookings(target_date),
                settings.booking.buffer_minutes,
                step_minutes=settings.booking.slot_step_minutes,
                now=now,
            )

        return AvailabilityResponse(
            date=target_date,
            service_id=service.id if service else None,
            duration_minutes=duration_minutes,
            is_closed=hours.closed,
            is_blocked=any(block.full_day for block in blocks),
            service_available=service_available,
            opening_hours=OpeningHoursResponse(**hours.to_mapping()),
            available_slots=[slot.strftime('%H:%M') for slot in available_slots],
        )
    except InputError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except ConfigurationError as exc:
        raise settings_invalid(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc

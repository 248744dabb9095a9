import os
from datetime import date, time, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from clinic_backend.database import Base  # noqa: E402
from clinic_backend.models.blocked_slot import BlockedSlot  # noqa: E402
from clinic_backend.models.booking import Booking  # noqa: E402
from clinic_backend.models.clinic_setting import ClinicSetting  # noqa: E402

TABLES = [Booking.__table__, BlockedSlot.__table__, ClinicSetting.__table__]


def next_weekday(weekday: int, after: date | None = None) -> date:
    """First date at least two days after ``after`` falling on ``weekday`` (0 = Monday)."""
    current = (after or date.today()) + timedelta(days=2)
    while current.weekday() != weekday:
        current += timedelta(days=1)
    return current


def _make_booking(**overrides) -> Booking:
    fields = {
        'service_id': 'visit_60',
        'service_name': 'Wizyta standardowa',
        'duration_minutes': 60,
        'price_pln': 200,
        'date': next_weekday(1),
        'start_time': time(14, 0),
        'first_name': 'Jan',
        'last_name': 'Kowalski',
        'phone': '600700800',
        'email': 'jan@example.com',
        'status': 'confirmed',
    }
    fields.update(overrides)
    return Booking(**fields)


@pytest.fixture
def db_session():
    engine = create_engine('sqlite:///:memory:')
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine, tables=TABLES)

    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine, tables=TABLES)


@pytest.fixture
def booking_factory():
    return _make_booking


@pytest.fixture
def upcoming_tuesday() -> date:
    return next_weekday(1)


@pytest.fixture
def upcoming_saturday() -> date:
    return next_weekday(5)


@pytest.fixture
def upcoming_monday() -> date:
    return next_weekday(0)

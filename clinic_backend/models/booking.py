"""Booking model definitions."""

from datetime import datetime

from sqlalchemy import Column, Date, DateTime, Index, Integer, String, Time, text

from clinic_backend.database import Base

ACTIVE_STATUS_CLAUSE = "status IN ('confirmed', 'completed')"


class Booking(Base):
    """Represents a client appointment."""
    __tablename__ = "bookings"
    __table_args__ = (
        # Storage-level backstop: two occupying bookings can never share a start.
        Index(
            "uq_bookings_active_start",
            "date",
            "start_time",
            unique=True,
            sqlite_where=text(ACTIVE_STATUS_CLAUSE),
            postgresql_where=text(ACTIVE_STATUS_CLAUSE),
        ),
        Index("idx_bookings_date_status", "date", "status"),
    )

    id = Column(Integer, primary_key=True)
    service_id = Column(String, nullable=False)
    service_name = Column(String, nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    price_pln = Column(Integer, nullable=False)
    date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    phone = Column(String, nullable=False)
    email = Column(String, nullable=False, index=True)
    notes = Column(String)
    status = Column(String, nullable=False, default="confirmed")
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

"""Blocked slot model definitions."""

from datetime import datetime

from sqlalchemy import Boolean, Column, Date, DateTime, Integer, String, Time

from clinic_backend.database import Base


class BlockedSlot(Base):
    """A full day or a time range the clinic is unavailable."""
    __tablename__ = "blocked_slots"

    id = Column(Integer, primary_key=True)
    date = Column(Date, nullable=False, index=True)
    time_start = Column(Time)
    time_end = Column(Time)
    is_full_day = Column(Boolean, nullable=False, default=False)
    reason = Column(String)
    created_at = Column(DateTime, default=datetime.now)

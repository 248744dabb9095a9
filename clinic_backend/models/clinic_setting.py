"""Clinic settings model definitions."""

from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, Integer, String

from clinic_backend.database import Base

CLINIC_SETTINGS_ID = "clinic"


class ClinicSetting(Base):
    """Single-row store for opening hours, services and the booking buffer."""
    __tablename__ = "clinic_settings"

    id = Column(String, primary_key=True, default=CLINIC_SETTINGS_ID)
    opening_hours = Column(JSON, nullable=False)
    services = Column(JSON, nullable=False)
    buffer_minutes = Column(Integer, nullable=False)
    slot_step_minutes = Column(Integer, nullable=False)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

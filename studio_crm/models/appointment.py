"""Appointment model definitions."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String

from studio_crm.database import Base


STATUS_NEW = 'Nueva reserva creada'
STATUS_CONFIRMED = 'Cita confirmada'
STATUS_PAID = 'Cita pagada'
STATUS_CANCELLED = 'Cita cancelada'


class Appointment(Base):
    """Represents a booked service with a specialist."""
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True)
    client_name = Column(String)
    phone = Column(String)
    country_code = Column(String)
    service = Column(String)
    specialist = Column(String, index=True)
    appointment_at = Column(DateTime, index=True)
    duration_minutes = Column(Integer)
    status = Column(String, default=STATUS_NEW)
    price = Column(Float, default=0)
    is_paid = Column(Boolean, default=False)
    bg_color = Column(String)
    location = Column(String)
    notes = Column(String)
    group_id = Column(String)  # shared by appointments booked together
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now)

"""Booking request model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from studio_crm.database import Base


class BookingRequest(Base):
    """Tracks the confirmation round-trip of a new booking."""
    __tablename__ = "booking_requests"

    id = Column(Integer, primary_key=True)
    appointment_id = Column(Integer, ForeignKey("appointments.id"))
    client_phone = Column(String)
    status = Column(String, default='PENDING')
    created_at = Column(DateTime, default=datetime.now)

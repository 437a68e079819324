"""Specialist model definitions."""

from sqlalchemy import JSON, Column, Date, Float, ForeignKey, Integer, String

from studio_crm.database import Base


class Specialist(Base):
    """Represents a staff member who takes appointments."""
    __tablename__ = "specialists"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, index=True)
    commission_base = Column(Float)
    commission_exceptions = Column(JSON)  # {service name: percent}
    weekly_schedule = Column(JSON)  # {"monday": {"open": true, ...}, ...}


class SpecialistOverride(Base):
    """A single-date exception to a specialist's weekly schedule."""
    __tablename__ = "specialist_overrides"

    id = Column(Integer, primary_key=True)
    specialist_id = Column(Integer, ForeignKey("specialists.id"))
    date = Column(Date)
    kind = Column(String)  # available/unavailable

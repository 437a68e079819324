"""Client model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String

from studio_crm.database import Base


class Client(Base):
    """Represents a salon client."""
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, index=True)
    phone = Column(String, index=True)
    phone_number = Column(String)  # "+<country code><phone>"
    country_code = Column(String)
    client_type = Column(String)
    status = Column(String)
    created_from = Column(String)
    created_at = Column(DateTime, default=datetime.now)

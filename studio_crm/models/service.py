"""Service catalog model definitions."""

from sqlalchemy import Column, Float, Integer, String

from studio_crm.database import Base


class Service(Base):
    __tablename__ = "services"

    id = Column(Integer, primary_key=True)
    name = Column(String, index=True)
    price = Column(Float)
    duration_minutes = Column(Integer)

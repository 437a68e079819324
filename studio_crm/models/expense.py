"""Expense model definitions."""

from datetime import datetime

from sqlalchemy import Column, Date, DateTime, Float, Integer, String

from studio_crm.database import Base


class Expense(Base):
    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True)
    concept = Column(String)
    notes = Column(String)
    date = Column(Date, index=True)
    specialist = Column(String)
    payment_method = Column(String)
    amount = Column(Float)
    created_at = Column(DateTime, default=datetime.now)

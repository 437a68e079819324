from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from studio_crm.models.expense import Expense
from studio_crm.routes.dependencies import database_unavailable, ensure_database_ready, get_db

router = APIRouter(tags=['expenses'])

DEFAULT_PAYMENT_METHOD = 'Efectivo'
MAX_EXPENSE_NOTES_LENGTH = 600


class CreateExpenseRequest(BaseModel):
    concept: str
    amount: float
    date: date
    notes: str | None = None
    specialist: str | None = None
    payment_method: str = DEFAULT_PAYMENT_METHOD

    @field_validator('concept')
    @classmethod
    def validate_concept(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Concept is required.')
        return normalized

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, value: float) -> float:
        if value <= 0:
            raise ValueError('Amount must be greater than zero.')
        return value

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > MAX_EXPENSE_NOTES_LENGTH:
            raise ValueError(f'Notes must be {MAX_EXPENSE_NOTES_LENGTH} characters or fewer.')

        return normalized

    @field_validator('payment_method')
    @classmethod
    def validate_payment_method(cls, value: str) -> str:
        return value.strip() or DEFAULT_PAYMENT_METHOD


class ExpenseResponse(BaseModel):
    id: int
    concept: str
    amount: float
    date: date
    notes: str | None = None
    specialist: str | None = None
    payment_method: str | None = None

    class Config:
        from_attributes = True


@router.get('', response_model=list[ExpenseResponse])
def list_expenses(
    start: date | None = Query(default=None),
    end: date | None = Query(default=None),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        query = db.query(Expense)
        if start is not None:
            query = query.filter(Expense.date >= start)
        if end is not None:
            query = query.filter(Expense.date <= end)
        return query.order_by(Expense.date.desc(), Expense.id.desc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post('', response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED)
def create_expense(data: CreateExpenseRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        expense = Expense(
            concept=data.concept,
            amount=data.amount,
            date=data.date,
            notes=data.notes,
            specialist=data.specialist,
            payment_method=data.payment_method,
        )
        db.add(expense)
        db.commit()
        db.refresh(expense)
        return expense
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.delete('/{expense_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_expense(expense_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        expense = db.query(Expense).filter(Expense.id == expense_id).first()
        if not expense:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Expense not found.',
            )

        db.delete(expense)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

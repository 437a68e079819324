from datetime import date, datetime, time, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from studio_crm.core import config
from studio_crm.models.appointment import STATUS_CONFIRMED, STATUS_NEW, STATUS_PAID, Appointment
from studio_crm.models.expense import Expense
from studio_crm.models.specialist import Specialist
from studio_crm.routes.dependencies import database_unavailable, ensure_database_ready, get_db

router = APIRouter(tags=['reports'])

SPECIALIST_REPORT_STATUSES = (STATUS_PAID, STATUS_CONFIRMED, STATUS_NEW)


class CommissionLineResponse(BaseModel):
    appointment_id: int
    client_name: str | None = None
    service: str | None = None
    subtotal: float
    percent: float
    commission: float


class SpecialistPaymentResponse(BaseModel):
    specialist: str
    total_sales: float
    total_to_pay: float
    details: list[CommissionLineResponse]


class SpecialistAppointmentResponse(BaseModel):
    id: int
    client_name: str | None = None
    service: str | None = None
    appointment_at: datetime
    status: str | None = None
    price: float
    commission: float


class SpecialistReportResponse(BaseModel):
    specialist: str
    start: date
    end: date
    total_period: float
    today: float
    total_appointments: int
    confirmed: int
    appointments: list[SpecialistAppointmentResponse]


class SummaryReportResponse(BaseModel):
    start: date
    end: date
    paid_appointments: int
    total_sales: float
    total_commissions: float
    total_expenses: float
    net: float


def commission_percent(specialist: Specialist | None, service: str | None) -> float:
    """Per-service exception, then the specialist's base, then the default."""
    if specialist is not None:
        exceptions = specialist.commission_exceptions or {}
        if service and service in exceptions and exceptions[service] is not None:
            return float(exceptions[service])
        if specialist.commission_base is not None:
            return float(specialist.commission_base)
    return config.DEFAULT_COMMISSION_PERCENT


def commission_for(appointment: Appointment, specialist: Specialist | None) -> tuple[float, float]:
    percent = commission_percent(specialist, appointment.service)
    return percent, (appointment.price or 0) * percent / 100


def validate_date_range(start: date, end: date) -> tuple[datetime, datetime]:
    if end < start:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='The end date must not be before the start date.',
        )
    return datetime.combine(start, time.min), datetime.combine(end + timedelta(days=1), time.min)


def specialists_by_name(db: Session) -> dict[str, Specialist]:
    return {specialist.name: specialist for specialist in db.query(Specialist).all()}


@router.get('/daily-payments', response_model=list[SpecialistPaymentResponse])
def daily_payments_report(
    day: date = Query(...),
    specialist: str | None = Query(default=None),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        range_start = datetime.combine(day, time.min)
        query = db.query(Appointment).filter(
            Appointment.status == STATUS_PAID,
            Appointment.appointment_at >= range_start,
            Appointment.appointment_at < range_start + timedelta(days=1),
        )
        if specialist:
            query = query.filter(Appointment.specialist == specialist)
        appointments = query.order_by(Appointment.appointment_at.asc()).all()
        specialists = specialists_by_name(db)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    details_by_specialist: dict[str, list[CommissionLineResponse]] = {}
    for appointment in appointments:
        percent, commission = commission_for(appointment, specialists.get(appointment.specialist))
        details_by_specialist.setdefault(appointment.specialist or '', []).append(
            CommissionLineResponse(
                appointment_id=appointment.id,
                client_name=appointment.client_name,
                service=appointment.service,
                subtotal=appointment.price or 0,
                percent=percent,
                commission=commission,
            )
        )

    return [
        SpecialistPaymentResponse(
            specialist=name,
            total_sales=sum(line.subtotal for line in details),
            total_to_pay=sum(line.commission for line in details),
            details=details,
        )
        for name, details in sorted(details_by_specialist.items())
    ]


@router.get('/specialist', response_model=SpecialistReportResponse)
def specialist_report(
    specialist: str = Query(...),
    start: date = Query(...),
    end: date = Query(...),
    db: Session = Depends(get_db),
):
    range_start, range_end = validate_date_range(start, end)
    ensure_database_ready()

    try:
        appointments = db.query(Appointment).filter(
            Appointment.specialist == specialist,
            Appointment.status.in_(SPECIALIST_REPORT_STATUSES),
            Appointment.appointment_at >= range_start,
            Appointment.appointment_at < range_end,
        ).order_by(Appointment.appointment_at.desc()).all()
        specialist_record = db.query(Specialist).filter(Specialist.name == specialist).first()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    today = date.today()
    total_period = 0.0
    total_today = 0.0
    confirmed = 0
    rows: list[SpecialistAppointmentResponse] = []

    for appointment in appointments:
        commission = 0.0
        if appointment.status == STATUS_PAID:
            _, commission = commission_for(appointment, specialist_record)
            total_period += commission
            if appointment.appointment_at.date() == today:
                total_today += commission
        if appointment.status == STATUS_CONFIRMED:
            confirmed += 1

        rows.append(SpecialistAppointmentResponse(
            id=appointment.id,
            client_name=appointment.client_name,
            service=appointment.service,
            appointment_at=appointment.appointment_at,
            status=appointment.status,
            price=appointment.price or 0,
            commission=commission,
        ))

    return SpecialistReportResponse(
        specialist=specialist,
        start=start,
        end=end,
        total_period=total_period,
        today=total_today,
        total_appointments=len(rows),
        confirmed=confirmed,
        appointments=rows,
    )


@router.get('/summary', response_model=SummaryReportResponse)
def summary_report(
    start: date = Query(...),
    end: date = Query(...),
    db: Session = Depends(get_db),
):
    range_start, range_end = validate_date_range(start, end)
    ensure_database_ready()

    try:
        paid = db.query(Appointment).filter(
            Appointment.status == STATUS_PAID,
            Appointment.appointment_at >= range_start,
            Appointment.appointment_at < range_end,
        ).all()
        specialists = specialists_by_name(db)
        total_expenses = db.query(func.coalesce(func.sum(Expense.amount), 0)).filter(
            Expense.date >= start,
            Expense.date <= end,
        ).scalar()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    total_sales = sum(appointment.price or 0 for appointment in paid)
    total_commissions = sum(
        commission_for(appointment, specialists.get(appointment.specialist))[1]
        for appointment in paid
    )

    return SummaryReportResponse(
        start=start,
        end=end,
        paid_appointments=len(paid),
        total_sales=total_sales,
        total_commissions=total_commissions,
        total_expenses=float(total_expenses or 0),
        net=total_sales - total_commissions - float(total_expenses or 0),
    )

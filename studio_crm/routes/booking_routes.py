import logging
from datetime import datetime, time, timedelta

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from studio_crm.models.appointment import (
    STATUS_CANCELLED,
    STATUS_CONFIRMED,
    STATUS_NEW,
    STATUS_PAID,
    Appointment,
)
from studio_crm.models.booking_request import BookingRequest
from studio_crm.models.client import Client
from studio_crm.models.specialist import Specialist
from studio_crm.notifications import n8n
from studio_crm.routes.dependencies import database_unavailable, ensure_database_ready, get_db
from studio_crm.scheduling.availability import is_specialist_available
from studio_crm.scheduling.time_grid import appointment_end, coerce_duration_minutes

router = APIRouter(tags=['bookings'])

logger = logging.getLogger(__name__)

BOOKING_REQUEST_PENDING = 'PENDING'
CONFLICT_WARNING = 'The specialist already has a booking at this time.'
UNAVAILABLE_WARNING = 'The specialist is not scheduled to work on this day.'
APPOINTMENT_NOT_FOUND_DETAIL = 'Appointment not found.'


def wall_clock(value: datetime) -> datetime:
    """Agenda times are stored as displayed; any offset is dropped, not converted."""
    return value.replace(tzinfo=None)


def non_negative_price(value: float | None) -> float | None:
    if value is not None and value < 0:
        raise ValueError('Price cannot be negative.')
    return value


class CreateBookingRequest(BaseModel):
    client_name: str
    phone: str
    country_code: str | None = None
    appointment_at: datetime
    service: str
    specialist: str
    price: float = 0
    duration_minutes: int | None = None
    location: str | None = None
    notes: str | None = None
    is_paid: bool = False
    bg_color: str | None = None
    group_id: str | None = None
    time_label: str | None = None

    @field_validator('client_name', 'service', 'specialist')
    @classmethod
    def validate_required_text(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('This field is required.')
        return normalized

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, value: str) -> str:
        normalized = n8n.digits_only(value)
        if not normalized:
            raise ValueError('Phone is required.')
        return normalized

    @field_validator('price')
    @classmethod
    def validate_price(cls, value: float) -> float:
        return non_negative_price(value)

    @field_validator('appointment_at')
    @classmethod
    def validate_appointment_at(cls, value: datetime) -> datetime:
        return wall_clock(value)


class CreateBookingResponse(BaseModel):
    created: bool
    status: str
    message: str
    whatsapp_status: str
    appointment_id: int
    warnings: list[str]


class AppointmentActionRequest(BaseModel):
    appointment_id: int


class ConfirmAppointmentRequest(AppointmentActionRequest):
    status: str = STATUS_CONFIRMED


class AppointmentUpdates(BaseModel):
    client_name: str | None = None
    service: str | None = None
    specialist: str | None = None
    appointment_at: datetime | None = None
    duration_minutes: int | None = None
    status: str | None = None
    price: float | None = None
    location: str | None = None
    notes: str | None = None
    bg_color: str | None = None

    @field_validator('client_name', 'service', 'specialist', 'appointment_at', 'status')
    @classmethod
    def validate_not_null(cls, value):
        if value is None:
            raise ValueError('This field cannot be cleared.')
        return value

    @field_validator('appointment_at')
    @classmethod
    def validate_appointment_at(cls, value: datetime) -> datetime:
        return wall_clock(value)

    @field_validator('price')
    @classmethod
    def validate_price(cls, value: float | None) -> float | None:
        return non_negative_price(value)

    @field_validator('duration_minutes')
    @classmethod
    def validate_duration(cls, value: int | None) -> int | None:
        if value is not None and value <= 0:
            raise ValueError('Duration must be greater than zero.')
        return value


class NotifyUpdateRequest(AppointmentActionRequest):
    updates: AppointmentUpdates


class AppointmentStatusResponse(BaseModel):
    success: bool
    message: str
    appointment_id: int
    status: str | None = None


class UnpayResponse(BaseModel):
    success: bool
    message: str
    updated_count: int


class AppointmentResponse(BaseModel):
    id: int
    client_name: str | None = None
    phone: str | None = None
    service: str | None = None
    specialist: str | None = None
    appointment_at: datetime
    duration_minutes: int
    status: str | None = None
    price: float | None = None
    is_paid: bool
    location: str | None = None


class NotifyUpdateResponse(BaseModel):
    success: bool
    whatsapp_status: str
    data: AppointmentResponse


def find_or_create_client(db: Session, name: str, phone: str, country_code: str | None) -> Client | None:
    client = db.query(Client).filter(
        or_(Client.phone == phone, Client.phone_number == phone, Client.phone_number == f'+{phone}')
    ).first()
    if client is not None:
        return client

    client = Client(
        name=name,
        phone=phone,
        phone_number=n8n.international_phone(phone, country_code),
        country_code=country_code,
        client_type='Contacto',
        status='Activo',
        created_from='CRM_BOOKING',
    )
    try:
        db.add(client)
        db.commit()
        db.refresh(client)
    except SQLAlchemyError:
        db.rollback()
        logger.warning('Client insertion failed for %s; continuing with the booking.', name, exc_info=True)
        return None

    return client


def find_conflicting_appointments(
    db: Session,
    specialist: str,
    start: datetime,
    end: datetime,
    exclude_id: int | None = None,
) -> list[Appointment]:
    day_start = datetime.combine(start.date(), time.min)
    candidates = db.query(Appointment).filter(
        Appointment.specialist == specialist,
        Appointment.status != STATUS_CANCELLED,
        Appointment.appointment_at >= day_start,
        Appointment.appointment_at < end,
    ).all()

    return [
        other for other in candidates
        if other.id != exclude_id
        and other.appointment_at < end
        and start < appointment_end(other.appointment_at, other.duration_minutes)
    ]


def booking_warnings(db: Session, specialist: str, start: datetime, end: datetime) -> list[str]:
    warnings: list[str] = []
    if find_conflicting_appointments(db, specialist, start, end):
        warnings.append(CONFLICT_WARNING)

    known_specialist = db.query(Specialist.id).filter(Specialist.name == specialist).first()
    if known_specialist is not None and not is_specialist_available(db, specialist, start.date()):
        warnings.append(UNAVAILABLE_WARNING)

    return warnings


def get_appointment_or_404(db: Session, appointment_id: int) -> Appointment:
    appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
    if appointment is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=APPOINTMENT_NOT_FOUND_DETAIL,
        )
    return appointment


def to_appointment_response(appointment: Appointment) -> AppointmentResponse:
    return AppointmentResponse(
        id=appointment.id,
        client_name=appointment.client_name,
        phone=appointment.phone,
        service=appointment.service,
        specialist=appointment.specialist,
        appointment_at=appointment.appointment_at,
        duration_minutes=coerce_duration_minutes(appointment.duration_minutes),
        status=appointment.status,
        price=appointment.price,
        is_paid=bool(appointment.is_paid),
        location=appointment.location,
    )


def set_status(db: Session, appointment_id: int, new_status: str, **fields) -> Appointment:
    try:
        appointment = get_appointment_or_404(db, appointment_id)
        appointment.status = new_status
        for name, value in fields.items():
            setattr(appointment, name, value)
        appointment.updated_at = datetime.now()
        db.commit()
        db.refresh(appointment)
        return appointment
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.post('/create', response_model=CreateBookingResponse)
def create_booking(data: CreateBookingRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        start_time = data.appointment_at.replace(second=0, microsecond=0)
        duration = coerce_duration_minutes(data.duration_minutes)
        end_time = start_time + timedelta(minutes=duration)

        find_or_create_client(db, data.client_name, data.phone, data.country_code)
        warnings = booking_warnings(db, data.specialist, start_time, end_time)

        appointment = Appointment(
            client_name=data.client_name,
            phone=data.phone,
            country_code=data.country_code,
            service=data.service,
            specialist=data.specialist,
            appointment_at=start_time,
            duration_minutes=duration,
            status=STATUS_NEW,
            price=data.price,
            is_paid=data.is_paid,
            bg_color=data.bg_color,
            location=data.location,
            notes=data.notes,
            group_id=data.group_id,
        )
        db.add(appointment)
        db.commit()
        db.refresh(appointment)

        db.add(BookingRequest(
            appointment_id=appointment.id,
            client_phone=data.phone,
            status=BOOKING_REQUEST_PENDING,
        ))
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Appointment insertion failed.')
        raise database_unavailable() from exc

    whatsapp_status = n8n.send_booking_confirmation(appointment, data.time_label)

    return CreateBookingResponse(
        created=True,
        status=BOOKING_REQUEST_PENDING,
        message='Booking created and client verified.',
        whatsapp_status=whatsapp_status,
        appointment_id=appointment.id,
        warnings=warnings,
    )


@router.post('/cancel', response_model=AppointmentStatusResponse)
def cancel_booking(data: AppointmentActionRequest, db: Session = Depends(get_db)):
    ensure_database_ready()
    appointment = set_status(db, data.appointment_id, STATUS_CANCELLED)

    return AppointmentStatusResponse(
        success=True,
        message='Appointment cancelled.',
        appointment_id=appointment.id,
        status=appointment.status,
    )


@router.post('/confirm', response_model=AppointmentStatusResponse)
def confirm_booking(data: ConfirmAppointmentRequest, db: Session = Depends(get_db)):
    ensure_database_ready()
    appointment = set_status(db, data.appointment_id, data.status.strip() or STATUS_CONFIRMED)

    return AppointmentStatusResponse(
        success=True,
        message='Appointment status updated.',
        appointment_id=appointment.id,
        status=appointment.status,
    )


@router.post('/mark-as-paid', response_model=AppointmentStatusResponse)
def mark_booking_as_paid(data: AppointmentActionRequest, db: Session = Depends(get_db)):
    ensure_database_ready()
    appointment = set_status(db, data.appointment_id, STATUS_PAID, is_paid=True)

    return AppointmentStatusResponse(
        success=True,
        message='Appointment marked as paid.',
        appointment_id=appointment.id,
        status=appointment.status,
    )


@router.post('/unpay', response_model=UnpayResponse)
def unpay_booking(data: AppointmentActionRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        appointment = get_appointment_or_404(db, data.appointment_id)

        if appointment.group_id:
            affected = db.query(Appointment).filter(Appointment.group_id == appointment.group_id).all()
        else:
            affected = [appointment]

        now = datetime.now()
        for item in affected:
            item.status = STATUS_NEW
            item.is_paid = False
            item.updated_at = now
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    if appointment.group_id:
        message = 'Payment voided and appointment group reset.'
    else:
        message = 'Payment voided and appointment reset.'

    return UnpayResponse(success=True, message=message, updated_count=len(affected))


@router.post('/notify-update', response_model=NotifyUpdateResponse)
def notify_booking_update(data: NotifyUpdateRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        appointment = get_appointment_or_404(db, data.appointment_id)
        for name, value in data.updates.model_dump(exclude_unset=True).items():
            setattr(appointment, name, value)
        appointment.updated_at = datetime.now()
        db.commit()
        db.refresh(appointment)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    whatsapp_status = n8n.send_appointment_update(appointment)
    if whatsapp_status != n8n.STATUS_SENT:
        logger.warning('Appointment %s updated but n8n notification reported %s.', appointment.id, whatsapp_status)

    return NotifyUpdateResponse(
        success=True,
        whatsapp_status=whatsapp_status,
        data=to_appointment_response(appointment),
    )

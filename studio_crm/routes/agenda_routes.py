from datetime import date, datetime, time, timedelta

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from studio_crm.models.appointment import Appointment
from studio_crm.models.specialist import Specialist
from studio_crm.routes.dependencies import database_unavailable, ensure_database_ready, get_db
from studio_crm.scheduling.availability import is_specialist_available
from studio_crm.scheduling.overlap_layout import (
    UNASSIGNED_SPECIALIST,
    CalendarEvent,
    layout_by_specialist_day,
)
from studio_crm.scheduling.time_grid import appointment_end, duration_minutes, minutes_from_grid_start

router = APIRouter(tags=['agenda'])

DEFAULT_BG_COLOR = '#6366f1'


class AgendaItemResponse(BaseModel):
    id: int
    client_name: str | None = None
    service: str | None = None
    specialist: str
    status: str | None = None
    bg_color: str
    start_time: datetime
    end_time: datetime
    duration_minutes: int
    top_minutes: int
    column_index: int
    column_count: int
    left_percent: float
    width_percent: float


class SpecialistColumnResponse(BaseModel):
    specialist: str
    appointments: list[AgendaItemResponse]


class DayAgendaResponse(BaseModel):
    day: date
    specialists: list[SpecialistColumnResponse]
    rejected_ids: list[int]


class WeekAgendaResponse(BaseModel):
    week_start: date
    days: list[DayAgendaResponse]


class MonthDayCountResponse(BaseModel):
    day: date
    appointment_count: int


class AvailabilityResponse(BaseModel):
    specialist: str
    day: date
    available: bool


def to_calendar_event(appointment: Appointment) -> CalendarEvent:
    return CalendarEvent(
        id=appointment.id,
        start=appointment.appointment_at,
        end=appointment_end(appointment.appointment_at, appointment.duration_minutes),
        specialist=appointment.specialist or UNASSIGNED_SPECIALIST,
    )


def build_day_agenda(day: date, appointments: list[Appointment], specialists: list[str]) -> DayAgendaResponse:
    day_appointments = [
        appointment for appointment in appointments
        if appointment.appointment_at is not None and appointment.appointment_at.date() == day
    ]
    events = {appointment.id: to_calendar_event(appointment) for appointment in day_appointments}
    layout = layout_by_specialist_day(events.values())

    columns: dict[str, list[AgendaItemResponse]] = {name: [] for name in specialists}
    for appointment in sorted(day_appointments, key=lambda item: (item.appointment_at, item.id)):
        slot = layout.slots.get(appointment.id)
        if slot is None:
            continue

        event = events[appointment.id]
        width = 100 / slot.column_count
        columns.setdefault(event.specialist, []).append(
            AgendaItemResponse(
                id=appointment.id,
                client_name=appointment.client_name,
                service=appointment.service,
                specialist=event.specialist,
                status=appointment.status,
                bg_color=appointment.bg_color or DEFAULT_BG_COLOR,
                start_time=event.start,
                end_time=event.end,
                duration_minutes=duration_minutes(event.start, event.end),
                top_minutes=minutes_from_grid_start(event.start),
                column_index=slot.column_index,
                column_count=slot.column_count,
                left_percent=slot.column_index * width,
                width_percent=width,
            )
        )

    return DayAgendaResponse(
        day=day,
        specialists=[
            SpecialistColumnResponse(specialist=name, appointments=items)
            for name, items in columns.items()
        ],
        rejected_ids=sorted(layout.rejected),
    )


def fetch_appointments(
    db: Session,
    range_start: datetime,
    range_end: datetime,
    specialist: str | None = None,
    status_filter: str | None = None,
) -> list[Appointment]:
    query = db.query(Appointment).filter(
        Appointment.appointment_at >= range_start,
        Appointment.appointment_at < range_end,
    )
    if specialist:
        query = query.filter(Appointment.specialist == specialist)
    if status_filter:
        query = query.filter(Appointment.status == status_filter)

    return query.order_by(Appointment.appointment_at.asc(), Appointment.id.asc()).all()


def list_specialist_names(db: Session, specialist: str | None = None) -> list[str]:
    if specialist:
        return [specialist]
    return [name for (name,) in db.query(Specialist.name).order_by(Specialist.name.asc()).all()]


def week_start_for(day: date) -> date:
    return day - timedelta(days=day.weekday())


@router.get('/day', response_model=DayAgendaResponse)
def get_day_agenda(
    day: date = Query(...),
    specialist: str | None = Query(default=None),
    status_filter: str | None = Query(default=None, alias='status'),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        range_start = datetime.combine(day, time.min)
        appointments = fetch_appointments(db, range_start, range_start + timedelta(days=1), specialist, status_filter)
        return build_day_agenda(day, appointments, list_specialist_names(db, specialist))
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/week', response_model=WeekAgendaResponse)
def get_week_agenda(
    day: date = Query(...),
    specialist: str | None = Query(default=None),
    status_filter: str | None = Query(default=None, alias='status'),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        week_start = week_start_for(day)
        range_start = datetime.combine(week_start, time.min)
        appointments = fetch_appointments(db, range_start, range_start + timedelta(days=7), specialist, status_filter)
        specialists = list_specialist_names(db, specialist)

        return WeekAgendaResponse(
            week_start=week_start,
            days=[
                build_day_agenda(week_start + timedelta(days=offset), appointments, specialists)
                for offset in range(7)
            ],
        )
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/month', response_model=list[MonthDayCountResponse])
def get_month_agenda(
    day: date = Query(...),
    specialist: str | None = Query(default=None),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        month_start = day.replace(day=1)
        next_month = (month_start + timedelta(days=32)).replace(day=1)
        appointments = fetch_appointments(
            db,
            datetime.combine(month_start, time.min),
            datetime.combine(next_month, time.min),
            specialist,
        )

        counts: dict[date, int] = {}
        for appointment in appointments:
            appointment_day = appointment.appointment_at.date()
            counts[appointment_day] = counts.get(appointment_day, 0) + 1

        current_day = month_start
        days: list[MonthDayCountResponse] = []
        while current_day < next_month:
            days.append(MonthDayCountResponse(day=current_day, appointment_count=counts.get(current_day, 0)))
            current_day += timedelta(days=1)

        return days
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/availability', response_model=AvailabilityResponse)
def get_specialist_availability(
    specialist: str = Query(...),
    day: date = Query(...),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return AvailabilityResponse(
            specialist=specialist,
            day=day,
            available=is_specialist_available(db, specialist, day),
        )
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

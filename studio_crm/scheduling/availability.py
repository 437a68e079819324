from datetime import date

from sqlalchemy.orm import Session

from studio_crm.models.specialist import Specialist, SpecialistOverride


OVERRIDE_AVAILABLE = 'available'
WEEKDAY_NAMES = ('monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday')


def is_open_on(weekly_schedule: dict | None, day: date) -> bool:
    if not weekly_schedule:
        return False

    day_schedule = weekly_schedule.get(WEEKDAY_NAMES[day.weekday()]) or {}
    return bool(day_schedule.get('open'))


def is_specialist_available(db: Session, specialist_name: str, day: date) -> bool:
    """Date overrides win over the weekly schedule."""
    specialist = db.query(Specialist).filter(Specialist.name == specialist_name).first()
    if specialist is None:
        return False

    override = db.query(SpecialistOverride).filter(
        SpecialistOverride.specialist_id == specialist.id,
        SpecialistOverride.date == day,
    ).first()
    if override is not None:
        return override.kind == OVERRIDE_AVAILABLE

    return is_open_on(specialist.weekly_schedule, day)

from datetime import date

from studio_crm.models.specialist import Specialist, SpecialistOverride
from studio_crm.scheduling.availability import is_open_on, is_specialist_available

MONDAY = date(2026, 1, 5)
TUESDAY = date(2026, 1, 6)


def test_is_open_on_reads_weekday_entry() -> None:
    schedule = {'monday': {'open': True}, 'tuesday': {'open': False}}

    assert is_open_on(schedule, MONDAY) is True
    assert is_open_on(schedule, TUESDAY) is False


def test_is_open_on_without_schedule_is_closed() -> None:
    assert is_open_on(None, MONDAY) is False
    assert is_open_on({}, MONDAY) is False
    assert is_open_on({'friday': {'open': True}}, MONDAY) is False


def test_unknown_specialist_is_not_available(db_session) -> None:
    assert is_specialist_available(db_session, 'Nobody', MONDAY) is False


def test_weekly_schedule_applies_without_override(db_session) -> None:
    db_session.add(Specialist(name='Ana', weekly_schedule={'monday': {'open': True}}))
    db_session.commit()

    assert is_specialist_available(db_session, 'Ana', MONDAY) is True
    assert is_specialist_available(db_session, 'Ana', TUESDAY) is False


def test_override_wins_over_weekly_schedule(db_session) -> None:
    specialist = Specialist(name='Ana', weekly_schedule={'monday': {'open': True}})
    db_session.add(specialist)
    db_session.commit()
    db_session.refresh(specialist)

    db_session.add_all([
        SpecialistOverride(specialist_id=specialist.id, date=MONDAY, kind='unavailable'),
        SpecialistOverride(specialist_id=specialist.id, date=TUESDAY, kind='available'),
    ])
    db_session.commit()

    assert is_specialist_available(db_session, 'Ana', MONDAY) is False
    assert is_specialist_available(db_session, 'Ana', TUESDAY) is True

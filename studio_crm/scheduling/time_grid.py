"""Wall-clock positioning on the agenda grid.

Timestamps are used as displayed: only their local hour and minute fields
matter, no timezone conversion happens here.
"""

from datetime import datetime, timedelta

from studio_crm.core import config


def minutes_from_grid_start(
    timestamp: datetime,
    start_hour: int = config.AGENDA_START_HOUR,
    start_minute: int = 0,
) -> int:
    """Minutes between the grid start and ``timestamp`` on the same day.

    Negative before the grid start and past ``grid_total_minutes`` after the
    grid end; callers decide whether to clip or hide those.
    """
    return (timestamp.hour * 60 + timestamp.minute) - (start_hour * 60 + start_minute)


def grid_total_minutes(
    start_hour: int = config.AGENDA_START_HOUR,
    end_hour: int = config.AGENDA_END_HOUR,
) -> int:
    return (end_hour - start_hour) * 60


def coerce_duration_minutes(duration: int | str | None) -> int:
    try:
        minutes = int(float(duration)) if duration not in (None, '') else 0
    except (TypeError, ValueError):
        minutes = 0

    if minutes <= 0:
        return config.DEFAULT_APPOINTMENT_DURATION_MINUTES
    return minutes


def appointment_end(start: datetime, duration: int | str | None = None) -> datetime:
    return start + timedelta(minutes=coerce_duration_minutes(duration))


def duration_minutes(start: datetime, end: datetime) -> int:
    return int((end - start).total_seconds() // 60)

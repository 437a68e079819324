"""Side-by-side layout for overlapping appointments.

Each specialist/day group is laid out independently. Within a group,
appointments are swept in start order while keeping the set of appointments
still running; every appointment takes the lowest column no running
appointment holds. When the running set empties, the cluster closes and all
of its members receive the same column count: the highest column used in the
cluster plus one, which is the cluster's peak concurrency.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from itertools import groupby
from typing import Hashable, Iterable, NamedTuple

logger = logging.getLogger(__name__)

UNASSIGNED_SPECIALIST = 'Unassigned'


class InvalidInterval(ValueError):
    """Raised for an appointment whose end is not after its start."""

    def __init__(self, event_id: Hashable, start: datetime, end: datetime):
        super().__init__(f'Appointment {event_id} ends at {end} which is not after its start {start}.')
        self.event_id = event_id
        self.start = start
        self.end = end


@dataclass(frozen=True)
class CalendarEvent:
    id: Hashable
    start: datetime
    end: datetime
    specialist: str | None = None


class ColumnSlot(NamedTuple):
    column_index: int
    column_count: int


@dataclass
class OverlapLayout:
    slots: dict[Hashable, ColumnSlot] = field(default_factory=dict)
    rejected: list[Hashable] = field(default_factory=list)

    def merge(self, other: 'OverlapLayout') -> None:
        self.slots.update(other.slots)
        self.rejected.extend(other.rejected)


def validate_interval(event: CalendarEvent) -> None:
    if event.end <= event.start:
        raise InvalidInterval(event.id, event.start, event.end)


def group_key(event: CalendarEvent) -> tuple[str, date]:
    return (event.specialist or UNASSIGNED_SPECIALIST, event.start.date())


def compute_overlap_layout(events: Iterable[CalendarEvent]) -> OverlapLayout:
    """Assign ``(column_index, column_count)`` to one specialist/day group.

    Appointments whose interval is inverted or empty are left out of the
    layout and reported in ``OverlapLayout.rejected``. Ties on start time keep
    the input order, so the same input always yields the same columns.
    """
    layout = OverlapLayout()
    valid: list[CalendarEvent] = []

    for event in events:
        try:
            validate_interval(event)
        except InvalidInterval as exc:
            logger.warning('Skipping appointment in agenda layout: %s', exc)
            layout.rejected.append(event.id)
            continue
        valid.append(event)

    columns: dict[Hashable, int] = {}
    active: list[CalendarEvent] = []
    cluster: list[CalendarEvent] = []

    def close_cluster() -> None:
        if not cluster:
            return
        column_count = max(columns[member.id] for member in cluster) + 1
        for member in cluster:
            layout.slots[member.id] = ColumnSlot(columns[member.id], column_count)
        cluster.clear()

    for event in sorted(valid, key=lambda item: item.start):
        active = [running for running in active if running.end > event.start]

        if not active:
            close_cluster()

        used_columns = {columns[running.id] for running in active}
        column = 0
        while column in used_columns:
            column += 1

        columns[event.id] = column
        active.append(event)
        cluster.append(event)

    close_cluster()
    return layout


def layout_by_specialist_day(events: Iterable[CalendarEvent]) -> OverlapLayout:
    """Lay out a mixed list, one column space per specialist and day."""
    indexed = sorted(enumerate(events), key=lambda pair: (group_key(pair[1]), pair[0]))
    layout = OverlapLayout()

    for _, group in groupby(indexed, key=lambda pair: group_key(pair[1])):
        layout.merge(compute_overlap_layout(event for _, event in group))

    return layout

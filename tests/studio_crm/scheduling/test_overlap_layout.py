import random
from datetime import datetime, timedelta

import pytest

from studio_crm.scheduling.overlap_layout import (
    CalendarEvent,
    ColumnSlot,
    InvalidInterval,
    compute_overlap_layout,
    layout_by_specialist_day,
    validate_interval,
)

DAY = datetime(2026, 1, 5)


def at(hour: int, minute: int = 0, day: datetime = DAY) -> datetime:
    return day.replace(hour=hour, minute=minute)


def event(event_id, start: datetime, end: datetime, specialist: str = 'Ana') -> CalendarEvent:
    return CalendarEvent(id=event_id, start=start, end=end, specialist=specialist)


def overlaps(a: CalendarEvent, b: CalendarEvent) -> bool:
    return a.start < b.end and b.start < a.end


def clusters_of(events: list[CalendarEvent]) -> list[list[CalendarEvent]]:
    remaining = list(events)
    clusters = []
    while remaining:
        cluster = [remaining.pop()]
        grew = True
        while grew:
            grew = False
            for candidate in list(remaining):
                if any(overlaps(candidate, member) for member in cluster):
                    cluster.append(candidate)
                    remaining.remove(candidate)
                    grew = True
        clusters.append(cluster)
    return clusters


def peak_concurrency(events: list[CalendarEvent]) -> int:
    return max(sum(1 for other in events if other.start <= probe.start < other.end) for probe in events)


def test_empty_input_returns_empty_layout() -> None:
    layout = compute_overlap_layout([])

    assert layout.slots == {}
    assert layout.rejected == []


def test_single_appointment_takes_full_width() -> None:
    layout = compute_overlap_layout([event('a', at(9), at(10))])

    assert layout.slots == {'a': ColumnSlot(0, 1)}


def test_back_to_back_appointments_do_not_overlap() -> None:
    layout = compute_overlap_layout([
        event('a', at(9), at(10)),
        event('b', at(10), at(11)),
        event('c', at(11, 30), at(12)),
    ])

    assert layout.slots == {
        'a': ColumnSlot(0, 1),
        'b': ColumnSlot(0, 1),
        'c': ColumnSlot(0, 1),
    }


def test_three_way_overlap_uses_three_columns() -> None:
    layout = compute_overlap_layout([
        event('a', at(9), at(10)),
        event('b', at(9, 15), at(9, 45)),
        event('c', at(9, 30), at(10, 30)),
    ])

    assert {slot.column_index for slot in layout.slots.values()} == {0, 1, 2}
    assert {slot.column_count for slot in layout.slots.values()} == {3}


def test_chained_overlap_forms_one_cluster_with_peak_of_two() -> None:
    layout = compute_overlap_layout([
        event('first', at(9), at(10)),
        event('second', at(9, 30), at(10, 30)),
        event('third', at(10, 15), at(11)),
    ])

    assert {slot.column_count for slot in layout.slots.values()} == {2}
    assert layout.slots['first'].column_index != layout.slots['second'].column_index
    assert layout.slots['second'].column_index != layout.slots['third'].column_index
    assert layout.slots['third'] == ColumnSlot(0, 2)


def test_identical_intervals_get_distinct_columns() -> None:
    layout = compute_overlap_layout([
        event('a', at(9), at(10)),
        event('b', at(9), at(10)),
    ])

    assert layout.slots == {'a': ColumnSlot(0, 2), 'b': ColumnSlot(1, 2)}


def test_separate_clusters_keep_their_own_column_count() -> None:
    layout = compute_overlap_layout([
        event('late', at(12), at(13)),
        event('a', at(9), at(10)),
        event('b', at(9, 30), at(10, 30)),
    ])

    assert layout.slots['a'].column_count == 2
    assert layout.slots['b'].column_count == 2
    assert layout.slots['late'] == ColumnSlot(0, 1)


def test_inverted_interval_is_rejected_and_others_are_laid_out(caplog: pytest.LogCaptureFixture) -> None:
    layout = compute_overlap_layout([
        event('broken', at(10), at(9)),
        event('a', at(9), at(10)),
        event('b', at(9, 30), at(10)),
    ])

    assert layout.rejected == ['broken']
    assert 'broken' not in layout.slots
    assert layout.slots == {'a': ColumnSlot(0, 2), 'b': ColumnSlot(1, 2)}
    assert 'Skipping appointment in agenda layout' in caplog.text


def test_zero_length_interval_is_rejected() -> None:
    layout = compute_overlap_layout([event('empty', at(9), at(9))])

    assert layout.slots == {}
    assert layout.rejected == ['empty']


def test_validate_interval_raises_invalid_interval() -> None:
    with pytest.raises(InvalidInterval) as exception_info:
        validate_interval(event(7, at(11), at(10)))

    assert exception_info.value.event_id == 7
    assert isinstance(exception_info.value, ValueError)


def test_equal_starts_keep_input_order() -> None:
    layout = compute_overlap_layout([
        event('z', at(9), at(10)),
        event('a', at(9), at(9, 30)),
    ])

    assert layout.slots['z'].column_index == 0
    assert layout.slots['a'].column_index == 1


def test_layout_by_specialist_day_isolates_specialists_and_days() -> None:
    next_day = DAY + timedelta(days=1)
    layout = layout_by_specialist_day([
        event('ana-1', at(9), at(10), specialist='Ana'),
        event('luz-1', at(9), at(10), specialist='Luz'),
        event('ana-2', at(9, 30), at(10, 30), specialist='Ana'),
        event('ana-next-day', at(9, 15, day=next_day), at(10, day=next_day), specialist='Ana'),
    ])

    assert layout.slots['ana-1'] == ColumnSlot(0, 2)
    assert layout.slots['ana-2'] == ColumnSlot(1, 2)
    assert layout.slots['luz-1'] == ColumnSlot(0, 1)
    assert layout.slots['ana-next-day'] == ColumnSlot(0, 1)


def test_layout_by_specialist_day_groups_missing_specialist_together() -> None:
    layout = layout_by_specialist_day([
        event(1, at(9), at(10), specialist=None),
        event(2, at(9), at(10), specialist=''),
    ])

    assert layout.slots == {1: ColumnSlot(0, 2), 2: ColumnSlot(1, 2)}


def test_random_days_hold_layout_properties() -> None:
    generator = random.Random(20260105)

    for _ in range(200):
        events = []
        for index in range(generator.randint(1, 12)):
            start = at(7) + timedelta(minutes=15 * generator.randint(0, 48))
            events.append(event(index, start, start + timedelta(minutes=15 * generator.randint(1, 8))))

        layout = compute_overlap_layout(events)

        assert layout.rejected == []
        assert set(layout.slots) == {item.id for item in events}

        for a in events:
            for b in events:
                if a.id != b.id and overlaps(a, b):
                    assert layout.slots[a.id].column_index != layout.slots[b.id].column_index

        for cluster in clusters_of(events):
            expected_count = peak_concurrency(cluster)
            assert max(layout.slots[item.id].column_index for item in cluster) + 1 == expected_count
            assert {layout.slots[item.id].column_count for item in cluster} == {expected_count}

        assert compute_overlap_layout(events).slots == layout.slots

import threading
from datetime import date, datetime

import pytest
from sqlalchemy.exc import OperationalError

from reception.models import RecurringTemplates, ReceptionSlots
from reception.services.slots import generator
from reception.services.slots.errors import NotFound, ValidationError
from reception.services.slots.generator import (
    create_day_slots,
    generate_all_active,
    generate_slots,
)


@pytest.fixture
def make_template(db, manager):
    def _make(**fields) -> RecurringTemplates:
        values = dict(
            manager_id=manager.id,
            cadence="nth_weekday_of_month",
            weekday=0,
            week_number=1,
            start_time="09:00",
            end_time="09:30",
            slot_duration_minutes=10,
            months_ahead=1,
            is_active=True,
        )
        values.update(fields)
        template = RecurringTemplates(**values)
        db.add(template)
        db.commit()
        db.refresh(template)
        return template

    return _make


def _slots(db, manager_id):
    return (
        db.query(ReceptionSlots)
        .filter(ReceptionSlots.manager_id == manager_id)
        .order_by(ReceptionSlots.start_time)
        .all()
    )


def test_first_monday_template_creates_three_slots(db, manager, make_template, august_2026):
    template = make_template()

    result = generate_slots(db, template, start=august_2026)

    assert result.created == 3
    assert result.dates == [date(2026, 8, 3)]
    slots = _slots(db, manager.id)
    assert [(s.start_time, s.end_time) for s in slots] == [
        (datetime(2026, 8, 3, 9, 0), datetime(2026, 8, 3, 9, 10)),
        (datetime(2026, 8, 3, 9, 10), datetime(2026, 8, 3, 9, 20)),
        (datetime(2026, 8, 3, 9, 20), datetime(2026, 8, 3, 9, 30)),
    ]
    assert all(s.is_available and not s.is_booked for s in slots)
    assert all(s.template_id == template.id for s in slots)


def test_generation_is_idempotent(db, manager, make_template, august_2026):
    template = make_template(months_ahead=3)

    first = generate_slots(db, template, start=august_2026)
    second = generate_slots(db, template, start=august_2026)

    assert first.created == 9
    assert second.created == 0
    assert second.skipped == 9
    assert len(_slots(db, manager.id)) == 9


def test_generation_keeps_booked_slots(db, manager, make_template, make_slot, august_2026):
    booked = make_slot(
        datetime(2026, 8, 3, 9, 10),
        is_available=False,
        is_booked=True,
        booked_by="Anna",
        booked_email="anna@example.com",
    )
    template = make_template()

    result = generate_slots(db, template, start=august_2026)

    assert result.created == 2
    assert result.skipped == 1
    db.refresh(booked)
    assert booked.is_booked
    assert booked.booked_email == "anna@example.com"


def test_overlapping_windows_are_not_created(db, manager, make_template, make_slot, august_2026):
    # 09:05-09:20 overlaps the 09:00 and 09:10 windows
    make_slot(datetime(2026, 8, 3, 9, 5), minutes=15)
    template = make_template()

    result = generate_slots(db, template, start=august_2026)

    assert result.created == 1
    assert result.conflicts == 2
    starts = [s.start_time for s in _slots(db, manager.id)]
    assert starts == [datetime(2026, 8, 3, 9, 5), datetime(2026, 8, 3, 9, 20)]


def test_inactive_template_is_rejected(db, manager, make_template, august_2026):
    template = make_template(is_active=False)

    with pytest.raises(ValidationError):
        generate_slots(db, template, start=august_2026)

    assert _slots(db, manager.id) == []


def test_custom_template_is_rejected(db, manager, make_template, august_2026):
    template = make_template(cadence="custom")

    with pytest.raises(ValidationError):
        generate_slots(db, template, start=august_2026)

    assert _slots(db, manager.id) == []


def test_malformed_template_writes_nothing(db, manager, make_template, august_2026):
    template = make_template(start_time="12:00", end_time="09:00")

    with pytest.raises(ValidationError):
        generate_slots(db, template, start=august_2026)

    assert _slots(db, manager.id) == []


def test_failed_generation_rolls_back(db, manager, make_template, august_2026, monkeypatch):
    template = make_template(months_ahead=2)
    real_insert = generator._dialect_insert
    calls = {"n": 0}

    def failing_insert(session):
        insert = real_insert(session)

        def _insert(table):
            calls["n"] += 1
            if calls["n"] > 4:
                raise OperationalError("INSERT", {}, Exception("disk I/O error"))
            return insert(table)

        return _insert

    monkeypatch.setattr(generator, "_dialect_insert", failing_insert)

    with pytest.raises(OperationalError):
        generate_slots(db, template, start=august_2026)

    assert _slots(db, manager.id) == []


def test_create_day_slots(db, manager):
    result = create_day_slots(db, manager.id, date(2026, 8, 4), "14:00", "14:45", slot_duration=15)

    assert result.created == 3
    assert result.template_id is None
    assert [s.start_time.strftime("%H:%M") for s in _slots(db, manager.id)] == [
        "14:00",
        "14:15",
        "14:30",
    ]


def test_create_day_slots_duration_too_long(db, manager):
    with pytest.raises(ValidationError):
        create_day_slots(db, manager.id, date(2026, 8, 4), "14:00", "14:10", slot_duration=15)


def test_create_day_slots_unknown_manager(db):
    with pytest.raises(NotFound):
        create_day_slots(db, 999, date(2026, 8, 4), "14:00", "15:00")


def test_generate_all_active_skips_broken_templates(db, manager, make_template, august_2026):
    make_template()
    make_template(cadence="custom")
    make_template(weekday=2, start_time="12:00", end_time="09:00")
    make_template(weekday=1, is_active=False)

    results = generate_all_active(db, start=august_2026)

    assert len(results) == 1
    assert results[0].created == 3
    assert len(_slots(db, manager.id)) == 3


def test_concurrent_overlapping_windows_never_overlap(session_factory, manager):
    manager_id = manager.id
    day = date(2026, 8, 4)
    requests = [("09:00", "09:20", 10), ("09:05", "09:35", 15)]
    barrier = threading.Barrier(len(requests))
    errors = []

    def create(start_time, end_time, duration):
        session = session_factory()
        try:
            barrier.wait()
            create_day_slots(session, manager_id, day, start_time, end_time, slot_duration=duration)
        except Exception as e:
            errors.append(e)
        finally:
            session.close()

    threads = [threading.Thread(target=create, args=request) for request in requests]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    session = session_factory()
    try:
        slots = _slots(session, manager_id)
    finally:
        session.close()

    # whichever request ran first wins its windows; the other keeps only non-overlapping ones
    assert len(slots) in (2, 3)
    for earlier, later in zip(slots, slots[1:]):
        assert earlier.end_time <= later.start_time

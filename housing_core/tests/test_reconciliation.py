import pytest

from housing_core.allocation.errors import NotFoundError
from housing_core.allocation.reconciliation import recalculate_capacity, recalculate_room_occupancy
from housing_core.models import RoomAssignment
from .factories import (
    make_event, make_building, make_room, make_group, add_participant, make_individual,
)

@pytest.fixture
def drifted_event(session):
    event = make_event(
        session,
        capacity_total=100,
        on_campus_capacity=50, on_campus_remaining=3,
        off_campus_capacity=20, off_campus_remaining=20,
        double_room_capacity=10, double_room_remaining=0,
    )
    make_group(session, event, housing_type="on_campus", total_participants=10)
    make_group(session, event, group_name="Mixed", housing_type="on_campus", total_participants=8,
               on_campus_youth=5, off_campus_youth=3)
    cancelled = make_group(session, event, group_name="Gone", housing_type="on_campus", total_participants=30)
    cancelled.status = "cancelled"
    make_individual(session, event, "Ada", "female", 30, room_type="double")
    make_individual(session, event, "Bea", "female", 30, housing_type="off_campus", room_type="double")
    session.flush()
    return event

def test_recalculate_capacity(session, drifted_event):
    report = recalculate_capacity(session, drifted_event.id)

    assert report.group_participants == 18
    assert report.individual_participants == 2
    assert report.total == 20
    # 10 coarse + 5 bucketed + 1 individual
    assert report.housing_breakdown["on_campus"] == 16
    assert report.housing_breakdown["off_campus"] == 4
    assert report.room_breakdown["double"] == 1
    assert report.before["on_campus"]["remaining"] == 3
    assert report.after["on_campus"]["remaining"] == 34
    assert report.after["off_campus"]["remaining"] == 16
    assert report.after["double_room"]["remaining"] == 9
    assert report.after["event"]["remaining"] == 80
    assert report.settings_updated

def test_unlimited_dimensions_stay_unlimited(session, drifted_event):
    report = recalculate_capacity(session, drifted_event.id)

    assert report.after["day_pass"] == {"capacity": None, "remaining": None}

def test_recalculation_is_idempotent(session, drifted_event):
    first = recalculate_capacity(session, drifted_event.id).to_dict()
    second = recalculate_capacity(session, drifted_event.id).to_dict()

    assert first["after"] == second["after"]
    assert second["before"] == second["after"]
    assert first["actual_registrations"] == second["actual_registrations"]

def test_remaining_never_negative(session):
    event = make_event(session, capacity_total=5, on_campus_capacity=5, on_campus_remaining=5)
    make_group(session, event, housing_type="on_campus", total_participants=9)

    report = recalculate_capacity(session, event.id)

    assert report.after["on_campus"]["remaining"] == 0
    assert report.after["event"]["remaining"] == 0

def test_event_without_settings(session):
    event = make_event(session, capacity_total=None)
    make_group(session, event, total_participants=4)

    report = recalculate_capacity(session, event.id)

    assert report.after["event"]["remaining"] is None
    assert not report.settings_updated

def test_missing_event(session):
    with pytest.raises(NotFoundError):
        recalculate_capacity(session, 404)
    with pytest.raises(NotFoundError):
        recalculate_room_occupancy(session, 404)

def test_recalculate_room_occupancy(session):
    event = make_event(session)
    hall = make_building(session, event, name="Hall A", gender="male")
    drifted = make_room(session, hall, "101", 4, current_occupancy=3)
    correct = make_room(session, hall, "102", 2)
    group = make_group(session, event)
    participant = add_participant(session, group, "Abe", "male", 15)
    session.add(RoomAssignment(room_id=drifted.id, participant_id=participant.id, bed_number=1))
    session.flush()

    fixed = recalculate_room_occupancy(session, event.id)

    assert fixed == [{"room_id": drifted.id, "room": "Hall A 101", "old_occupancy": 3, "new_occupancy": 1}]
    assert drifted.current_occupancy == 1
    assert correct.current_occupancy == 0
    assert recalculate_room_occupancy(session, event.id) == []

import pytest

from housing_core.allocation.classifier import Category, classify_room
from housing_core.allocation.engine import (
    Strategy, AutoAssignRequest, AllocationResult, Occupant, RoomSlot,
    auto_assign_event, auto_assign_group, assign_category, pick_room, order_for_strategy, sort_rooms,
    _group_rooms,
)
from housing_core.allocation.errors import ValidationError, NotFoundError, ConflictError
from housing_core.models import Room, RoomAssignment
from .factories import (
    make_event, make_building, make_room, make_group, add_participant, make_individual,
)

def _occupant(name, affiliation="St. Mary", group_id=1):
    return Occupant(kind="participant", id=hash(name) % 1000, name=name, gender="male",
                    age=15, participant_type=None, affiliation=affiliation, group_id=group_id)

def _assignments(session, room):
    return session.query(RoomAssignment).filter(RoomAssignment.room_id == room.id).all()

class TestRoomPicking:
    def test_sort_rooms_by_free_beds(self):
        slots = [RoomSlot(1, "A 1", 2, 0, order=0), RoomSlot(2, "A 2", 4, 1, order=1),
                 RoomSlot(3, "A 3", 3, 0, order=2)]
        assert [s.room_id for s in sort_rooms(slots)] == [2, 3, 1]

    def test_fill_rooms_takes_first_room_with_space(self):
        slots = [RoomSlot(1, "A 1", 3, 2, order=0), RoomSlot(2, "A 2", 3, 0, order=1)]
        assert pick_room(Strategy.FILL_ROOMS, slots, _occupant("Tom")).room_id == 1

    def test_balance_takes_least_occupied_room(self):
        slots = [RoomSlot(1, "A 1", 3, 2, order=0), RoomSlot(2, "A 2", 3, 1, order=1)]
        assert pick_room(Strategy.BALANCE, slots, _occupant("Tom")).room_id == 2

    def test_parish_together_sticks_to_current_room(self):
        slots = [RoomSlot(1, "A 1", 4, 0, order=0), RoomSlot(2, "A 2", 4, 1, order=1)]
        current = slots[1]
        assert pick_room(Strategy.PARISH_TOGETHER, slots, _occupant("Tom"), current) is current

    def test_full_rooms_are_never_picked(self):
        slots = [RoomSlot(1, "A 1", 2, 2, order=0)]
        assert pick_room(Strategy.FILL_ROOMS, slots, _occupant("Tom")) is None

    def test_reserved_room_only_accepts_its_group(self):
        slot = RoomSlot(1, "A 1", 2, 0, allocated_to_group_id=7)
        assert slot.accepts(_occupant("Tom", group_id=7))
        assert not slot.accepts(_occupant("Tim", group_id=8))

    def test_lowest_free_bed(self):
        slot = RoomSlot(1, "A 1", 3, 2, taken_beds={1, 3})
        assert slot.lowest_free_bed() == 2

    def test_parish_together_keeps_affiliations_contiguous(self):
        people = [_occupant("A1", "A"), _occupant("B1", "B"), _occupant("A2", "A")]
        ordered = order_for_strategy(Strategy.PARISH_TOGETHER, people)
        assert [o.name for o in ordered] == ["A1", "A2", "B1"]
        assert order_for_strategy(Strategy.FILL_ROOMS, people) == people

class TestRequestValidation:
    def test_unknown_strategy(self):
        with pytest.raises(ValidationError):
            AutoAssignRequest(strategy="random")

    def test_unknown_filters(self):
        with pytest.raises(ValidationError):
            AutoAssignRequest(gender_filter="other")
        with pytest.raises(ValidationError):
            AutoAssignRequest(type_filter="clergy")

    def test_strategy_is_parsed(self):
        assert AutoAssignRequest(strategy="balance").strategy is Strategy.BALANCE

def test_fill_rooms_skips_when_beds_run_out(session):
    event = make_event(session)
    hall = make_building(session, event)
    small = make_room(session, hall, "101", 2, gender="male")
    smaller = make_room(session, hall, "102", 1, gender="male")
    group = make_group(session, event)
    for name in ["Adam", "Ben", "Carl", "Dan"]:
        add_participant(session, group, name, "male", 15)

    result = auto_assign_event(session, event.id, AutoAssignRequest(strategy="fill_rooms"))

    assert result.assigned == 3
    assert result.skipped == 1
    assert result.errors == []
    session.refresh(small)
    session.refresh(smaller)
    assert small.current_occupancy == 2
    assert smaller.current_occupancy == 1

def test_clergy_room_is_never_used(session):
    event = make_event(session)
    hall = make_building(session, event)
    chapel_wing = make_room(session, hall, "C1", 2, gender="male", housing_type="clergy")
    group = make_group(session, event)
    add_participant(session, group, "Paul", "male", 40, "chaperone")
    add_participant(session, group, "Mark", "male", 45, "chaperone")

    result = auto_assign_event(session, event.id, AutoAssignRequest())

    assert result.assigned == 0
    assert result.skipped == 2
    assert result.by_category["male_chaperone"]["rooms"] == 0
    session.refresh(chapel_wing)
    assert chapel_wing.current_occupancy == 0

def test_no_double_booking(session):
    event = make_event(session)
    hall = make_building(session, event, gender="female")
    rooms = [make_room(session, hall, str(n), capacity, housing_type="general")
             for n, capacity in [(201, 3), (202, 2), (203, 1)]]
    group = make_group(session, event)
    for n in range(8):
        add_participant(session, group, f"Ann{n}", "female", 30, "chaperone")

    first = auto_assign_event(session, event.id, AutoAssignRequest(strategy="balance"))
    second = auto_assign_event(session, event.id, AutoAssignRequest(strategy="balance"))

    assert first.assigned == 6
    assert first.skipped == 2
    assert second.assigned == 0
    for room in rooms:
        session.refresh(room)
        beds = [a.bed_number for a in _assignments(session, room)]
        assert len(beds) == len(set(beds))
        assert len(beds) <= room.capacity
        assert room.current_occupancy == len(beds)

def test_categories_never_share_rooms(session):
    event = make_event(session)
    hall = make_building(session, event)
    boys_room = make_room(session, hall, "B1", 1, gender="male", housing_type="youth_u18")
    women_room = make_room(session, hall, "W1", 4, gender="female", housing_type="chaperone_18plus")
    group = make_group(session, event)
    add_participant(session, group, "Leo", "male", 14)
    add_participant(session, group, "Max", "male", 15)
    add_participant(session, group, "Eve", "female", 35, "chaperone")

    result = auto_assign_event(session, event.id, AutoAssignRequest(strategy="fill_rooms"))

    assert result.assigned == 2
    assert result.skipped == 1
    for planned in result.assignments:
        room = session.get(Room, planned.room_id)
        occupant_category = planned.occupant.category
        assert classify_room(room.gender, room.housing_type) == occupant_category
    assert len(_assignments(session, women_room)) == 1
    assert len(_assignments(session, boys_room)) == 1

def test_clergy_are_excluded_regardless_of_filters(session):
    event = make_event(session)
    hall = make_building(session, event)
    make_room(session, hall, "101", 4, gender="male", housing_type="general")
    group = make_group(session, event)
    priest = add_participant(session, group, "Joseph", "male", 60, "priest")

    for request in [AutoAssignRequest(), AutoAssignRequest(gender_filter="male", type_filter="chaperone")]:
        result = auto_assign_event(session, event.id, request)
        assert result.clergy_excluded == 1
        assert result.assigned == 0

    assert session.query(RoomAssignment).filter(RoomAssignment.participant_id == priest.id).count() == 0

def test_no_eligible_rooms_is_skip_not_error(session):
    event = make_event(session)
    group = make_group(session, event)
    for name in ["Ida", "Joy", "Kim"]:
        add_participant(session, group, name, "female", 16)

    result = auto_assign_event(session, event.id, AutoAssignRequest())

    assert result.assigned == 0
    assert result.skipped == 3
    assert result.errors == []

def test_unclassifiable_people_are_reported_separately(session):
    event = make_event(session)
    hall = make_building(session, event)
    make_room(session, hall, "101", 4, gender="male")
    group = make_group(session, event)
    add_participant(session, group, "Sam", None, 15)
    add_participant(session, group, "Tom", "male", 15)

    result = auto_assign_event(session, event.id, AutoAssignRequest())

    assert result.assigned == 1
    assert result.skipped == 0
    assert [u["name"] for u in result.unclassifiable] == ["Sam Doe"]

def test_individuals_are_placed_in_unreserved_rooms(session):
    event = make_event(session)
    hall = make_building(session, event)
    reserved = make_room(session, hall, "101", 2, gender="female", housing_type="general")
    open_room = make_room(session, hall, "102", 2, gender="female", housing_type="general")
    group = make_group(session, event)
    reserved.allocated_to_group_id = group.id
    individual = make_individual(session, event, "Rita", "female", 29)
    session.flush()

    result = auto_assign_event(session, event.id, AutoAssignRequest())

    assert result.assigned == 1
    assignment = session.query(RoomAssignment).filter(
        RoomAssignment.individual_registration_id == individual.id
    ).one()
    assert assignment.room_id == open_room.id

def test_off_campus_and_cancelled_are_not_housed(session):
    event = make_event(session)
    hall = make_building(session, event)
    make_room(session, hall, "101", 4, gender="male")
    commuters = make_group(session, event, group_name="Commuters", housing_type="off_campus")
    add_participant(session, commuters, "Ray", "male", 15)
    cancelled = make_group(session, event, group_name="Dropped")
    cancelled.status = "cancelled"
    add_participant(session, cancelled, "Ron", "male", 15)
    make_individual(session, event, "Roy", "male", 15, housing_type="day_pass")

    result = auto_assign_event(session, event.id, AutoAssignRequest())

    assert result.assigned == 0
    assert result.skipped == 0

def test_gender_filter_classifies_unrestricted_rooms(session):
    event = make_event(session)
    hall = make_building(session, event)
    open_room = make_room(session, hall, "101", 2, gender=None, housing_type="youth_u18")
    group = make_group(session, event)
    add_participant(session, group, "Gus", "male", 13)
    add_participant(session, group, "Gia", "female", 13)

    unfiltered = auto_assign_event(session, event.id, AutoAssignRequest())
    assert unfiltered.assigned == 0

    boys_only = auto_assign_event(session, event.id, AutoAssignRequest(gender_filter="male"))
    assert boys_only.assigned == 1
    assert boys_only.assignments[0].room_id == open_room.id
    assert boys_only.assignments[0].occupant.name == "Gus Doe"

def test_building_filter(session):
    event = make_event(session)
    north = make_building(session, event, name="North", gender="male")
    south = make_building(session, event, name="South", gender="male")
    make_room(session, north, "1", 2)
    south_room = make_room(session, south, "1", 2)
    group = make_group(session, event)
    add_participant(session, group, "Hal", "male", 15)

    result = auto_assign_event(session, event.id, AutoAssignRequest(building_ids=[south.id]))

    assert result.assignments[0].room_id == south_room.id

def test_reassignment_releases_existing_beds(session):
    event = make_event(session)
    hall = make_building(session, event, gender="male")
    room = make_room(session, hall, "101", 1)
    group = make_group(session, event)
    add_participant(session, group, "Ian", "male", 15)

    auto_assign_event(session, event.id, AutoAssignRequest())
    again = auto_assign_event(session, event.id, AutoAssignRequest(only_unassigned=False))

    assert again.released == 1
    assert again.assigned == 1
    session.refresh(room)
    assert room.current_occupancy == 1
    assert [a.bed_number for a in _assignments(session, room)] == [1]

def test_missing_event(session):
    with pytest.raises(NotFoundError):
        auto_assign_event(session, 999, AutoAssignRequest())

class TestGroupAutoAssign:
    def test_uses_only_reserved_rooms(self, session):
        event = make_event(session)
        hall = make_building(session, event, gender="male")
        reserved = make_room(session, hall, "101", 2)
        make_room(session, hall, "102", 4)
        group = make_group(session, event)
        for name in ["Abe", "Bob", "Cid"]:
            add_participant(session, group, name, "male", 15)
        reserved.allocated_to_group_id = group.id
        session.flush()

        result = auto_assign_group(session, group.id)

        assert result.assigned == 2
        assert result.skipped == 1
        assert {a.room_id for a in result.assignments} == {reserved.id}

    def test_empty_room_pool_is_not_an_error(self, session):
        event = make_event(session)
        group = make_group(session, event)
        add_participant(session, group, "Abe", "male", 15)
        add_participant(session, group, "Amy", "female", 15)

        result = auto_assign_group(session, group.id)

        assert result.assigned == 0
        assert result.skipped == 2
        assert result.errors == []

    def test_category_filter(self, session):
        event = make_event(session)
        hall = make_building(session, event)
        girls = make_room(session, hall, "G1", 2, gender="female")
        boys = make_room(session, hall, "B1", 2, gender="male")
        group = make_group(session, event)
        add_participant(session, group, "Amy", "female", 15)
        add_participant(session, group, "Abe", "male", 15)
        girls.allocated_to_group_id = group.id
        boys.allocated_to_group_id = group.id
        session.flush()

        result = auto_assign_group(session, group.id, category="female_youth")

        assert result.assigned == 1
        assert list(result.by_category) == [Category.FEMALE_YOUTH.value]

    def test_unknown_category(self, session):
        event = make_event(session)
        group = make_group(session, event)
        with pytest.raises(ValidationError):
            auto_assign_group(session, group.id, category="clergy")

    def test_cancelled_group_is_rejected(self, session):
        event = make_event(session)
        group = make_group(session, event)
        group.status = "cancelled"
        session.flush()
        with pytest.raises(ConflictError):
            auto_assign_group(session, group.id)

class TestConcurrentWriters:
    def test_room_filled_behind_the_run_is_passed_over(self, session):
        event = make_event(session)
        hall = make_building(session, event, gender="male")
        first = make_room(session, hall, "101", 1)
        second = make_room(session, hall, "102", 1)
        group = make_group(session, event)
        participant = add_participant(session, group, "Abe", "male", 15)
        slots = _group_rooms(session, [first, second])[Category.MALE_YOUTH]
        occupant = Occupant.from_participant(participant)
        # Another writer takes the last bed of 101 after the run loaded its rooms
        first.current_occupancy = 1
        session.commit()

        result = AllocationResult()
        assign_category(session, Category.MALE_YOUTH, [occupant], slots, Strategy.FILL_ROOMS, result)

        assert result.assigned == 1
        assert result.assignments[0].room_id == second.id
        assert result.errors == []

    def test_bed_collision_is_an_error_not_a_crash(self, session):
        event = make_event(session)
        hall = make_building(session, event, gender="male")
        room = make_room(session, hall, "101", 1)
        group = make_group(session, event)
        abe = add_participant(session, group, "Abe", "male", 15)
        ben = add_participant(session, group, "Ben", "male", 15)
        slots = _group_rooms(session, [room])[Category.MALE_YOUTH]
        occupant = Occupant.from_participant(ben)
        # Bed 1 written by another run without its occupancy increment
        session.add(RoomAssignment(room_id=room.id, participant_id=abe.id, bed_number=1))
        session.commit()

        result = AllocationResult()
        assign_category(session, Category.MALE_YOUTH, [occupant], slots, Strategy.FILL_ROOMS, result)

        assert result.assigned == 0
        assert result.skipped == 1
        assert len(result.errors) == 1
        assert "Hall A 101 bed 1" in result.errors[0]
        session.refresh(room)
        assert room.current_occupancy == 0

    def test_bed_collision_moves_on_to_the_next_bed(self, session):
        event = make_event(session)
        hall = make_building(session, event, gender="male")
        room = make_room(session, hall, "101", 3)
        group = make_group(session, event)
        abe = add_participant(session, group, "Abe", "male", 15)
        ben = add_participant(session, group, "Ben", "male", 15)
        slots = _group_rooms(session, [room])[Category.MALE_YOUTH]
        occupant = Occupant.from_participant(ben)
        session.add(RoomAssignment(room_id=room.id, participant_id=abe.id, bed_number=1))
        session.commit()

        result = AllocationResult()
        assign_category(session, Category.MALE_YOUTH, [occupant], slots, Strategy.FILL_ROOMS, result)

        assert result.assigned == 1
        assert result.skipped == 0
        assert result.assignments[0].bed_number == 2
        assert result.errors == ["Failed to assign Ben Doe to Hall A 101 bed 1"]

    def test_occupant_housed_by_another_run_is_not_placed_twice(self, session):
        event = make_event(session)
        hall = make_building(session, event, gender="male")
        first = make_room(session, hall, "101", 2)
        second = make_room(session, hall, "102", 2)
        elsewhere = make_room(session, hall, "103", 1)
        group = make_group(session, event)
        ben = add_participant(session, group, "Ben", "male", 15)
        slots = _group_rooms(session, [first, second])[Category.MALE_YOUTH]
        occupant = Occupant.from_participant(ben)
        session.add(RoomAssignment(room_id=elsewhere.id, participant_id=ben.id, bed_number=1))
        elsewhere.current_occupancy = 1
        session.commit()

        result = AllocationResult()
        assign_category(session, Category.MALE_YOUTH, [occupant], slots, Strategy.FILL_ROOMS, result)

        assert result.assigned == 0
        assert result.skipped == 1
        assert len(result.errors) == 1
        assert session.query(RoomAssignment).filter(RoomAssignment.participant_id == ben.id).count() == 1

def test_rooms_without_gender_are_counted_in_all_gender_runs(session):
    event = make_event(session)
    hall = make_building(session, event)
    make_room(session, hall, "101", 2)
    make_room(session, hall, "102", 2)
    make_room(session, hall, "C1", 1, housing_type="clergy")
    group = make_group(session, event)
    add_participant(session, group, "Abe", "male", 15)

    result = auto_assign_event(session, event.id, AutoAssignRequest())

    assert result.assigned == 0
    assert result.skipped == 1
    assert result.unclassified_rooms == 2
    assert result.to_dict()["unclassified_rooms"] == 2

    narrowed = auto_assign_event(session, event.id, AutoAssignRequest(gender_filter="male"))
    assert narrowed.assigned == 1
    assert narrowed.unclassified_rooms == 0

"""Room allocation engine.

Places unassigned people into free beds, one category at a time:

1. occupants and rooms are classified (``classifier``); clergy and
   unclassifiable records are reported separately and never attempted;
2. the rooms of a category are sorted by descending free beds;
3. the strategy picks a room for each occupant and the lowest free bed
   number in it is taken;
4. every assignment is committed on its own together with a guarded
   occupancy increment, so a failure only costs that one occupant.

There is no backtracking or global optimisation: an occupant for whom no
room has a free bed at the time it is considered is simply skipped.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Set

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config.allocation import (
    ON_CAMPUS, STATUS_ACTIVE, GENDER_FILTERS, TYPE_FILTERS, UNKNOWN_AFFILIATION,
)
from ..models import (
    Event, Building, Room, RoomAssignment,
    GroupRegistration, IndividualRegistration, Participant,
)
from .classifier import Category, classify_participant, classify_room, is_clergy, is_clergy_room
from .errors import ValidationError, NotFoundError, ConflictError

logger = logging.getLogger(__name__)

PARTICIPANT = "participant"
INDIVIDUAL = "individual"

class Strategy(str, Enum):
    PARISH_TOGETHER = "parish_together"
    FILL_ROOMS = "fill_rooms"
    BALANCE = "balance"

    @classmethod
    def parse(cls, value) -> "Strategy":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValidationError(
                f"Unknown strategy '{value}'. Expected one of {', '.join(s.value for s in cls)}"
            ) from None

def parse_category(value) -> Category:
    if isinstance(value, Category):
        return value
    try:
        return Category(value)
    except ValueError:
        raise ValidationError(
            f"Unknown category '{value}'. Expected one of {', '.join(c.value for c in Category)}"
        ) from None

@dataclass
class AutoAssignRequest:
    """Options of an event-wide auto-assign run."""
    strategy: Strategy = Strategy.PARISH_TOGETHER
    gender_filter: str = "all"
    type_filter: str = "all"
    building_ids: List[int] = field(default_factory=list)
    only_unassigned: bool = True
    assigned_by: Optional[str] = None

    def __post_init__(self):
        self.strategy = Strategy.parse(self.strategy)
        if self.gender_filter not in GENDER_FILTERS:
            raise ValidationError(f"Unknown gender filter '{self.gender_filter}'")
        if self.type_filter not in TYPE_FILTERS:
            raise ValidationError(f"Unknown type filter '{self.type_filter}'")

    @property
    def run_gender(self) -> Optional[str]:
        """Gender given to unrestricted rooms when the run is limited to one gender."""
        return None if self.gender_filter == "all" else self.gender_filter

@dataclass
class Occupant:
    """Snapshot of someone who needs a bed, detached from the session."""
    kind: str
    id: int
    name: str
    gender: Optional[str]
    age: Optional[int]
    participant_type: Optional[str]
    affiliation: str
    group_id: Optional[int] = None

    @classmethod
    def from_participant(cls, participant: Participant) -> "Occupant":
        group = participant.group_registration
        return cls(
            kind=PARTICIPANT,
            id=participant.id,
            name=participant.full_name,
            gender=participant.gender,
            age=participant.age,
            participant_type=participant.participant_type,
            affiliation=(group.parish_name or group.group_name or UNKNOWN_AFFILIATION),
            group_id=group.id,
        )

    @classmethod
    def from_individual(cls, registration: IndividualRegistration) -> "Occupant":
        return cls(
            kind=INDIVIDUAL,
            id=registration.id,
            name=registration.full_name,
            gender=registration.gender,
            age=registration.age,
            participant_type=None,
            affiliation=UNKNOWN_AFFILIATION,
        )

    @property
    def category(self) -> Optional[Category]:
        return classify_participant(self.gender, self.age, self.participant_type)

    @property
    def is_clergy(self) -> bool:
        return is_clergy(self.participant_type)

    def to_dict(self) -> Dict[str, Any]:
        return {'type': self.kind, 'id': self.id, 'name': self.name}

@dataclass
class RoomSlot:
    """In-run view of a room: free beds and the bed numbers already taken."""
    room_id: int
    label: str
    capacity: int
    occupancy: int
    taken_beds: Set[int] = field(default_factory=set)
    allocated_to_group_id: Optional[int] = None
    order: int = 0

    @property
    def available(self) -> int:
        return max(0, self.capacity - self.occupancy)

    def lowest_free_bed(self) -> Optional[int]:
        for bed in range(1, self.capacity + 1):
            if bed not in self.taken_beds:
                return bed
        return None

    @property
    def has_free_bed(self) -> bool:
        return self.available > 0 and self.lowest_free_bed() is not None

    def accepts(self, occupant: Occupant) -> bool:
        """Reserved rooms only take members of the group holding them."""
        if self.allocated_to_group_id is None:
            return True
        return occupant.kind == PARTICIPANT and occupant.group_id == self.allocated_to_group_id

    def occupy(self, bed: int) -> None:
        self.taken_beds.add(bed)
        self.occupancy += 1

@dataclass
class PlannedAssignment:
    room_id: int
    room_label: str
    bed_number: int
    occupant: Occupant

    def to_dict(self) -> Dict[str, Any]:
        return {
            'room_id': self.room_id,
            'room': self.room_label,
            'bed_number': self.bed_number,
            'occupant': self.occupant.to_dict(),
        }

@dataclass
class AllocationResult:
    """
    Outcome of a run.

    ``skipped`` counts people for whom no eligible room had a free bed or
    whose assignment failed to persist (those also get an ``errors`` entry).
    Data problems go to ``unclassifiable`` instead. ``unclassified_rooms``
    counts non-clergy rooms no category could be settled for, typically rooms
    without any gender restriction in an all-gender run.
    """
    assigned: int = 0
    skipped: int = 0
    errors: List[str] = field(default_factory=list)
    unclassifiable: List[Dict[str, Any]] = field(default_factory=list)
    clergy_excluded: int = 0
    unclassified_rooms: int = 0
    released: int = 0
    assignments: List[PlannedAssignment] = field(default_factory=list)
    by_category: Dict[str, Dict[str, int]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'assigned': self.assigned,
            'skipped': self.skipped,
            'errors': list(self.errors),
            'unclassifiable': list(self.unclassifiable),
            'clergy_excluded': self.clergy_excluded,
            'unclassified_rooms': self.unclassified_rooms,
            'released': self.released,
            'by_category': dict(self.by_category),
            'assignments': [a.to_dict() for a in self.assignments],
        }

def sort_rooms(slots: Iterable[RoomSlot]) -> List[RoomSlot]:
    """Most free beds first; ties keep building/floor/room order."""
    return sorted(slots, key=lambda s: (-s.available, s.order))

def pick_room(
    strategy: Strategy,
    slots: List[RoomSlot],
    occupant: Occupant,
    current: Optional[RoomSlot] = None
) -> Optional[RoomSlot]:
    """
    Choose a room for ``occupant`` among ``slots`` (already sorted).

    ``current`` is the room the occupant's affiliation is being placed in
    under ``parish_together``.
    """
    candidates = [s for s in slots if s.accepts(occupant) and s.has_free_bed]
    if not candidates:
        return None

    if strategy is Strategy.BALANCE:
        return min(candidates, key=lambda s: (s.occupancy, s.order))
    if strategy is Strategy.PARISH_TOGETHER and current is not None and current in candidates:
        return current
    return candidates[0]

def order_for_strategy(strategy: Strategy, occupants: List[Occupant]) -> List[Occupant]:
    """Keep each affiliation contiguous for ``parish_together``."""
    if strategy is not Strategy.PARISH_TOGETHER:
        return list(occupants)
    by_affiliation: Dict[str, List[Occupant]] = {}
    for occupant in occupants:
        by_affiliation.setdefault(occupant.affiliation, []).append(occupant)
    return [o for members in by_affiliation.values() for o in members]

def _persist_assignment(
    session: Session,
    slot: RoomSlot,
    occupant: Occupant,
    bed_number: int,
    assigned_by: Optional[str]
) -> bool:
    """
    Write one assignment and its occupancy increment as a single transaction.

    Returns False when the room filled up behind our back (the guarded
    increment matched no row). Raises IntegrityError on a unique-constraint
    collision, after rolling back.
    """
    try:
        updated = session.query(Room).filter(
            Room.id == slot.room_id,
            Room.current_occupancy < Room.capacity
        ).update(
            {Room.current_occupancy: Room.current_occupancy + 1},
            synchronize_session=False
        )
        if not updated:
            session.rollback()
            return False

        session.add(RoomAssignment(
            room_id=slot.room_id,
            participant_id=occupant.id if occupant.kind == PARTICIPANT else None,
            individual_registration_id=occupant.id if occupant.kind == INDIVIDUAL else None,
            group_registration_id=occupant.group_id,
            bed_number=bed_number,
            assigned_by=assigned_by,
        ))
        session.commit()
        return True
    except IntegrityError:
        session.rollback()
        raise

def assign_category(
    session: Session,
    category: Category,
    occupants: List[Occupant],
    slots: List[RoomSlot],
    strategy: Strategy,
    result: AllocationResult,
    assigned_by: Optional[str] = None
) -> None:
    """Place the occupants of one category into that category's rooms."""
    slots = sort_rooms(slots)
    current_room: Dict[str, RoomSlot] = {}
    assigned = skipped = 0

    for occupant in order_for_strategy(strategy, occupants):
        placed = False
        while not placed:
            slot = pick_room(strategy, slots, occupant, current_room.get(occupant.affiliation))
            if slot is None:
                break
            bed = slot.lowest_free_bed()
            try:
                if not _persist_assignment(session, slot, occupant, bed, assigned_by):
                    # Filled by a concurrent writer; try the next room
                    slot.occupancy = slot.capacity
                    continue
            except IntegrityError as e:
                logger.warning(f"Assignment of {occupant.name} to {slot.label} bed {bed} failed: {e}")
                result.errors.append(f"Failed to assign {occupant.name} to {slot.label} bed {bed}")
                if _is_housed(session, occupant):
                    # Housed by another writer since the run started
                    break
                slot.taken_beds.add(bed)
                continue

            slot.occupy(bed)
            current_room[occupant.affiliation] = slot
            result.assignments.append(PlannedAssignment(slot.room_id, slot.label, bed, occupant))
            placed = True

        if placed:
            assigned += 1
        else:
            skipped += 1

    result.assigned += assigned
    result.skipped += skipped
    result.by_category[category.value] = {
        'assigned': assigned,
        'skipped': skipped,
        'rooms': len(slots),
    }

def _load_slots(session: Session, rooms: List[Room]) -> List[RoomSlot]:
    room_ids = [room.id for room in rooms]
    taken: Dict[int, Set[int]] = {room_id: set() for room_id in room_ids}
    if room_ids:
        rows = session.query(RoomAssignment.room_id, RoomAssignment.bed_number).filter(
            RoomAssignment.room_id.in_(room_ids),
            RoomAssignment.bed_number.isnot(None)
        ).all()
        for room_id, bed_number in rows:
            taken[room_id].add(bed_number)

    return [
        RoomSlot(
            room_id=room.id,
            label=room.label,
            capacity=room.capacity,
            occupancy=room.current_occupancy or 0,
            taken_beds=taken[room.id],
            allocated_to_group_id=room.allocated_to_group_id,
            order=index,
        )
        for index, room in enumerate(rooms)
    ]

def _group_rooms(
    session: Session,
    rooms: List[Room],
    default_gender: Optional[str] = None,
    result: Optional[AllocationResult] = None
) -> Dict[Category, List[RoomSlot]]:
    slots = {s.room_id: s for s in _load_slots(session, rooms)}
    grouped: Dict[Category, List[RoomSlot]] = {c: [] for c in Category}
    for room in rooms:
        building_gender = room.building.gender if room.building else None
        category = classify_room(room.gender, room.housing_type, building_gender, default_gender)
        if category is not None:
            grouped[category].append(slots[room.id])
        elif result is not None and not is_clergy_room(room.housing_type):
            result.unclassified_rooms += 1
    return grouped

def _is_housed(session: Session, occupant: Occupant) -> bool:
    column = (
        RoomAssignment.participant_id if occupant.kind == PARTICIPANT
        else RoomAssignment.individual_registration_id
    )
    return session.query(RoomAssignment.id).filter(column == occupant.id).first() is not None

def _assigned_keys(session: Session, occupants: List[Occupant]) -> Set[tuple]:
    participant_ids = [o.id for o in occupants if o.kind == PARTICIPANT]
    individual_ids = [o.id for o in occupants if o.kind == INDIVIDUAL]
    keys = set()
    if participant_ids:
        rows = session.query(RoomAssignment.participant_id).filter(
            RoomAssignment.participant_id.in_(participant_ids)
        ).all()
        keys.update((PARTICIPANT, row[0]) for row in rows)
    if individual_ids:
        rows = session.query(RoomAssignment.individual_registration_id).filter(
            RoomAssignment.individual_registration_id.in_(individual_ids)
        ).all()
        keys.update((INDIVIDUAL, row[0]) for row in rows)
    return keys

def release_assignments(session: Session, occupants: List[Occupant]) -> int:
    """Delete the current assignments of ``occupants`` and free their beds."""
    participant_ids = [o.id for o in occupants if o.kind == PARTICIPANT]
    individual_ids = [o.id for o in occupants if o.kind == INDIVIDUAL]
    assignments = []
    if participant_ids:
        assignments += session.query(RoomAssignment).filter(
            RoomAssignment.participant_id.in_(participant_ids)
        ).all()
    if individual_ids:
        assignments += session.query(RoomAssignment).filter(
            RoomAssignment.individual_registration_id.in_(individual_ids)
        ).all()

    for assignment in assignments:
        free_bed(session, assignment.room_id)
        session.delete(assignment)
    session.flush()
    return len(assignments)

def free_bed(session: Session, room_id: int) -> None:
    """Decrement a room's occupancy, never below zero."""
    session.query(Room).filter(
        Room.id == room_id,
        Room.current_occupancy > 0
    ).update(
        {Room.current_occupancy: Room.current_occupancy - 1},
        synchronize_session=False
    )

def _partition(
    occupants: List[Occupant],
    result: AllocationResult,
    categories: Optional[Set[Category]] = None
) -> Dict[Category, List[Occupant]]:
    """Split occupants by category, recording clergy and unclassifiable ones."""
    by_category: Dict[Category, List[Occupant]] = {c: [] for c in Category}
    for occupant in occupants:
        if occupant.is_clergy:
            result.clergy_excluded += 1
            continue
        category = occupant.category
        if category is None:
            result.unclassifiable.append(occupant.to_dict())
            continue
        if categories is None or category in categories:
            by_category[category].append(occupant)
    return by_category

def _prepare(
    session: Session,
    occupants: List[Occupant],
    only_unassigned: bool,
    result: AllocationResult,
    categories: Optional[Set[Category]] = None
) -> Dict[Category, List[Occupant]]:
    """
    Partition occupants and deal with those already holding a bed.

    They are dropped from the run, or, when reassignment was requested,
    their beds are released first. Runs before the rooms are loaded so the
    freed beds are visible to the run.
    """
    by_category = _partition(occupants, result, categories)
    candidates = [o for members in by_category.values() for o in members]

    assigned_keys = _assigned_keys(session, candidates)
    if only_unassigned:
        for category, members in by_category.items():
            by_category[category] = [o for o in members if (o.kind, o.id) not in assigned_keys]
    elif assigned_keys:
        result.released = release_assignments(
            session, [o for o in candidates if (o.kind, o.id) in assigned_keys]
        )
        session.commit()
    return by_category

def _assign_all(
    session: Session,
    by_category: Dict[Category, List[Occupant]],
    rooms_by_category: Dict[Category, List[RoomSlot]],
    strategy: Strategy,
    assigned_by: Optional[str],
    result: AllocationResult
) -> AllocationResult:
    # Categories never share rooms, so each one is an independent run
    for category in Category:
        members = by_category.get(category)
        if not members:
            continue
        assign_category(
            session, category, members, rooms_by_category.get(category, []),
            strategy, result, assigned_by
        )
    return result

def _matches_filters(occupant: Occupant, request: AutoAssignRequest) -> bool:
    if request.gender_filter != "all":
        if (occupant.gender or '').strip().lower() != request.gender_filter:
            return False
    if request.type_filter != "all" and not occupant.is_clergy:
        category = occupant.category
        if category is not None and category.is_youth != (request.type_filter == "youth"):
            return False
    return True

def auto_assign_event(session: Session, event_id: int, request: AutoAssignRequest) -> AllocationResult:
    """
    Event-wide auto-assign over every on-campus participant and individual.

    Participants may use unreserved rooms and rooms reserved to their own
    group; individuals only unreserved rooms.
    """
    event = session.get(Event, event_id)
    if event is None:
        raise NotFoundError(f"Event {event_id} not found")

    participants = session.query(Participant).join(GroupRegistration).filter(
        GroupRegistration.event_id == event_id,
        GroupRegistration.status == STATUS_ACTIVE
    ).order_by(
        Participant.group_registration_id,
        Participant.last_name,
        Participant.first_name
    ).all()
    individuals = session.query(IndividualRegistration).filter(
        IndividualRegistration.event_id == event_id,
        IndividualRegistration.status == STATUS_ACTIVE,
        IndividualRegistration.housing_type == ON_CAMPUS
    ).order_by(IndividualRegistration.last_name, IndividualRegistration.first_name).all()

    occupants = [
        Occupant.from_participant(p) for p in participants
        if p.effective_housing_type == ON_CAMPUS
    ] + [Occupant.from_individual(r) for r in individuals]
    occupants = [o for o in occupants if _matches_filters(o, request)]

    result = AllocationResult()
    by_category = _prepare(session, occupants, request.only_unassigned, result)

    room_query = session.query(Room).join(Building).filter(
        Building.event_id == event_id,
        Room.is_available.is_(True)
    )
    if request.building_ids:
        room_query = room_query.filter(Building.id.in_(request.building_ids))
    rooms = room_query.order_by(Building.id, Room.floor, Room.room_number).all()
    rooms_by_category = _group_rooms(session, rooms, request.run_gender, result)

    _assign_all(session, by_category, rooms_by_category, request.strategy, request.assigned_by, result)
    logger.info(
        f"Auto-assign for event {event_id} ({request.strategy.value}): "
        f"assigned={result.assigned} skipped={result.skipped} errors={len(result.errors)} "
        f"unclassifiable={len(result.unclassifiable)}"
    )
    if result.unclassified_rooms:
        logger.warning(
            f"Event {event_id}: {result.unclassified_rooms} rooms could not be classified and were left out"
        )
    return result

def auto_assign_group(
    session: Session,
    group_id: int,
    category=None,
    strategy=Strategy.FILL_ROOMS,
    only_unassigned: bool = True,
    assigned_by: Optional[str] = None
) -> AllocationResult:
    """
    Auto-assign a group's participants into the rooms reserved to the group.

    A group with no reserved rooms gets ``assigned=0`` and every eligible
    participant counted as skipped; that is not an error.
    """
    strategy = Strategy.parse(strategy)
    categories = {parse_category(category)} if category else None

    group = session.get(GroupRegistration, group_id)
    if group is None:
        raise NotFoundError(f"Group registration {group_id} not found")
    if group.status != STATUS_ACTIVE:
        raise ConflictError(f"Group registration {group_id} is {group.status}")

    occupants = [Occupant.from_participant(p) for p in group.participants]

    result = AllocationResult()
    by_category = _prepare(session, occupants, only_unassigned, result, categories)

    rooms = session.query(Room).filter(
        Room.allocated_to_group_id == group_id
    ).order_by(Room.building_id, Room.floor, Room.room_number).all()
    rooms_by_category = _group_rooms(session, rooms, result=result)

    _assign_all(session, by_category, rooms_by_category, strategy, assigned_by, result)
    logger.info(
        f"Auto-assign for group {group_id}: assigned={result.assigned} "
        f"skipped={result.skipped} errors={len(result.errors)}"
    )
    return result

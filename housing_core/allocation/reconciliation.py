"""Reconciliation jobs rebuilding derived counters from the records themselves.

Counters drift when registrations are removed without restoring capacity or
when an assignment write is interrupted. Both jobs here overwrite the stored
value with a fresh count, so running them twice in a row changes nothing the
second time.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..config.allocation import HOUSING_TYPES, ROOM_TYPES, STATUS_ACTIVE
from ..models import (
    Event, Building, Room, RoomAssignment,
    GroupRegistration, IndividualRegistration,
)
from .capacity import HOUSING_DIMENSIONS, ROOM_DIMENSIONS, ledger_snapshot
from .counting import group_housing_counts, group_party_size, room_type_of
from .errors import NotFoundError

logger = logging.getLogger(__name__)

@dataclass
class CapacityReport:
    """What the capacity job counted and what it wrote."""
    event_id: int
    event_name: str
    before: Dict[str, Any]
    after: Dict[str, Any]
    group_participants: int = 0
    individual_participants: int = 0
    housing_breakdown: Dict[str, int] = field(default_factory=dict)
    room_breakdown: Dict[str, int] = field(default_factory=dict)
    settings_updated: bool = False

    @property
    def total(self) -> int:
        return self.group_participants + self.individual_participants

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': True,
            'event': {'id': self.event_id, 'name': self.event_name},
            'before': self.before,
            'after': self.after,
            'actual_registrations': {
                'group_participants': self.group_participants,
                'individual_participants': self.individual_participants,
                'total': self.total,
            },
            'housing_breakdown': dict(self.housing_breakdown),
            'room_breakdown': dict(self.room_breakdown),
            'settings_updated': self.settings_updated,
        }

def _remaining(capacity: Optional[int], used: int) -> Optional[int]:
    return None if capacity is None else max(0, capacity - used)

def recalculate_capacity(session: Session, event_id: int) -> CapacityReport:
    """
    Recount active registrations and overwrite every remaining counter.

    Groups are counted with the bucketed/coarse precedence used at
    registration time; individuals count one person each, and their room
    type only when on campus.
    """
    event = session.get(Event, event_id)
    if event is None:
        raise NotFoundError(f"Event {event_id} not found")

    before = ledger_snapshot(event)
    housing = {h: 0 for h in HOUSING_TYPES}
    rooms = {r: 0 for r in ROOM_TYPES}

    groups = session.query(GroupRegistration).filter(
        GroupRegistration.event_id == event_id,
        GroupRegistration.status == STATUS_ACTIVE
    ).all()
    group_participants = 0
    for group in groups:
        group_participants += group_party_size(group)
        for housing_type, count in group_housing_counts(group).items():
            housing[housing_type] += count

    individuals = session.query(IndividualRegistration).filter(
        IndividualRegistration.event_id == event_id,
        IndividualRegistration.status == STATUS_ACTIVE
    ).all()
    for registration in individuals:
        if registration.housing_type in housing:
            housing[registration.housing_type] += 1
        room_type = room_type_of(registration)
        if room_type in rooms:
            rooms[room_type] += 1

    report = CapacityReport(
        event_id=event.id,
        event_name=event.name,
        before=before,
        after={},
        group_participants=group_participants,
        individual_participants=len(individuals),
        housing_breakdown=housing,
        room_breakdown=rooms,
    )

    event.capacity_remaining = _remaining(event.capacity_total, report.total)

    settings = event.settings
    if settings is not None:
        updates = {}
        for key, dimension in HOUSING_DIMENSIONS.items():
            updates[dimension] = housing[key]
        for key, dimension in ROOM_DIMENSIONS.items():
            updates[dimension] = rooms[key]
        for dimension, used in updates.items():
            capacity = getattr(settings, dimension.capacity_column)
            if capacity is None:
                continue
            setattr(settings, dimension.remaining_column, _remaining(capacity, used))
            report.settings_updated = True

    session.flush()
    report.after = ledger_snapshot(event)

    logger.info(
        f"Recalculated capacity for event {event.name}: remaining "
        f"{before['event']['remaining']} -> {event.capacity_remaining} "
        f"({report.total} registered)"
    )
    return report

def recalculate_room_occupancy(session: Session, event_id: int) -> List[Dict[str, Any]]:
    """Set each room's ``current_occupancy`` to its number of assignments.

    Returns the rooms whose stored value was wrong.
    """
    if session.get(Event, event_id) is None:
        raise NotFoundError(f"Event {event_id} not found")

    counts = dict(
        session.query(RoomAssignment.room_id, func.count(RoomAssignment.id))
        .join(Room).join(Building)
        .filter(Building.event_id == event_id)
        .group_by(RoomAssignment.room_id)
        .all()
    )

    rooms = session.query(Room).join(Building).filter(
        Building.event_id == event_id
    ).order_by(Building.id, Room.floor, Room.room_number).all()

    fixed = []
    for room in rooms:
        actual = counts.get(room.id, 0)
        if room.current_occupancy != actual:
            fixed.append({
                'room_id': room.id,
                'room': room.label,
                'old_occupancy': room.current_occupancy,
                'new_occupancy': actual,
            })
            room.current_occupancy = actual

    session.flush()
    logger.info(f"Recalculated occupancy for event {event_id}: {len(fixed)} of {len(rooms)} rooms fixed")
    return fixed

"""Reserving whole rooms to a group registration.

A reservation is separate from bed-level assignment: it only sets
``Room.allocated_to_group_id``. A room is reserved to at most one group at a
time and only to groups of the room's own event.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from ..config.allocation import ON_CAMPUS
from ..models import GroupRegistration, Room
from .classifier import Category, classify_participant, is_clergy
from .errors import ValidationError, NotFoundError, ConflictError

logger = logging.getLogger(__name__)

def _conflict(room: Room, reason: str, **extra) -> Dict[str, Any]:
    conflict = {'room_id': room.id, 'room': room.label, 'reason': reason}
    conflict.update(extra)
    return conflict

def reserve_rooms(
    session: Session,
    event_id: int,
    group_id: Optional[int],
    room_ids: List[int]
) -> Dict[str, Any]:
    """
    Replace the set of rooms reserved to a group.

    Everything is validated before the first write. Rooms of another event
    or already reserved to another group make the whole request fail with a
    ``ConflictError`` listing them; nothing changes in that case.
    """
    if not group_id:
        raise ValidationError("Group registration ID is required")

    group = session.query(GroupRegistration).filter(
        GroupRegistration.id == group_id,
        GroupRegistration.event_id == event_id
    ).first()
    if group is None:
        raise NotFoundError(f"Group registration {group_id} not found for event {event_id}")

    room_ids = list(dict.fromkeys(room_ids or []))
    rooms = session.query(Room).options(joinedload(Room.building)).filter(
        Room.id.in_(room_ids)
    ).all() if room_ids else []

    missing = sorted(set(room_ids) - {room.id for room in rooms})
    if missing:
        raise NotFoundError(f"Rooms not found: {', '.join(str(r) for r in missing)}")

    conflicts = [
        _conflict(room, 'different_event', event_id=room.building.event_id)
        for room in rooms if room.building.event_id != event_id
    ]
    conflicts += [
        _conflict(room, 'allocated_to_other_group', group_id=room.allocated_to_group_id)
        for room in rooms
        if room.allocated_to_group_id and room.allocated_to_group_id != group_id
    ]
    if conflicts:
        raise ConflictError(
            "Some rooms cannot be allocated to this group: "
            + ", ".join(c['room'] for c in conflicts),
            conflicts
        )

    stale = session.query(Room).filter(Room.allocated_to_group_id == group_id)
    if room_ids:
        stale = stale.filter(Room.id.notin_(room_ids))
    released = stale.update({Room.allocated_to_group_id: None}, synchronize_session='fetch')

    if room_ids:
        # Guarded write: a room grabbed by another group since validation matches no row
        reserved = session.query(Room).filter(
            Room.id.in_(room_ids),
            or_(Room.allocated_to_group_id.is_(None), Room.allocated_to_group_id == group_id)
        ).update({Room.allocated_to_group_id: group_id}, synchronize_session='fetch')
        if reserved != len(room_ids):
            taken = session.query(Room).filter(
                Room.id.in_(room_ids),
                Room.allocated_to_group_id != group_id
            ).all()
            raise ConflictError(
                "Some rooms were allocated to another group concurrently",
                [_conflict(room, 'allocated_to_other_group', group_id=room.allocated_to_group_id)
                 for room in taken]
            )

    logger.info(f"Group {group_id}: reserved rooms {room_ids} (released {released} others)")
    return {
        'success': True,
        'group_id': group_id,
        'room_ids': room_ids,
        'released': released,
    }

def release_rooms(session: Session, group_id: int) -> int:
    """Drop every reservation held by a group. Bed assignments are left alone."""
    return session.query(Room).filter(
        Room.allocated_to_group_id == group_id
    ).update({Room.allocated_to_group_id: None}, synchronize_session='fetch')

def category_counts(participants) -> Dict[str, int]:
    """Participants of a group per housing category, clergy and unclassifiable."""
    counts = {c.value: 0 for c in Category}
    counts.update({'clergy': 0, 'unclassifiable': 0})
    for p in participants:
        if is_clergy(p.participant_type):
            counts['clergy'] += 1
            continue
        category = classify_participant(p.gender, p.age, p.participant_type)
        counts[category.value if category else 'unclassifiable'] += 1
    return counts

def list_group_allocations(session: Session, event_id: int) -> List[Dict[str, Any]]:
    """On-campus groups of an event with their category counts and reserved rooms."""
    groups = session.query(GroupRegistration).options(
        joinedload(GroupRegistration.participants),
        joinedload(GroupRegistration.allocated_rooms).joinedload(Room.building),
    ).filter(
        GroupRegistration.event_id == event_id,
        GroupRegistration.housing_type == ON_CAMPUS
    ).order_by(GroupRegistration.group_name).all()

    return [
        {
            'id': group.id,
            'group_name': group.group_name,
            'parish_name': group.parish_name,
            'status': group.status,
            'total_participants': group.total_participants,
            'categories': category_counts(group.participants),
            'allocated_rooms': [room.to_dict() for room in group.allocated_rooms],
        }
        for group in groups
    ]

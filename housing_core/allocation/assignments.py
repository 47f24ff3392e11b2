"""Manual bed assignment for a single participant or individual registrant."""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models import Room, RoomAssignment, Participant, IndividualRegistration
from .engine import free_bed
from .errors import ValidationError, NotFoundError, ConflictError

logger = logging.getLogger(__name__)

def _load_occupant(session: Session, participant_id: Optional[int], individual_id: Optional[int]):
    if bool(participant_id) == bool(individual_id):
        raise ValidationError("Exactly one of participant_id or individual_registration_id is required")

    if participant_id:
        participant = session.get(Participant, participant_id)
        if participant is None:
            raise NotFoundError(f"Participant {participant_id} not found")
        group = participant.group_registration
        return participant, group.event_id, group.id, participant.full_name

    registration = session.get(IndividualRegistration, individual_id)
    if registration is None:
        raise NotFoundError(f"Individual registration {individual_id} not found")
    return registration, registration.event_id, None, registration.full_name

def assign_occupant(
    session: Session,
    room_id: int,
    bed_number: int,
    participant_id: Optional[int] = None,
    individual_id: Optional[int] = None,
    assigned_by: Optional[str] = None
) -> Dict[str, Any]:
    """
    Put one person into a specific bed.

    Someone who already holds a bed is moved: the old assignment is deleted
    and its room's occupancy decremented before the new bed is taken.
    """
    room = session.get(Room, room_id)
    if room is None:
        raise NotFoundError(f"Room {room_id} not found")

    occupant, event_id, group_id, name = _load_occupant(session, participant_id, individual_id)

    if room.building.event_id != event_id:
        raise ConflictError(f"Room {room.label} belongs to a different event")
    if room.allocated_to_group_id and room.allocated_to_group_id != group_id:
        raise ConflictError(
            f"Room {room.label} is allocated to another group",
            [{'room_id': room.id, 'room': room.label, 'group_id': room.allocated_to_group_id}]
        )
    if not isinstance(bed_number, int) or bed_number < 1 or bed_number > room.capacity:
        raise ValidationError(f"Invalid bed number {bed_number} for {room.label} (1-{room.capacity})")

    taken = session.query(RoomAssignment).filter(
        RoomAssignment.room_id == room_id,
        RoomAssignment.bed_number == bed_number
    ).first()
    if taken is not None:
        if (taken.participant_id or None) == participant_id and \
                (taken.individual_registration_id or None) == individual_id:
            return taken.to_dict()
        raise ConflictError(f"Bed {bed_number} in {room.label} is already assigned")

    existing_query = session.query(RoomAssignment)
    if participant_id:
        existing_query = existing_query.filter(RoomAssignment.participant_id == participant_id)
    else:
        existing_query = existing_query.filter(RoomAssignment.individual_registration_id == individual_id)
    existing = existing_query.first()
    if existing is not None:
        logger.info(f"Moving {name} out of room {existing.room_id} bed {existing.bed_number}")
        free_bed(session, existing.room_id)
        session.delete(existing)
        session.flush()

    updated = session.query(Room).filter(
        Room.id == room_id,
        Room.current_occupancy < Room.capacity
    ).update(
        {Room.current_occupancy: Room.current_occupancy + 1},
        synchronize_session='fetch'
    )
    if not updated:
        raise ConflictError(f"Room {room.label} is full")

    assignment = RoomAssignment(
        room_id=room_id,
        participant_id=participant_id,
        individual_registration_id=individual_id,
        group_registration_id=group_id,
        bed_number=bed_number,
        assigned_by=assigned_by,
    )
    session.add(assignment)
    try:
        session.flush()
    except IntegrityError as e:
        logger.warning(f"Assignment of {name} to {room.label} bed {bed_number} collided: {e}")
        raise ConflictError(f"Bed {bed_number} in {room.label} was taken concurrently") from e

    logger.info(f"Assigned {name} to {room.label} bed {bed_number}")
    return assignment.to_dict()

def unassign_occupant(session: Session, assignment_id: int) -> Dict[str, Any]:
    """Delete an assignment and free its bed."""
    assignment = session.get(RoomAssignment, assignment_id)
    if assignment is None:
        raise NotFoundError(f"Room assignment {assignment_id} not found")

    data = assignment.to_dict()
    free_bed(session, assignment.room_id)
    session.delete(assignment)
    session.flush()
    logger.info(f"Removed assignment {assignment_id} from room {data['room_id']}")
    return data

"""Registration lifecycle hooks keeping the capacity ledger in step.

Creating a registration takes its spots from the ledger, editing its counts
applies only the difference, and cancelling gives the spots back, releases
its beds and drops its room reservations. Groups always go through the
bucketed/coarse precedence in ``counting`` so every hook agrees with the
reconciliation job.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..config.allocation import (
    HOUSING_TYPES, ROOM_TYPES, PARTICIPANT_TYPES, HOUSING_BUCKET_FIELDS,
    STATUS_ACTIVE, STATUS_CANCELLED,
)
from ..models import Event, GroupRegistration, IndividualRegistration, Participant, RoomAssignment
from .capacity import (
    check_capacity, check_event_capacity,
    decrement_capacity, increment_capacity,
    decrement_event_capacity, increment_event_capacity,
)
from .counting import group_housing_counts, group_party_size, room_type_of
from .engine import free_bed
from .errors import ValidationError, NotFoundError, ConflictError, CapacityExceededError
from .reservations import release_rooms

logger = logging.getLogger(__name__)

BUCKET_FIELDS = [name for names in HOUSING_BUCKET_FIELDS.values() for name in names]
GROUP_COUNT_FIELDS = ['housing_type', 'total_participants'] + BUCKET_FIELDS

def _get_event(session: Session, event_id: int) -> Event:
    event = session.get(Event, event_id)
    if event is None:
        raise NotFoundError(f"Event {event_id} not found")
    return event

def _require(payload: Dict[str, Any], name: str) -> Any:
    value = payload.get(name)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{name} is required")
    return value

def _validate_choice(name: str, value: Optional[str], choices) -> None:
    if value is not None and value not in choices:
        raise ValidationError(f"Invalid {name} '{value}'. Expected one of {', '.join(choices)}")

def _validate_count(name: str, value) -> None:
    if value is None:
        return
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise ValidationError(f"{name} must be a non-negative integer (got {value!r})")

def _refuse(check) -> None:
    if not check.ok:
        remaining = check.room_remaining if check.room_remaining is not None else check.housing_remaining
        raise CapacityExceededError(check.message, check.dimension, remaining)

def _check_group_counts(event: Event, counts: Dict[str, int], party_size: int) -> None:
    """Refuse when any housing type or the event counter lacks spots."""
    for housing_type, count in counts.items():
        if count > 0:
            _refuse(check_capacity(event.settings, housing_type, party_size=count))
    _refuse(check_event_capacity(event, party_size))

def register_group(session: Session, event_id: int, payload: Dict[str, Any]) -> GroupRegistration:
    """
    Create a group registration with its participants and take its spots.

    Raises ``CapacityExceededError`` before writing anything when a housing
    type (bucketed or coarse, see ``counting``) or the event-wide counter
    cannot hold the party.
    """
    event = _get_event(session, event_id)

    _require(payload, 'group_name')
    _validate_choice('housing_type', payload.get('housing_type'), HOUSING_TYPES)
    for name in ['total_participants'] + BUCKET_FIELDS:
        _validate_count(name, payload.get(name))

    group = GroupRegistration(
        event_id=event_id,
        group_name=payload['group_name'],
        parish_name=payload.get('parish_name'),
        status=STATUS_ACTIVE,
        **{name: payload.get(name) for name in GROUP_COUNT_FIELDS}
    )

    for entry in payload.get('participants') or []:
        _require(entry, 'first_name')
        _require(entry, 'last_name')
        _validate_choice('participant_type', entry.get('participant_type'), PARTICIPANT_TYPES)
        _validate_choice('housing_type', entry.get('housing_type'), HOUSING_TYPES)
        group.participants.append(Participant(
            first_name=entry['first_name'],
            last_name=entry['last_name'],
            age=entry.get('age'),
            gender=entry.get('gender'),
            participant_type=entry.get('participant_type'),
            housing_type=entry.get('housing_type'),
        ))

    counts = group_housing_counts(group)
    party_size = group_party_size(group)
    _check_group_counts(event, counts.counts, party_size)

    session.add(group)
    for housing_type, count in counts.items():
        decrement_capacity(session, event_id, housing_type, party_size=count)
    decrement_event_capacity(session, event_id, party_size)
    session.flush()

    logger.info(
        f"Registered group '{group.group_name}' ({party_size} people, "
        f"{counts.source} counts) for event {event_id}"
    )
    return group

def register_individual(session: Session, event_id: int, payload: Dict[str, Any]) -> IndividualRegistration:
    """Create an individual registration and take one spot (room type only on campus)."""
    event = _get_event(session, event_id)

    _require(payload, 'first_name')
    _require(payload, 'last_name')
    housing_type = _require(payload, 'housing_type')
    _validate_choice('housing_type', housing_type, HOUSING_TYPES)
    _validate_choice('room_type', payload.get('room_type'), ROOM_TYPES)
    _validate_count('age', payload.get('age'))

    registration = IndividualRegistration(
        event_id=event_id,
        first_name=payload['first_name'],
        last_name=payload['last_name'],
        age=payload.get('age'),
        gender=payload.get('gender'),
        housing_type=housing_type,
        room_type=payload.get('room_type'),
        status=STATUS_ACTIVE,
    )
    room_type = room_type_of(registration)

    _refuse(check_capacity(event.settings, housing_type, room_type, 1))
    _refuse(check_event_capacity(event, 1))

    session.add(registration)
    decrement_capacity(session, event_id, housing_type, room_type, 1)
    decrement_event_capacity(session, event_id, 1)
    session.flush()

    logger.info(f"Registered {registration.full_name} ({housing_type}/{room_type or '-'}) for event {event_id}")
    return registration

def update_group_counts(session: Session, group_id: int, **changes) -> GroupRegistration:
    """
    Edit a group's housing type, total or bucket counts.

    Only the difference between the old and new counts moves through the
    ledger, and only increases are checked against the remaining spots.
    """
    unknown = set(changes) - set(GROUP_COUNT_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")
    _validate_choice('housing_type', changes.get('housing_type'), HOUSING_TYPES)
    for name, value in changes.items():
        if name != 'housing_type':
            _validate_count(name, value)

    group = session.get(GroupRegistration, group_id)
    if group is None:
        raise NotFoundError(f"Group registration {group_id} not found")
    if group.status != STATUS_ACTIVE:
        raise ConflictError(f"Group registration {group_id} is {group.status}")

    event = group.event
    old_counts = group_housing_counts(group)
    old_size = group_party_size(group)

    proposed = GroupRegistration(**{name: getattr(group, name) for name in GROUP_COUNT_FIELDS})
    for name, value in changes.items():
        setattr(proposed, name, value)
    new_counts = group_housing_counts(proposed)
    new_size = group_party_size(proposed)

    deltas = {h: new_counts.get(h) - old_counts.get(h) for h in HOUSING_TYPES}
    for housing_type, delta in deltas.items():
        if delta > 0:
            _refuse(check_capacity(event.settings, housing_type, party_size=delta))
    if new_size > old_size:
        _refuse(check_event_capacity(event, new_size - old_size))

    for name, value in changes.items():
        setattr(group, name, value)
    for housing_type, delta in deltas.items():
        if delta > 0:
            decrement_capacity(session, event.id, housing_type, party_size=delta)
        elif delta < 0:
            increment_capacity(session, event.id, housing_type, party_size=-delta)
    if new_size > old_size:
        decrement_event_capacity(session, event.id, new_size - old_size)
    elif new_size < old_size:
        increment_event_capacity(session, event.id, old_size - new_size)
    session.flush()

    logger.info(f"Updated counts of group {group_id}: {old_size} -> {new_size} people")
    return group

def _claim_cancellation(session: Session, model, registration_id: int) -> bool:
    """Flip an active registration to cancelled; False when another writer got there first."""
    return session.query(model).filter(
        model.id == registration_id,
        model.status == STATUS_ACTIVE
    ).update({model.status: STATUS_CANCELLED}, synchronize_session='fetch') == 1

def _release_beds(session: Session, assignments) -> int:
    for assignment in assignments:
        free_bed(session, assignment.room_id)
        session.delete(assignment)
    return len(assignments)

def cancel_group_registration(session: Session, group_id: int, hard_delete: bool = False) -> Dict[str, Any]:
    """
    Cancel a group: free its beds and rooms and give its spots back.

    The status flip is a guarded write, so of two concurrent cancellations
    only one gives the spots back. A group that is already cancelled can
    still be hard deleted; its spots are not returned again.
    """
    group = session.get(GroupRegistration, group_id)
    if group is None:
        raise NotFoundError(f"Group registration {group_id} not found")

    if not _claim_cancellation(session, GroupRegistration, group_id):
        if not hard_delete:
            raise ConflictError(f"Group registration {group_id} is already cancelled")
        session.delete(group)
        session.flush()
        return {'id': group_id, 'deleted': True, 'released_beds': 0, 'released_rooms': 0, 'restored': 0}

    participant_ids = [p.id for p in group.participants]
    query = session.query(RoomAssignment)
    if participant_ids:
        query = query.filter(or_(
            RoomAssignment.group_registration_id == group_id,
            RoomAssignment.participant_id.in_(participant_ids)
        ))
    else:
        query = query.filter(RoomAssignment.group_registration_id == group_id)
    released_beds = _release_beds(session, query.all())
    released_rooms = release_rooms(session, group_id)

    counts = group_housing_counts(group)
    party_size = group_party_size(group)
    for housing_type, count in counts.items():
        increment_capacity(session, group.event_id, housing_type, party_size=count)
    increment_event_capacity(session, group.event_id, party_size)

    if hard_delete:
        session.delete(group)
    session.flush()

    logger.info(
        f"Cancelled group {group_id}: {released_beds} beds and {released_rooms} rooms released, "
        f"{party_size} spots restored"
    )
    return {
        'id': group_id,
        'deleted': hard_delete,
        'released_beds': released_beds,
        'released_rooms': released_rooms,
        'restored': party_size,
    }

def cancel_individual_registration(
    session: Session,
    registration_id: int,
    hard_delete: bool = False
) -> Dict[str, Any]:
    """Cancel an individual registration, free its bed and give its spot back."""
    registration = session.get(IndividualRegistration, registration_id)
    if registration is None:
        raise NotFoundError(f"Individual registration {registration_id} not found")

    if not _claim_cancellation(session, IndividualRegistration, registration_id):
        if not hard_delete:
            raise ConflictError(f"Individual registration {registration_id} is already cancelled")
        session.delete(registration)
        session.flush()
        return {'id': registration_id, 'deleted': True, 'released_beds': 0, 'restored': 0}

    released_beds = _release_beds(session, session.query(RoomAssignment).filter(
        RoomAssignment.individual_registration_id == registration_id
    ).all())

    if registration.housing_type in HOUSING_TYPES:
        increment_capacity(
            session, registration.event_id, registration.housing_type, room_type_of(registration), 1
        )
    increment_event_capacity(session, registration.event_id, 1)

    if hard_delete:
        session.delete(registration)
    session.flush()

    logger.info(f"Cancelled individual registration {registration_id}: {released_beds} beds released")
    return {'id': registration_id, 'deleted': hard_delete, 'released_beds': released_beds, 'restored': 1}

"""Capacity ledger: remaining-spot counters per event, housing type and room type.

Counters live next to their ceiling on ``EventSettings`` (and on ``Event``
for the event-wide total). A null ceiling means the dimension is unlimited.
Adjustments are single ``UPDATE`` statements whose clamping is evaluated by
the database, so concurrent registrations and cancellations never go through
a read-modify-write cycle in Python.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from ..config.allocation import (
    ON_CAMPUS, HOUSING_DIMENSION_COLUMNS, ROOM_DIMENSION_COLUMNS,
    HOUSING_TYPES, ROOM_TYPES,
)
from ..models import Event, EventSettings
from .errors import ValidationError

logger = logging.getLogger(__name__)

NO_SPOTS = "no spots"
INSUFFICIENT_SPOTS = "insufficient spots"

@dataclass(frozen=True)
class Unlimited:
    """No ceiling configured for a dimension."""
    
    def __str__(self) -> str:
        return "unlimited"

@dataclass(frozen=True)
class Bounded:
    """A configured ceiling of ``limit`` spots."""
    limit: int
    
    def __str__(self) -> str:
        return str(self.limit)

Capacity = Union[Unlimited, Bounded]
UNLIMITED = Unlimited()

@dataclass(frozen=True)
class Dimension:
    """A capacity dimension backed by a ``<column>_capacity``/``<column>_remaining`` pair."""
    key: str
    column: str
    
    @property
    def capacity_column(self) -> str:
        return f"{self.column}_capacity"
    
    @property
    def remaining_column(self) -> str:
        return f"{self.column}_remaining"
    
    @property
    def label(self) -> str:
        return self.column.replace('_', ' ')

HOUSING_DIMENSIONS = {key: Dimension(key, column) for key, column in HOUSING_DIMENSION_COLUMNS.items()}
ROOM_DIMENSIONS = {key: Dimension(key, column) for key, column in ROOM_DIMENSION_COLUMNS.items()}
ALL_DIMENSIONS = list(HOUSING_DIMENSIONS.values()) + list(ROOM_DIMENSIONS.values())

def housing_dimension(housing_type: str) -> Dimension:
    try:
        return HOUSING_DIMENSIONS[housing_type]
    except KeyError:
        raise ValidationError(
            f"Unknown housing type '{housing_type}'. Expected one of {', '.join(HOUSING_TYPES)}"
        ) from None

def room_dimension(room_type: str) -> Dimension:
    try:
        return ROOM_DIMENSIONS[room_type]
    except KeyError:
        raise ValidationError(
            f"Unknown room type '{room_type}'. Expected one of {', '.join(ROOM_TYPES)}"
        ) from None

def dimensions_for(housing_type: str, room_type: Optional[str] = None) -> List[Dimension]:
    """Dimensions touched by a registration; room type only counts on campus."""
    dimensions = [housing_dimension(housing_type)]
    if room_type and housing_type == ON_CAMPUS:
        dimensions.append(room_dimension(room_type))
    return dimensions

def capacity_for(settings: Optional[EventSettings], dimension: Dimension) -> Capacity:
    if settings is None:
        return UNLIMITED
    limit = getattr(settings, dimension.capacity_column)
    return UNLIMITED if limit is None else Bounded(limit)

def remaining_for(settings: Optional[EventSettings], dimension: Dimension) -> Optional[int]:
    """Remaining spots, or None for an unlimited dimension.
    
    A bounded dimension whose counter was never initialised counts as untouched.
    """
    capacity = capacity_for(settings, dimension)
    if isinstance(capacity, Unlimited):
        return None
    remaining = getattr(settings, dimension.remaining_column)
    return capacity.limit if remaining is None else remaining

@dataclass
class CapacityCheck:
    """Outcome of a capacity check; ``reason`` is set when ``ok`` is False."""
    ok: bool
    reason: Optional[str] = None
    message: Optional[str] = None
    dimension: Optional[str] = None
    housing_remaining: Optional[int] = None
    room_remaining: Optional[int] = None
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            'ok': self.ok,
            'reason': self.reason,
            'message': self.message,
            'dimension': self.dimension,
            'housing_remaining': self.housing_remaining,
            'room_remaining': self.room_remaining,
        }

def _refusal(remaining: int, party_size: int, label: str) -> Optional[CapacityCheck]:
    if remaining <= 0:
        return CapacityCheck(
            ok=False,
            reason=NO_SPOTS,
            message=f"No {label} spots available."
        )
    if remaining < party_size:
        return CapacityCheck(
            ok=False,
            reason=INSUFFICIENT_SPOTS,
            message=(
                f"Only {remaining} {label} spot{'' if remaining == 1 else 's'} remaining, "
                f"but {party_size} requested."
            )
        )
    return None

def _validate_party_size(party_size: int) -> None:
    if party_size < 0:
        raise ValidationError(f"Party size must not be negative (got {party_size})")

def check_capacity(
    settings: Optional[EventSettings],
    housing_type: str,
    room_type: Optional[str] = None,
    party_size: int = 1
) -> CapacityCheck:
    """
    Answer "is there room for ``party_size`` more?" for a housing type and,
    on campus, a room type.
    
    Missing settings mean the event has no option limits.
    """
    _validate_party_size(party_size)
    housing = housing_dimension(housing_type)
    housing_remaining = remaining_for(settings, housing)
    
    if housing_remaining is not None:
        refusal = _refusal(housing_remaining, party_size, housing.label)
        if refusal:
            refusal.dimension = housing.key
            refusal.housing_remaining = max(0, housing_remaining)
            return refusal
    
    room_remaining = None
    if room_type and housing_type == ON_CAMPUS:
        room = room_dimension(room_type)
        room_remaining = remaining_for(settings, room)
        if room_remaining is not None:
            refusal = _refusal(room_remaining, party_size, f"{room_type} room")
            if refusal:
                refusal.dimension = room.key
                refusal.housing_remaining = housing_remaining
                refusal.room_remaining = max(0, room_remaining)
                return refusal
    
    return CapacityCheck(ok=True, housing_remaining=housing_remaining, room_remaining=room_remaining)

def check_event_capacity(event: Event, party_size: int) -> CapacityCheck:
    """Same rules as ``check_capacity`` for the event-wide counter."""
    _validate_party_size(party_size)
    if event.capacity_total is None:
        return CapacityCheck(ok=True)
    remaining = event.capacity_remaining
    if remaining is None:
        remaining = event.capacity_total
    refusal = _refusal(remaining, party_size, "event")
    if refusal:
        refusal.dimension = "event"
        return refusal
    return CapacityCheck(ok=True)

def _clamped(remaining_col, capacity_col, delta: int):
    """SQL expression adding ``delta`` to a counter, clamped to ``[0, capacity]``.
    
    Both bounds apply whatever the sign of ``delta``, so a counter left above
    a lowered capacity is pulled back under it. Unlimited counters are left
    as they are.
    """
    adjusted = func.coalesce(remaining_col, capacity_col) + delta
    clamped = case(
        (adjusted < 0, 0),
        (adjusted > capacity_col, capacity_col),
        else_=adjusted
    )
    return case((capacity_col.is_(None), remaining_col), else_=clamped)

def _adjust_settings(
    session: Session,
    event_id: int,
    housing_type: str,
    room_type: Optional[str],
    delta: int
) -> None:
    values = {}
    for dimension in dimensions_for(housing_type, room_type):
        remaining_col = getattr(EventSettings, dimension.remaining_column)
        capacity_col = getattr(EventSettings, dimension.capacity_column)
        values[remaining_col] = _clamped(remaining_col, capacity_col, delta)
    
    session.query(EventSettings).filter(
        EventSettings.event_id == event_id
    ).update(values, synchronize_session='fetch')

def decrement_capacity(
    session: Session,
    event_id: int,
    housing_type: str,
    room_type: Optional[str] = None,
    party_size: int = 1
) -> None:
    """
    Take ``party_size`` spots from the housing-type counter and, on campus
    with a room type, from the room-type counter as well.
    
    Both columns change in one statement; each is clamped at zero.
    """
    _validate_party_size(party_size)
    if party_size == 0:
        return
    _adjust_settings(session, event_id, housing_type, room_type, -party_size)
    logger.debug(f"Event {event_id}: took {party_size} {housing_type}/{room_type or '-'} spots")

def increment_capacity(
    session: Session,
    event_id: int,
    housing_type: str,
    room_type: Optional[str] = None,
    party_size: int = 1
) -> None:
    """Give spots back (cancellation); each counter is clamped at its capacity."""
    _validate_party_size(party_size)
    if party_size == 0:
        return
    _adjust_settings(session, event_id, housing_type, room_type, party_size)
    logger.debug(f"Event {event_id}: restored {party_size} {housing_type}/{room_type or '-'} spots")

def _adjust_event(session: Session, event_id: int, delta: int) -> None:
    session.query(Event).filter(Event.id == event_id).update(
        {Event.capacity_remaining: _clamped(Event.capacity_remaining, Event.capacity_total, delta)},
        synchronize_session='fetch'
    )

def decrement_event_capacity(session: Session, event_id: int, party_size: int) -> None:
    """Take the total party size from the event-wide counter, clamped at zero."""
    _validate_party_size(party_size)
    if party_size:
        _adjust_event(session, event_id, -party_size)

def increment_event_capacity(session: Session, event_id: int, party_size: int) -> None:
    """Give the total party size back to the event-wide counter, clamped at the total."""
    _validate_party_size(party_size)
    if party_size:
        _adjust_event(session, event_id, party_size)

def _has_spots(settings: Optional[EventSettings], dimension: Dimension) -> bool:
    remaining = remaining_for(settings, dimension)
    return remaining is None or remaining > 0

def available_options(settings: Optional[EventSettings]) -> Dict[str, List[str]]:
    """Housing types and room types that still have at least one spot."""
    return {
        'housing_types': [key for key, dim in HOUSING_DIMENSIONS.items() if _has_spots(settings, dim)],
        'room_types': [key for key, dim in ROOM_DIMENSIONS.items() if _has_spots(settings, dim)],
    }

def ledger_snapshot(event: Event) -> Dict[str, Any]:
    """Every counter of an event with its ceiling, for reports and the API."""
    snapshot = {
        'event': {
            'capacity': event.capacity_total,
            'remaining': event.capacity_remaining,
        }
    }
    settings = event.settings
    for dimension in ALL_DIMENSIONS:
        snapshot[dimension.column] = {
            'capacity': getattr(settings, dimension.capacity_column) if settings else None,
            'remaining': getattr(settings, dimension.remaining_column) if settings else None,
        }
    return snapshot

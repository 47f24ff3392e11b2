"""Models package initialization."""

from .base import Base
from .event import Event, EventSettings
from .registration import GroupRegistration, IndividualRegistration, Participant
from .housing import Building, Room, RoomAssignment

__all__ = [
    'Base',
    'Event',
    'EventSettings',
    'GroupRegistration',
    'IndividualRegistration',
    'Participant',
    'Building',
    'Room',
    'RoomAssignment',
]

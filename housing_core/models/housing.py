"""Buildings, rooms and bed assignments."""

from typing import Dict, Any
from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, ForeignKey,
    UniqueConstraint, CheckConstraint
)
from sqlalchemy.orm import relationship

from .base import Base
from ..utils.timezone import now_utc

class Building(Base):
    """A building of an event's housing pool, optionally gender-restricted."""
    __tablename__ = 'buildings'
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    event_id = Column(Integer, ForeignKey('events.id', ondelete='CASCADE'), nullable=False, index=True)
    name = Column(String, nullable=False)
    gender = Column(String, nullable=True)
    
    event = relationship('Event', back_populates='buildings')
    rooms = relationship('Room', back_populates='building', cascade='all, delete-orphan')
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'id': self.id,
            'event_id': self.event_id,
            'name': self.name,
            'gender': self.gender,
        }

class Room(Base):
    """
    A room with ``capacity`` beds.
    
    ``current_occupancy`` must equal the number of assignments referencing
    the room; ``recalculate_room_occupancy`` restores it when it drifts.
    ``allocated_to_group_id`` reserves the room exclusively to one group.
    """
    __tablename__ = 'rooms'
    __table_args__ = (
        CheckConstraint('capacity >= 0', name='ck_room_capacity_non_negative'),
        CheckConstraint('current_occupancy >= 0', name='ck_room_occupancy_non_negative'),
    )
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    building_id = Column(Integer, ForeignKey('buildings.id', ondelete='CASCADE'), nullable=False, index=True)
    room_number = Column(String, nullable=False)
    floor = Column(Integer, nullable=True)
    capacity = Column(Integer, nullable=False)
    current_occupancy = Column(Integer, nullable=False, default=0)
    gender = Column(String, nullable=True)
    housing_type = Column(String, nullable=True)
    is_available = Column(Boolean, nullable=False, default=True)
    allocated_to_group_id = Column(
        Integer,
        ForeignKey('group_registrations.id', ondelete='SET NULL'),
        nullable=True,
        index=True
    )
    
    building = relationship('Building', back_populates='rooms')
    allocated_to_group = relationship('GroupRegistration', back_populates='allocated_rooms')
    assignments = relationship('RoomAssignment', back_populates='room', cascade='all, delete-orphan')
    
    @property
    def available_beds(self) -> int:
        return max(0, self.capacity - (self.current_occupancy or 0))
    
    @property
    def label(self) -> str:
        building_name = self.building.name if self.building else '?'
        return f"{building_name} {self.room_number}"
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'id': self.id,
            'building_id': self.building_id,
            'building_name': self.building.name if self.building else None,
            'room_number': self.room_number,
            'floor': self.floor,
            'capacity': self.capacity,
            'current_occupancy': self.current_occupancy,
            'gender': self.gender,
            'housing_type': self.housing_type,
            'is_available': self.is_available,
            'allocated_to_group_id': self.allocated_to_group_id,
        }

class RoomAssignment(Base):
    """
    A bed in a room given to exactly one participant or individual registrant.
    
    The unique constraints are the backstop against two concurrent runs
    booking the same bed or housing the same person twice.
    """
    __tablename__ = 'room_assignments'
    __table_args__ = (
        UniqueConstraint('room_id', 'bed_number', name='uq_room_assignment_bed'),
        UniqueConstraint('participant_id', name='uq_room_assignment_participant'),
        UniqueConstraint('individual_registration_id', name='uq_room_assignment_individual'),
        CheckConstraint(
            '(participant_id IS NULL) != (individual_registration_id IS NULL)',
            name='ck_room_assignment_one_occupant'
        ),
        CheckConstraint('bed_number IS NULL OR bed_number >= 1', name='ck_room_assignment_bed_positive'),
    )
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    room_id = Column(Integer, ForeignKey('rooms.id', ondelete='CASCADE'), nullable=False, index=True)
    participant_id = Column(Integer, ForeignKey('participants.id', ondelete='CASCADE'), nullable=True)
    individual_registration_id = Column(
        Integer,
        ForeignKey('individual_registrations.id', ondelete='CASCADE'),
        nullable=True
    )
    group_registration_id = Column(
        Integer,
        ForeignKey('group_registrations.id', ondelete='CASCADE'),
        nullable=True,
        index=True
    )
    bed_number = Column(Integer, nullable=True)
    assigned_by = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    
    room = relationship('Room', back_populates='assignments')
    participant = relationship('Participant')
    individual_registration = relationship('IndividualRegistration')
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'id': self.id,
            'room_id': self.room_id,
            'participant_id': self.participant_id,
            'individual_registration_id': self.individual_registration_id,
            'group_registration_id': self.group_registration_id,
            'bed_number': self.bed_number,
            'assigned_by': self.assigned_by,
        }

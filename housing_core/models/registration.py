"""Registration and participant models."""

from typing import Dict, Any, Optional
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from .base import Base
from ..config.allocation import STATUS_ACTIVE
from ..utils.timezone import now_utc

class GroupRegistration(Base):
    """
    A ministry group's registration to one event.
    
    Party size is tracked twice: coarsely (``housing_type`` plus
    ``total_participants``) and, when the registration form collected it,
    per bucket (``on_campus_youth``, ``on_campus_chaperones``, ...). See
    ``housing_core.allocation.counting`` for which one wins.
    """
    __tablename__ = 'group_registrations'
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    event_id = Column(Integer, ForeignKey('events.id', ondelete='CASCADE'), nullable=False, index=True)
    group_name = Column(String, nullable=False)
    parish_name = Column(String, nullable=True)
    housing_type = Column(String, nullable=True)
    total_participants = Column(Integer, nullable=True)
    
    on_campus_youth = Column(Integer, nullable=True)
    on_campus_chaperones = Column(Integer, nullable=True)
    off_campus_youth = Column(Integer, nullable=True)
    off_campus_chaperones = Column(Integer, nullable=True)
    day_pass_youth = Column(Integer, nullable=True)
    day_pass_chaperones = Column(Integer, nullable=True)
    
    status = Column(String, nullable=False, default=STATUS_ACTIVE)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    
    event = relationship('Event')
    participants = relationship(
        'Participant',
        back_populates='group_registration',
        cascade='all, delete-orphan',
        order_by='Participant.last_name'
    )
    allocated_rooms = relationship('Room', back_populates='allocated_to_group')
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'id': self.id,
            'event_id': self.event_id,
            'group_name': self.group_name,
            'parish_name': self.parish_name,
            'housing_type': self.housing_type,
            'total_participants': self.total_participants,
            'on_campus_youth': self.on_campus_youth,
            'on_campus_chaperones': self.on_campus_chaperones,
            'off_campus_youth': self.off_campus_youth,
            'off_campus_chaperones': self.off_campus_chaperones,
            'day_pass_youth': self.day_pass_youth,
            'day_pass_chaperones': self.day_pass_chaperones,
            'status': self.status,
        }

class IndividualRegistration(Base):
    """A single person's registration; carries its own housing and room type."""
    __tablename__ = 'individual_registrations'
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    event_id = Column(Integer, ForeignKey('events.id', ondelete='CASCADE'), nullable=False, index=True)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    age = Column(Integer, nullable=True)
    gender = Column(String, nullable=True)
    housing_type = Column(String, nullable=True)
    room_type = Column(String, nullable=True)
    status = Column(String, nullable=False, default=STATUS_ACTIVE)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    
    event = relationship('Event')
    
    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'id': self.id,
            'event_id': self.event_id,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'age': self.age,
            'gender': self.gender,
            'housing_type': self.housing_type,
            'room_type': self.room_type,
            'status': self.status,
        }

class Participant(Base):
    """A person attending with a group registration."""
    __tablename__ = 'participants'
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    group_registration_id = Column(
        Integer,
        ForeignKey('group_registrations.id', ondelete='CASCADE'),
        nullable=False,
        index=True
    )
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    age = Column(Integer, nullable=True)
    gender = Column(String, nullable=True)
    participant_type = Column(String, nullable=True)
    # Falls back to the group's coarse housing type when unset
    housing_type = Column(String, nullable=True)
    
    group_registration = relationship('GroupRegistration', back_populates='participants')
    
    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
    
    @property
    def effective_housing_type(self) -> Optional[str]:
        if self.housing_type:
            return self.housing_type
        return self.group_registration.housing_type if self.group_registration else None
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'id': self.id,
            'group_registration_id': self.group_registration_id,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'age': self.age,
            'gender': self.gender,
            'participant_type': self.participant_type,
            'housing_type': self.effective_housing_type,
        }

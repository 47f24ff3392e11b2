"""Event and per-event capacity settings models."""

from typing import Dict, Any
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship

from .base import Base
from ..config.allocation import HOUSING_DIMENSION_COLUMNS, ROOM_DIMENSION_COLUMNS
from ..utils.timezone import now_utc

class Event(Base):
    """
    Top-level container for registrations and housing.
    
    Fields:
        id: Unique identifier (auto-generated)
        name: Display name of the event
        capacity_total: Overall cap on registered people (None = unlimited)
        capacity_remaining: Event-wide remaining counter
        created_at: When the event was created
    """
    __tablename__ = 'events'
    __table_args__ = (
        CheckConstraint('capacity_remaining >= 0', name='ck_event_remaining_non_negative'),
    )
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    capacity_total = Column(Integer, nullable=True)
    capacity_remaining = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    
    settings = relationship(
        'EventSettings',
        back_populates='event',
        uselist=False,
        cascade='all, delete-orphan'
    )
    buildings = relationship('Building', back_populates='event', cascade='all, delete-orphan')
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'id': self.id,
            'name': self.name,
            'capacity_total': self.capacity_total,
            'capacity_remaining': self.capacity_remaining,
        }
    
    def __str__(self) -> str:
        """String representation."""
        return f"Event(id={self.id}, name={self.name})"

class EventSettings(Base):
    """
    Per-event capacity configuration.
    
    Every dimension has a nullable ``*_capacity`` ceiling (None = unlimited)
    and a mutable ``*_remaining`` counter living next to it. When the ceiling
    is set, ``0 <= remaining <= capacity`` holds after every ledger operation.
    """
    __tablename__ = 'event_settings'
    __table_args__ = tuple(
        CheckConstraint(f'{column}_remaining >= 0', name=f'ck_settings_{column}_remaining_non_negative')
        for column in list(HOUSING_DIMENSION_COLUMNS.values()) + list(ROOM_DIMENSION_COLUMNS.values())
    )
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    event_id = Column(Integer, ForeignKey('events.id', ondelete='CASCADE'), nullable=False, unique=True)
    
    # Housing types
    on_campus_capacity = Column(Integer, nullable=True)
    on_campus_remaining = Column(Integer, nullable=True)
    off_campus_capacity = Column(Integer, nullable=True)
    off_campus_remaining = Column(Integer, nullable=True)
    day_pass_capacity = Column(Integer, nullable=True)
    day_pass_remaining = Column(Integer, nullable=True)
    
    # Room types
    single_room_capacity = Column(Integer, nullable=True)
    single_room_remaining = Column(Integer, nullable=True)
    double_room_capacity = Column(Integer, nullable=True)
    double_room_remaining = Column(Integer, nullable=True)
    triple_room_capacity = Column(Integer, nullable=True)
    triple_room_remaining = Column(Integer, nullable=True)
    quad_room_capacity = Column(Integer, nullable=True)
    quad_room_remaining = Column(Integer, nullable=True)
    
    event = relationship('Event', back_populates='settings')
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary of every capacity/remaining pair."""
        return {
            column.name: getattr(self, column.name)
            for column in self.__table__.columns
            if column.name.endswith(('_capacity', '_remaining'))
        }

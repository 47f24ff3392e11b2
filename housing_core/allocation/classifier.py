"""Mapping of participants and rooms to housing categories.

A category is the unit of match between people and rooms. The mapping is
exclusive on both sides: a person lands in at most one category and a room
serves at most one, so the per-category runs of the allocation engine never
compete for the same rooms.
"""

from enum import Enum
from typing import Optional

from ..config.allocation import (
    ADULT_AGE, YOUTH_U18, YOUTH_O18, CHAPERONE, PRIEST, GENDERS,
    ROOM_TAG_YOUTH, ROOM_TAG_CHAPERONE, ROOM_TAG_GENERAL, ROOM_TAG_CLERGY,
)

class Category(str, Enum):
    MALE_YOUTH = "male_youth"
    FEMALE_YOUTH = "female_youth"
    MALE_CHAPERONE = "male_chaperone"
    FEMALE_CHAPERONE = "female_chaperone"
    
    @property
    def gender(self) -> str:
        return self.value.split('_', 1)[0]
    
    @property
    def is_youth(self) -> bool:
        return self.value.endswith('_youth')

_YOUTH = {'male': Category.MALE_YOUTH, 'female': Category.FEMALE_YOUTH}
_CHAPERONE = {'male': Category.MALE_CHAPERONE, 'female': Category.FEMALE_CHAPERONE}

def _normalize(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip().lower()
    return value or None

def is_clergy(participant_type: Optional[str]) -> bool:
    """Clergy are never housed by the allocation engine."""
    return _normalize(participant_type) == PRIEST

def classify_participant(
    gender: Optional[str],
    age: Optional[int],
    participant_type: Optional[str]
) -> Optional[Category]:
    """
    Map a participant to its housing category.
    
    Returns None for clergy and for records that cannot be classified
    (missing or unknown gender, no age and no type). Callers tell the two
    apart with ``is_clergy``.
    """
    ptype = _normalize(participant_type)
    if ptype == PRIEST:
        return None
    
    gender = _normalize(gender)
    if gender not in GENDERS:
        return None
    
    if (age is not None and age < ADULT_AGE) or ptype == YOUTH_U18:
        return _YOUTH[gender]
    if (age is not None and age >= ADULT_AGE) or ptype in (CHAPERONE, YOUTH_O18):
        return _CHAPERONE[gender]
    return None

def effective_room_gender(
    room_gender: Optional[str],
    building_gender: Optional[str]
) -> Optional[str]:
    """
    Gender restriction in force for a room.
    
    Returns '' when the room and its building disagree, None when neither
    restricts the room.
    """
    room_gender = _normalize(room_gender)
    building_gender = _normalize(building_gender)
    if room_gender and building_gender and room_gender != building_gender:
        return ''
    return room_gender or building_gender

def is_clergy_room(housing_type_tag: Optional[str]) -> bool:
    return _normalize(housing_type_tag) == ROOM_TAG_CLERGY

def classify_room(
    gender: Optional[str],
    housing_type_tag: Optional[str],
    building_gender: Optional[str] = None,
    default_gender: Optional[str] = None
) -> Optional[Category]:
    """
    Map a room to the single category it serves, or None.
    
    A room without any gender restriction could serve either gender. It is
    only classified when the caller fixes ``default_gender`` for the whole
    run (an auto-assign filtered to one gender); otherwise it is ambiguous
    and never receives automatic assignments.
    """
    if is_clergy_room(housing_type_tag):
        return None
    tag = _normalize(housing_type_tag)
    
    room_gender = effective_room_gender(gender, building_gender)
    if room_gender == '':
        return None
    if room_gender is None:
        room_gender = _normalize(default_gender)
    if room_gender not in GENDERS:
        return None
    
    if tag == ROOM_TAG_YOUTH:
        return _YOUTH[room_gender]
    if tag in (None, ROOM_TAG_CHAPERONE, ROOM_TAG_GENERAL):
        return _CHAPERONE[room_gender]
    return None

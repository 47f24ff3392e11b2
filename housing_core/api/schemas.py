"""Request bodies of the housing API.

Choice fields (strategy, filters, housing and room types) are plain strings
here and validated by the allocation package, so a bad value surfaces as a
400 with the list of accepted values.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from ..config.allocation import DEFAULT_STRATEGY

class AutoAssignBody(BaseModel):
    strategy: str = Field(DEFAULT_STRATEGY, description="parish_together, fill_rooms or balance")
    gender_filter: str = Field("all", description="all, male or female")
    type_filter: str = Field("all", description="all, youth or chaperone")
    building_ids: List[int] = Field(default_factory=list, description="Limit the run to these buildings")
    only_unassigned: bool = Field(True, description="Leave people who already hold a bed alone")

class GroupAutoAssignBody(BaseModel):
    category: Optional[str] = Field(None, description="Limit the run to one housing category")
    strategy: str = "fill_rooms"
    only_unassigned: bool = True

class GroupAllocationBody(BaseModel):
    """Replace the rooms reserved to a group."""
    group_registration_id: Optional[int] = None
    room_ids: List[int] = Field(default_factory=list)

class AssignmentBody(BaseModel):
    bed_number: int
    participant_id: Optional[int] = None
    individual_registration_id: Optional[int] = None

class ParticipantBody(BaseModel):
    first_name: str
    last_name: str
    age: Optional[int] = Field(None, ge=0)
    gender: Optional[str] = None
    participant_type: Optional[str] = None
    housing_type: Optional[str] = None

class GroupCountsBody(BaseModel):
    """Counts of a group registration; every field is optional on edit."""
    housing_type: Optional[str] = None
    total_participants: Optional[int] = None
    on_campus_youth: Optional[int] = None
    on_campus_chaperones: Optional[int] = None
    off_campus_youth: Optional[int] = None
    off_campus_chaperones: Optional[int] = None
    day_pass_youth: Optional[int] = None
    day_pass_chaperones: Optional[int] = None

class GroupRegistrationBody(GroupCountsBody):
    group_name: str
    parish_name: Optional[str] = None
    participants: List[ParticipantBody] = Field(default_factory=list)

class IndividualRegistrationBody(BaseModel):
    first_name: str
    last_name: str
    housing_type: str
    room_type: Optional[str] = None
    age: Optional[int] = Field(None, ge=0)
    gender: Optional[str] = None

class CancelBody(BaseModel):
    hard_delete: bool = False

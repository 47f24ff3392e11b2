"""Auto-assign and manual bed assignment routes."""

from typing import Dict, Optional

from fastapi import APIRouter, Depends

from ...db import db, DatabaseError
from ...allocation import (
    HousingError,
    AutoAssignRequest,
    auto_assign_event,
    auto_assign_group,
    assign_occupant,
    unassign_occupant,
)
from ...allocation.permissions import HOUSING_MANAGE
from ..dependencies import require_capability, current_user_id
from ..errors import http_error
from ..schemas import AutoAssignBody, GroupAutoAssignBody, AssignmentBody

router = APIRouter(tags=["allocation"], dependencies=[Depends(require_capability(HOUSING_MANAGE))])

@router.post("/events/{event_id}/auto-assign", response_model=Dict)
async def auto_assign_event_rooms(
    event_id: int,
    body: AutoAssignBody,
    user_id: Optional[str] = Depends(current_user_id)
):
    """
    Place every unassigned on-campus participant and individual of an event.

    People without a free bed in a room of their category are counted as
    skipped; that is a normal outcome, not an error.
    """
    try:
        request = AutoAssignRequest(
            strategy=body.strategy,
            gender_filter=body.gender_filter,
            type_filter=body.type_filter,
            building_ids=body.building_ids,
            only_unassigned=body.only_unassigned,
            assigned_by=user_id,
        )
        with db.session() as session:
            result = auto_assign_event(session, event_id, request)
            return {"success": True, **result.to_dict()}
    except (HousingError, DatabaseError) as e:
        raise http_error(e) from e

@router.post("/groups/{group_id}/auto-assign", response_model=Dict)
async def auto_assign_group_rooms(
    group_id: int,
    body: GroupAutoAssignBody,
    user_id: Optional[str] = Depends(current_user_id)
):
    """Place a group's participants into the rooms reserved to the group."""
    try:
        with db.session() as session:
            result = auto_assign_group(
                session,
                group_id,
                category=body.category,
                strategy=body.strategy,
                only_unassigned=body.only_unassigned,
                assigned_by=user_id,
            )
            return {"success": True, **result.to_dict()}
    except (HousingError, DatabaseError) as e:
        raise http_error(e) from e

@router.post("/rooms/{room_id}/assignments", response_model=Dict, status_code=201)
async def create_assignment(
    room_id: int,
    body: AssignmentBody,
    user_id: Optional[str] = Depends(current_user_id)
):
    try:
        with db.session() as session:
            return assign_occupant(
                session,
                room_id,
                body.bed_number,
                participant_id=body.participant_id,
                individual_id=body.individual_registration_id,
                assigned_by=user_id,
            )
    except (HousingError, DatabaseError) as e:
        raise http_error(e) from e

@router.delete("/assignments/{assignment_id}", response_model=Dict)
async def delete_assignment(assignment_id: int):
    try:
        with db.session() as session:
            return {"success": True, "assignment": unassign_occupant(session, assignment_id)}
    except (HousingError, DatabaseError) as e:
        raise http_error(e) from e

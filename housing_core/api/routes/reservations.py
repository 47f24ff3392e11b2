"""Group room reservation routes."""

from typing import Dict, List

from fastapi import APIRouter, Depends

from ...db import db, DatabaseError
from ...allocation import HousingError, reserve_rooms, release_rooms, list_group_allocations
from ...allocation.errors import NotFoundError
from ...allocation.permissions import HOUSING_VIEW, HOUSING_MANAGE
from ...models import Event, GroupRegistration
from ..dependencies import require_capability
from ..errors import http_error
from ..schemas import GroupAllocationBody

router = APIRouter(tags=["reservations"])

@router.get(
    "/events/{event_id}/group-allocations",
    response_model=List[Dict],
    dependencies=[Depends(require_capability(HOUSING_VIEW))]
)
async def get_group_allocations(event_id: int):
    """On-campus groups of an event with their category counts and reserved rooms."""
    try:
        with db.session() as session:
            if session.get(Event, event_id) is None:
                raise NotFoundError(f"Event {event_id} not found")
            return list_group_allocations(session, event_id)
    except (HousingError, DatabaseError) as e:
        raise http_error(e) from e

@router.post(
    "/events/{event_id}/group-allocations",
    response_model=Dict,
    dependencies=[Depends(require_capability(HOUSING_MANAGE))]
)
async def set_group_allocations(event_id: int, body: GroupAllocationBody):
    """
    Replace the rooms reserved to a group.

    Rooms of another event or held by another group reject the whole
    request with 409 and the list of conflicting rooms.
    """
    try:
        with db.session() as session:
            return reserve_rooms(session, event_id, body.group_registration_id, body.room_ids)
    except (HousingError, DatabaseError) as e:
        raise http_error(e) from e

@router.delete(
    "/groups/{group_id}/rooms",
    response_model=Dict,
    dependencies=[Depends(require_capability(HOUSING_MANAGE))]
)
async def release_group_rooms(group_id: int):
    try:
        with db.session() as session:
            if session.get(GroupRegistration, group_id) is None:
                raise NotFoundError(f"Group registration {group_id} not found")
            return {"success": True, "released": release_rooms(session, group_id)}
    except (HousingError, DatabaseError) as e:
        raise http_error(e) from e

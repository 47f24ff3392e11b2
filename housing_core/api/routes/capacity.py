"""Capacity ledger and reconciliation routes."""

from typing import Dict, Optional

from fastapi import APIRouter, Depends

from ...db import db, DatabaseError
from ...allocation import (
    HousingError,
    check_capacity,
    check_event_capacity,
    available_options,
    ledger_snapshot,
    recalculate_capacity,
    recalculate_room_occupancy,
)
from ...allocation.errors import NotFoundError
from ...allocation.permissions import HOUSING_VIEW, CAPACITY_RECALCULATE
from ...models import Event
from ..dependencies import require_capability
from ..errors import http_error

router = APIRouter(tags=["capacity"])

@router.get(
    "/events/{event_id}/capacity",
    response_model=Dict,
    dependencies=[Depends(require_capability(HOUSING_VIEW))]
)
async def get_capacity(
    event_id: int,
    housing_type: Optional[str] = None,
    room_type: Optional[str] = None,
    party_size: int = 1
):
    """
    Current counters of an event and the options still open.

    With ``housing_type`` the response also answers whether ``party_size``
    more people fit.
    """
    try:
        with db.session() as session:
            event = session.get(Event, event_id)
            if event is None:
                raise NotFoundError(f"Event {event_id} not found")
            response = {
                "event": event.to_dict(),
                "ledger": ledger_snapshot(event),
                "available_options": available_options(event.settings),
            }
            if housing_type:
                response["check"] = check_capacity(event.settings, housing_type, room_type, party_size).to_dict()
                response["event_check"] = check_event_capacity(event, party_size).to_dict()
            return response
    except (HousingError, DatabaseError) as e:
        raise http_error(e) from e

@router.post(
    "/events/{event_id}/recalculate-capacity",
    response_model=Dict,
    dependencies=[Depends(require_capability(CAPACITY_RECALCULATE))]
)
async def recalculate_event_capacity(event_id: int):
    """Rebuild every remaining counter of an event from its active registrations."""
    try:
        with db.session() as session:
            return recalculate_capacity(session, event_id).to_dict()
    except (HousingError, DatabaseError) as e:
        raise http_error(e) from e

@router.post(
    "/events/{event_id}/recalculate-room-occupancy",
    response_model=Dict,
    dependencies=[Depends(require_capability(CAPACITY_RECALCULATE))]
)
async def recalculate_event_room_occupancy(event_id: int):
    try:
        with db.session() as session:
            fixed = recalculate_room_occupancy(session, event_id)
            return {"success": True, "fixed": len(fixed), "rooms": fixed}
    except (HousingError, DatabaseError) as e:
        raise http_error(e) from e

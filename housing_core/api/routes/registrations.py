"""Registration lifecycle routes."""

from typing import Dict, Optional

from fastapi import APIRouter, Depends

from ...db import db, DatabaseError
from ...allocation import (
    HousingError,
    register_group,
    register_individual,
    update_group_counts,
    cancel_group_registration,
    cancel_individual_registration,
)
from ...allocation.errors import ValidationError
from ...allocation.permissions import REGISTRATIONS_EDIT
from ..dependencies import require_capability
from ..errors import http_error
from ..schemas import (
    GroupRegistrationBody,
    IndividualRegistrationBody,
    GroupCountsBody,
    CancelBody,
)

router = APIRouter(tags=["registrations"], dependencies=[Depends(require_capability(REGISTRATIONS_EDIT))])

CANCEL_HANDLERS = {
    "group": cancel_group_registration,
    "individual": cancel_individual_registration,
}

@router.post("/events/{event_id}/group-registrations", response_model=Dict, status_code=201)
async def create_group_registration(event_id: int, body: GroupRegistrationBody):
    """Register a group; 409 when a capacity dimension cannot hold it."""
    try:
        with db.session() as session:
            group = register_group(session, event_id, body.model_dump())
            return {
                **group.to_dict(),
                "participants": [p.to_dict() for p in group.participants],
            }
    except (HousingError, DatabaseError) as e:
        raise http_error(e) from e

@router.post("/events/{event_id}/individual-registrations", response_model=Dict, status_code=201)
async def create_individual_registration(event_id: int, body: IndividualRegistrationBody):
    try:
        with db.session() as session:
            return register_individual(session, event_id, body.model_dump()).to_dict()
    except (HousingError, DatabaseError) as e:
        raise http_error(e) from e

@router.patch("/group-registrations/{group_id}", response_model=Dict)
async def edit_group_counts(group_id: int, body: GroupCountsBody):
    """Change a group's counts; only the difference moves through the ledger."""
    try:
        with db.session() as session:
            return update_group_counts(session, group_id, **body.model_dump(exclude_unset=True)).to_dict()
    except (HousingError, DatabaseError) as e:
        raise http_error(e) from e

@router.post("/registrations/{registration_type}/{registration_id}/cancel", response_model=Dict)
async def cancel_registration(registration_type: str, registration_id: int, body: Optional[CancelBody] = None):
    """Cancel a group or individual registration and give its spots back."""
    try:
        handler = CANCEL_HANDLERS.get(registration_type)
        if handler is None:
            raise ValidationError(
                f"Unknown registration type '{registration_type}'. Expected group or individual"
            )
        hard_delete = body.hard_delete if body else False
        with db.session() as session:
            return {"success": True, **handler(session, registration_id, hard_delete=hard_delete)}
    except (HousingError, DatabaseError) as e:
        raise http_error(e) from e

"""Request dependencies: caller role checks and caller identity."""

from typing import Optional

from fastapi import Header, HTTPException

from ..allocation.permissions import has_capability

def require_capability(capability: str):
    """Dependency rejecting callers whose ``X-User-Role`` lacks ``capability``."""
    async def checker(x_user_role: Optional[str] = Header(None)) -> str:
        if not has_capability(x_user_role, capability):
            raise HTTPException(
                status_code=403,
                detail=f"Role '{x_user_role or 'anonymous'}' is not allowed to use {capability}"
            )
        return x_user_role
    return checker

async def current_user_id(x_user_id: Optional[str] = Header(None)) -> Optional[str]:
    """Caller id recorded as ``assigned_by`` on assignments."""
    return x_user_id

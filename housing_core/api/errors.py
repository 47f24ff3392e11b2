"""Translation of domain and database errors into HTTP responses."""

import logging

from fastapi import HTTPException

from ..allocation.errors import (
    ValidationError, NotFoundError, ConflictError, CapacityExceededError,
)

logger = logging.getLogger(__name__)

def http_error(e: Exception) -> HTTPException:
    if isinstance(e, ValidationError):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, ConflictError):
        return HTTPException(status_code=409, detail={'message': str(e), 'conflicts': e.conflicts})
    if isinstance(e, CapacityExceededError):
        return HTTPException(
            status_code=409,
            detail={'message': str(e), 'dimension': e.dimension, 'remaining': e.remaining}
        )
    logger.error(f"Database error: {e}")
    return HTTPException(status_code=500, detail=f"Database error: {str(e)}")

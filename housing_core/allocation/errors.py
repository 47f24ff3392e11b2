"""Domain errors raised by the housing core.

Capacity exhaustion during auto-assign is not an error: it is reported as a
skipped outcome. These exceptions cover the cases that reject a request
before anything is written.
"""

from typing import Any, Dict, List, Optional

class HousingError(Exception):
    """Base class for housing domain errors."""
    pass

class ValidationError(HousingError):
    """Bad input (unknown strategy, missing id, invalid bed number...)."""
    pass

class NotFoundError(HousingError):
    """A referenced event, group, room or registration does not exist."""
    pass

class ConflictError(HousingError):
    """
    The request collides with existing state.
    
    Attributes:
        conflicts: Structured description of every colliding record
    """
    
    def __init__(self, message: str, conflicts: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.conflicts = conflicts or []

class CapacityExceededError(HousingError):
    """A registration asks for more spots than a capacity dimension has left."""
    
    def __init__(self, message: str, dimension: str, remaining: Optional[int] = None):
        super().__init__(message)
        self.dimension = dimension
        self.remaining = remaining

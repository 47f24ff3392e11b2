"""Housing allocation package initialization.

This module exposes the public interface of the allocation package: the
capacity ledger, the room allocation engine, group room reservations,
reconciliation jobs and the registration lifecycle hooks.
"""

from .errors import (
    HousingError,
    ValidationError,
    NotFoundError,
    ConflictError,
    CapacityExceededError,
)
from .classifier import Category, classify_participant, classify_room, is_clergy, is_clergy_room
from .capacity import (
    Unlimited,
    Bounded,
    UNLIMITED,
    CapacityCheck,
    check_capacity,
    check_event_capacity,
    decrement_capacity,
    increment_capacity,
    decrement_event_capacity,
    increment_event_capacity,
    available_options,
    ledger_snapshot,
)
from .counting import HousingCounts, group_housing_counts, group_party_size
from .engine import (
    Strategy,
    AutoAssignRequest,
    AllocationResult,
    auto_assign_event,
    auto_assign_group,
)
from .reservations import reserve_rooms, release_rooms, list_group_allocations
from .assignments import assign_occupant, unassign_occupant
from .reconciliation import CapacityReport, recalculate_capacity, recalculate_room_occupancy
from .lifecycle import (
    register_group,
    register_individual,
    update_group_counts,
    cancel_group_registration,
    cancel_individual_registration,
)
from .permissions import ROLE_CAPABILITIES, capabilities_for, has_capability

__all__ = [
    # Errors
    'HousingError',
    'ValidationError',
    'NotFoundError',
    'ConflictError',
    'CapacityExceededError',

    # Classification
    'Category',
    'classify_participant',
    'classify_room',
    'is_clergy',
    'is_clergy_room',

    # Capacity ledger
    'Unlimited',
    'Bounded',
    'UNLIMITED',
    'CapacityCheck',
    'check_capacity',
    'check_event_capacity',
    'decrement_capacity',
    'increment_capacity',
    'decrement_event_capacity',
    'increment_event_capacity',
    'available_options',
    'ledger_snapshot',
    'HousingCounts',
    'group_housing_counts',
    'group_party_size',

    # Allocation
    'Strategy',
    'AutoAssignRequest',
    'AllocationResult',
    'auto_assign_event',
    'auto_assign_group',
    'reserve_rooms',
    'release_rooms',
    'list_group_allocations',
    'assign_occupant',
    'unassign_occupant',

    # Reconciliation
    'CapacityReport',
    'recalculate_capacity',
    'recalculate_room_occupancy',

    # Lifecycle
    'register_group',
    'register_individual',
    'update_group_counts',
    'cancel_group_registration',
    'cancel_individual_registration',

    # Permissions
    'ROLE_CAPABILITIES',
    'capabilities_for',
    'has_capability',
]

"""Role to capability lookup for housing operations.

Roles are plain strings coming from the caller (the ``X-User-Role`` header
for the HTTP API). An unknown or missing role has no capabilities.
"""

from typing import Dict, FrozenSet, Optional

HOUSING_VIEW = "housing.view"
HOUSING_MANAGE = "housing.manage"
REGISTRATIONS_EDIT = "registrations.edit"
CAPACITY_RECALCULATE = "capacity.recalculate"

CAPABILITIES = frozenset([HOUSING_VIEW, HOUSING_MANAGE, REGISTRATIONS_EDIT, CAPACITY_RECALCULATE])

ROLE_CAPABILITIES: Dict[str, FrozenSet[str]] = {
    'master_admin': CAPABILITIES,
    'org_admin': CAPABILITIES,
    'event_manager': frozenset([HOUSING_VIEW, HOUSING_MANAGE, REGISTRATIONS_EDIT]),
    'poros_coordinator': frozenset([HOUSING_VIEW, HOUSING_MANAGE]),
    'finance_manager': frozenset([HOUSING_VIEW]),
    'staff': frozenset([HOUSING_VIEW]),
    'group_leader': frozenset(),
}

def capabilities_for(role: Optional[str]) -> FrozenSet[str]:
    if not role:
        return frozenset()
    return ROLE_CAPABILITIES.get(role.strip().lower(), frozenset())

def has_capability(role: Optional[str], capability: str) -> bool:
    return capability in capabilities_for(role)

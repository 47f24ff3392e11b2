from housing_core.allocation.permissions import (
    HOUSING_VIEW, HOUSING_MANAGE, REGISTRATIONS_EDIT, CAPACITY_RECALCULATE,
    capabilities_for, has_capability,
)

def test_admins_have_everything():
    for role in ("master_admin", "org_admin"):
        assert capabilities_for(role) == {HOUSING_VIEW, HOUSING_MANAGE, REGISTRATIONS_EDIT, CAPACITY_RECALCULATE}

def test_housing_coordinator_cannot_recalculate():
    assert has_capability("poros_coordinator", HOUSING_MANAGE)
    assert not has_capability("poros_coordinator", CAPACITY_RECALCULATE)
    assert not has_capability("poros_coordinator", REGISTRATIONS_EDIT)

def test_staff_is_read_only():
    assert capabilities_for("staff") == {HOUSING_VIEW}

def test_unknown_or_missing_role_has_nothing():
    assert capabilities_for("intruder") == frozenset()
    assert capabilities_for(None) == frozenset()
    assert not has_capability("", HOUSING_VIEW)

def test_role_lookup_ignores_case():
    assert has_capability(" Event_Manager ", REGISTRATIONS_EDIT)

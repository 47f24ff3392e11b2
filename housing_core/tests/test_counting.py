from housing_core.allocation.counting import (
    BUCKETED, COARSE,
    group_housing_counts, group_party_size, has_bucket_counts, room_type_of,
)
from housing_core.models import GroupRegistration, IndividualRegistration

def test_coarse_counts_use_housing_type():
    group = GroupRegistration(housing_type="off_campus", total_participants=12)

    counts = group_housing_counts(group)

    assert counts.source == COARSE
    assert counts.get("off_campus") == 12
    assert counts.get("on_campus") == 0
    assert group_party_size(group) == 12

def test_bucketed_counts_win_over_coarse():
    group = GroupRegistration(
        housing_type="on_campus",
        total_participants=10,
        on_campus_youth=6,
        on_campus_chaperones=1,
        day_pass_youth=3,
    )

    counts = group_housing_counts(group)

    # Never both: the coarse 10 on campus is ignored
    assert counts.source == BUCKETED
    assert counts.get("on_campus") == 7
    assert counts.get("day_pass") == 3
    assert counts.total == 10

def test_zero_bucket_still_selects_bucketed():
    group = GroupRegistration(housing_type="on_campus", total_participants=5, off_campus_youth=0)

    assert has_bucket_counts(group)
    assert group_housing_counts(group).total == 0

def test_party_size_falls_back_to_buckets():
    group = GroupRegistration(housing_type=None, total_participants=None,
                              on_campus_youth=4, off_campus_chaperones=2)

    assert group_party_size(group) == 6

def test_empty_group_counts_nothing():
    group = GroupRegistration(housing_type=None, total_participants=None)

    assert group_housing_counts(group).total == 0
    assert group_party_size(group) == 0

def test_items_skip_empty_housing_types():
    group = GroupRegistration(housing_type="day_pass", total_participants=3)

    assert group_housing_counts(group).items() == [("day_pass", 3)]

def test_room_type_only_counts_on_campus():
    assert room_type_of(IndividualRegistration(housing_type="on_campus", room_type="double")) == "double"
    assert room_type_of(IndividualRegistration(housing_type="off_campus", room_type="double")) is None

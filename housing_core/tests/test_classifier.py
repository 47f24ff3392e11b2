import pytest

from housing_core.allocation.classifier import (
    Category, classify_participant, classify_room, effective_room_gender, is_clergy,
)

@pytest.mark.parametrize("gender, age, participant_type, expected", [
    ("male", 15, None, Category.MALE_YOUTH),
    ("female", 17, "youth_u18", Category.FEMALE_YOUTH),
    ("Male", None, "youth_u18", Category.MALE_YOUTH),
    ("male", 18, None, Category.MALE_CHAPERONE),
    ("female", 42, "chaperone", Category.FEMALE_CHAPERONE),
    ("female", None, "youth_o18", Category.FEMALE_CHAPERONE),
    ("male", None, "chaperone", Category.MALE_CHAPERONE),
])
def test_classify_participant(gender, age, participant_type, expected):
    assert classify_participant(gender, age, participant_type) == expected

@pytest.mark.parametrize("gender, age, participant_type", [
    (None, 15, None),
    ("", 30, "chaperone"),
    ("other", 16, None),
    ("male", None, None),
])
def test_unclassifiable_participants(gender, age, participant_type):
    assert classify_participant(gender, age, participant_type) is None

def test_clergy_never_classified():
    assert classify_participant("male", 50, "priest") is None
    assert is_clergy("priest")
    assert is_clergy(" Priest ")
    assert not is_clergy("chaperone")
    assert not is_clergy(None)

def test_age_wins_over_youth_o18_type():
    # Under 18 by age is youth even when the form said otherwise
    assert classify_participant("male", 16, "youth_o18") == Category.MALE_YOUTH

@pytest.mark.parametrize("gender, tag, expected", [
    ("male", "youth_u18", Category.MALE_YOUTH),
    ("female", "youth_u18", Category.FEMALE_YOUTH),
    ("male", "chaperone_18plus", Category.MALE_CHAPERONE),
    ("female", "general", Category.FEMALE_CHAPERONE),
    ("female", None, Category.FEMALE_CHAPERONE),
])
def test_classify_room(gender, tag, expected):
    assert classify_room(gender, tag) == expected

def test_clergy_rooms_are_excluded():
    assert classify_room("male", "clergy") is None
    assert classify_room("male", "clergy", default_gender="male") is None

def test_room_without_gender_needs_run_gender():
    assert classify_room(None, "youth_u18") is None
    assert classify_room(None, "youth_u18", default_gender="female") == Category.FEMALE_YOUTH

def test_building_gender_applies_to_rooms():
    assert classify_room(None, "general", building_gender="male") == Category.MALE_CHAPERONE
    assert effective_room_gender("female", "male") == ''
    assert classify_room("female", "general", building_gender="male") is None

def test_unknown_room_tag_is_excluded():
    assert classify_room("male", "storage") is None

def test_category_properties():
    assert Category.MALE_YOUTH.gender == "male"
    assert Category.FEMALE_CHAPERONE.gender == "female"
    assert Category.FEMALE_YOUTH.is_youth
    assert not Category.MALE_CHAPERONE.is_youth

"""Housing and allocation vocabulary shared by the ledger, the engine and the API."""

# Housing types (top-level lodging category of a registration)
ON_CAMPUS = "on_campus"
OFF_CAMPUS = "off_campus"
DAY_PASS = "day_pass"
HOUSING_TYPES = [ON_CAMPUS, OFF_CAMPUS, DAY_PASS]

# Room types, tracked only for on-campus individual registrations
ROOM_TYPES = ["single", "double", "triple", "quad"]

# Settings column prefix per capacity dimension
HOUSING_DIMENSION_COLUMNS = {
    ON_CAMPUS: "on_campus",
    OFF_CAMPUS: "off_campus",
    DAY_PASS: "day_pass",
}
ROOM_DIMENSION_COLUMNS = {
    "single": "single_room",
    "double": "double_room",
    "triple": "triple_room",
    "quad": "quad_room",
}

# Bucket fields on a group registration, per housing type
HOUSING_BUCKET_FIELDS = {
    ON_CAMPUS: ("on_campus_youth", "on_campus_chaperones"),
    OFF_CAMPUS: ("off_campus_youth", "off_campus_chaperones"),
    DAY_PASS: ("day_pass_youth", "day_pass_chaperones"),
}

# Participant types
YOUTH_U18 = "youth_u18"
YOUTH_O18 = "youth_o18"
CHAPERONE = "chaperone"
PRIEST = "priest"
PARTICIPANT_TYPES = [YOUTH_U18, YOUTH_O18, CHAPERONE, PRIEST]

# Room housing-type tags
ROOM_TAG_YOUTH = "youth_u18"
ROOM_TAG_CHAPERONE = "chaperone_18plus"
ROOM_TAG_GENERAL = "general"
ROOM_TAG_CLERGY = "clergy"

GENDERS = ["male", "female"]
ADULT_AGE = 18

# Auto-assign options
STRATEGIES = ["parish_together", "fill_rooms", "balance"]
DEFAULT_STRATEGY = "parish_together"
GENDER_FILTERS = ["all", "male", "female"]
TYPE_FILTERS = ["all", "youth", "chaperone"]

# Affiliation used by parish_together when a group has no parish name
UNKNOWN_AFFILIATION = "Unknown"

# Registration status
STATUS_ACTIVE = "active"
STATUS_CANCELLED = "cancelled"

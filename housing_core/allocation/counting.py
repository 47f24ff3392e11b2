"""Party-size counting for group registrations.

A group registration records its size twice: coarsely (``housing_type`` +
``total_participants``) and, when the form collected it, per housing bucket
(``on_campus_youth``, ``on_campus_chaperones``, ...). Exactly one of the two
is used for the ledger:

    bucketed wins whenever any bucket field is set (even to 0);
    otherwise the whole coarse total is attributed to the coarse housing type.

Applying both would count the same people twice.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional

from ..config.allocation import ON_CAMPUS, HOUSING_TYPES, HOUSING_BUCKET_FIELDS

BUCKETED = "bucketed"
COARSE = "coarse"

@dataclass
class HousingCounts:
    """People per housing type, and which representation they came from."""
    counts: Dict[str, int] = field(default_factory=lambda: {h: 0 for h in HOUSING_TYPES})
    source: str = COARSE
    
    def get(self, housing_type: str) -> int:
        return self.counts.get(housing_type, 0)
    
    @property
    def total(self) -> int:
        return sum(self.counts.values())
    
    def items(self):
        return [(h, self.counts[h]) for h in HOUSING_TYPES if self.counts[h]]

def has_bucket_counts(registration) -> bool:
    return any(
        getattr(registration, name) is not None
        for names in HOUSING_BUCKET_FIELDS.values()
        for name in names
    )

def bucketed_counts(registration) -> HousingCounts:
    counts = HousingCounts(source=BUCKETED)
    for housing_type, names in HOUSING_BUCKET_FIELDS.items():
        counts.counts[housing_type] = sum(getattr(registration, name) or 0 for name in names)
    return counts

def coarse_counts(registration) -> HousingCounts:
    counts = HousingCounts(source=COARSE)
    if registration.housing_type in counts.counts:
        counts.counts[registration.housing_type] = registration.total_participants or 0
    return counts

def group_housing_counts(registration) -> HousingCounts:
    """People per housing type for a group, following the precedence rule above."""
    if has_bucket_counts(registration):
        return bucketed_counts(registration)
    return coarse_counts(registration)

def group_party_size(registration) -> int:
    """Total people for the event-wide counter.
    
    ``total_participants`` is authoritative when present; a bucket-only
    registration falls back to the sum of its buckets.
    """
    if registration.total_participants is not None:
        return registration.total_participants
    if has_bucket_counts(registration):
        return bucketed_counts(registration).total
    return 0

def room_type_of(registration) -> Optional[str]:
    """Room type counted for an individual registration (on campus only)."""
    if registration.housing_type == ON_CAMPUS:
        return registration.room_type
    return None

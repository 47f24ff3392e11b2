"""Routes package initialization."""

from . import (
    allocation,
    reservations,
    capacity,
    registrations,
    health
)

__all__ = [
    'allocation',
    'reservations',
    'capacity',
    'registrations',
    'health'
]

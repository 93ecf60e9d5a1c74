"""Test fixtures for pytest.

This module re-exports the test models and seed helpers for easier importing.
"""

from .tree_models import (
    CAR_ROWS,
    VEHICLE_ROWS,
    Car,
    Vehicle,
    coords,
    seed_cars,
    seed_vehicles,
    snapshot,
)

__all__ = [
    "CAR_ROWS",
    "VEHICLE_ROWS",
    "Car",
    "Vehicle",
    "coords",
    "seed_cars",
    "seed_vehicles",
    "snapshot",
]

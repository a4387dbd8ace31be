"""
Shared test fixtures

Managed intersections and fleet records mirror config/intersections.yaml
and config/fleet.yaml so tests do not depend on the files on disk.
"""

import copy

import pytest

from green_corridor.interlock import IntersectionRegistry
from green_corridor.security import AuthorizedFleet


FOUR_WAY_SIGNALS = {
    "N": {"direction": "North", "default_state": "RED"},
    "S": {"direction": "South", "default_state": "RED"},
    "E": {"direction": "East", "default_state": "RED"},
    "W": {"direction": "West", "default_state": "RED"},
}

PERPENDICULAR_GROUPS = {
    "N": ["E", "W"],
    "S": ["E", "W"],
    "E": ["N", "S"],
    "W": ["N", "S"],
}

INTERSECTIONS_CONFIG = {
    "INT-MAIN": {
        "name": "C-Scheme Area Crossing",
        "location": {"lat": 26.8860, "lon": 75.7880},
        "signals": FOUR_WAY_SIGNALS,
        "conflict_groups": PERPENDICULAR_GROUPS,
    },
    "INT-NORTH": {
        "name": "Sindhi Camp Bus Stand Crossing",
        "location": {"lat": 26.9350, "lon": 75.7860},
        "signals": FOUR_WAY_SIGNALS,
        "conflict_groups": PERPENDICULAR_GROUPS,
    },
    "INT-EAST": {
        "name": "Jaipur Junction Stn Crossing",
        "location": {"lat": 26.9124, "lon": 75.8050},
        "signals": FOUR_WAY_SIGNALS,
        "conflict_groups": PERPENDICULAR_GROUPS,
    },
}

FLEET_CONFIG = {
    "AMB-001": {"name": "City Hospital Ambulance 1", "operator": "City Hospital", "licensed_since": "2022-01-15"},
    "AMB-002": {"name": "City Hospital Ambulance 2", "operator": "City Hospital", "licensed_since": "2022-03-20"},
}

SECURITY_TOKEN = "TEST_TOKEN"


@pytest.fixture
def intersections_config():
    return copy.deepcopy(INTERSECTIONS_CONFIG)


@pytest.fixture
def registry(intersections_config):
    return IntersectionRegistry.from_config(intersections_config)


@pytest.fixture
def fleet():
    return AuthorizedFleet(copy.deepcopy(FLEET_CONFIG))

"""
Time-To-Intersection evaluation

Pure function of position, target and smoothed speed. Distances are
reported in centimetres and TTI in centiseconds; the thresholds are
compared against the reported values so boundary cases trigger.
"""

import math
from dataclasses import dataclass
from typing import Optional

from green_corridor.geo import haversine_m


@dataclass(frozen=True)
class TTIResult:
    distance_m: float
    tti_s: float                          # math.inf while stationary
    should_trigger: bool

    @property
    def tti_or_none(self) -> Optional[float]:
        """TTI for JSON output (inf is not representable)"""
        return None if math.isinf(self.tti_s) else self.tti_s


def evaluate_tti(
    lat: float,
    lon: float,
    target_lat: float,
    target_lon: float,
    smoothed_speed: float,
    proximity_threshold_m: float,
    tti_threshold_s: float
) -> TTIResult:
    """
    Evaluate distance, TTI and the trigger condition for one target

    A trigger requires the vehicle to be both close enough and arriving
    soon enough. Zero or negative speed never triggers.
    """
    distance = round(haversine_m(lat, lon, target_lat, target_lon), 2)

    if smoothed_speed <= 0:
        return TTIResult(distance_m=distance, tti_s=math.inf, should_trigger=False)

    tti = round(distance / smoothed_speed, 2)
    should_trigger = distance <= proximity_threshold_m and tti <= tti_threshold_s

    return TTIResult(distance_m=distance, tti_s=tti, should_trigger=should_trigger)

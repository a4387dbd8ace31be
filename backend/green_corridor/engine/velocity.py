"""
Velocity Smoothing

Fixed-window moving average over raw GPS-derived speeds, so a single noisy
fix cannot fire a trigger on its own.
"""

from collections import deque
from typing import Deque


DEFAULT_WINDOW = 5


class VelocitySmoother:
    """
    Per-vehicle moving average

    Usage:
        smoother = VelocitySmoother(window=5)
        smoothed = smoother.push(12.4)
    """

    def __init__(self, window: int = DEFAULT_WINDOW):
        if window < 1:
            raise ValueError(f"Smoothing window must be >= 1, got {window}")
        self.window = window
        self._samples: Deque[float] = deque(maxlen=window)

    def push(self, raw_speed: float) -> float:
        """Add a raw speed (m/s), evicting the oldest when full"""
        self._samples.append(raw_speed)
        return self.average()

    def average(self) -> float:
        if not self._samples:
            return 0.0
        return sum(self._samples) / len(self._samples)

    def reset(self):
        self._samples.clear()

    def __len__(self) -> int:
        return len(self._samples)

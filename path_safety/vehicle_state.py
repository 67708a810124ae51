# -*- coding: utf-8 -*-
"""
================================================================================
Time-stamped pose samples for ego candidates and predicted objects
================================================================================

PoseSample (time, x, y, yaw, velocity):
- time: 軌道先頭からの相対時刻 [s]
- x, y: ワールド座標位置 [m]
- yaw: 方位角 [rad]
- velocity: 縦方向速度 [m/s]
- z: 高さ [m] (2D判定では未使用)

Trajectory は PoseSample のタプル。時刻は非減少でなければならない。

Version: 1.0
================================================================================
"""

import math
from dataclasses import dataclass
from typing import Iterable, Sequence, Tuple

import numpy as np


@dataclass(frozen=True)
class PoseSample:
    """Immutable pose + velocity sample at a single instant."""
    time: float
    x: float
    y: float
    yaw: float = 0.0
    velocity: float = 0.0
    z: float = 0.0

    @property
    def position(self) -> np.ndarray:
        """3D position [m]"""
        return np.array([self.x, self.y, self.z])

    def is_finite(self) -> bool:
        return all(math.isfinite(v) for v in (self.time, self.x, self.y, self.yaw, self.velocity, self.z))

    def __repr__(self) -> str:
        return (f"PoseSample(t={self.time:.2f}s, x={self.x:.2f}m, y={self.y:.2f}m, "
                f"yaw={self.yaw:.3f}rad, v={self.velocity:.2f}m/s)")


Trajectory = Tuple[PoseSample, ...]


def make_trajectory(samples: Iterable[PoseSample]) -> Trajectory:
    """Freeze an iterable of samples into a Trajectory snapshot."""
    return tuple(samples)


def trajectory_times(trajectory: Sequence[PoseSample]) -> np.ndarray:
    return np.array([p.time for p in trajectory], dtype=float)


def is_time_monotonic(trajectory: Sequence[PoseSample]) -> bool:
    """
    Check that sample times are finite and non-decreasing.

    Duplicate times are allowed; any decrease makes the trajectory invalid.
    """
    times = trajectory_times(trajectory)
    if not np.all(np.isfinite(times)):
        return False
    if len(times) < 2:
        return True
    return bool(np.all(np.diff(times) >= 0.0))


def is_valid_trajectory(trajectory: Sequence[PoseSample]) -> bool:
    """Non-empty, finite, and time-monotonic."""
    if len(trajectory) == 0:
        return False
    if not all(p.is_finite() for p in trajectory):
        return False
    return is_time_monotonic(trajectory)

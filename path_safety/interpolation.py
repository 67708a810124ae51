# -*- coding: utf-8 -*-
"""
path_safety/interpolation.py

時刻指定ポーズ補間 (Time-Indexed Pose Interpolator)
====================================================

軌道 (非減少時刻の PoseSample 列) から任意時刻のポーズ・速度を求める。

- 位置・速度: 線形補間
- 方位: 最短弧の回転補間 (scipy Slerp)
- ブレークポイント時刻と一致する場合はサンプルをそのまま返す
- 空軌道、範囲外時刻、時刻逆行を含む軌道は None (fail closed)
"""

import math
from typing import List, Optional, Sequence

import numpy as np
from scipy.spatial.transform import Rotation, Slerp

from .vehicle_state import PoseSample, Trajectory, is_time_monotonic, trajectory_times

# Segments shorter than this are treated as zero-length
MIN_SEGMENT_DURATION = 1e-9


def _slerp_yaw(t0: float, yaw0: float, t1: float, yaw1: float, query_time: float) -> float:
    # one row per rotation: shape (2, 1) for the single "z" axis
    rotations = Rotation.from_euler("z", [[yaw0], [yaw1]])
    slerp = Slerp([t0, t1], rotations)
    return float(slerp([query_time]).as_euler("xyz")[0, 2])


def interpolate_pose(trajectory: Sequence[PoseSample], query_time: float) -> Optional[PoseSample]:
    """
    Resolve a pose+velocity sample at query_time.

    Args:
        trajectory: 時刻非減少の PoseSample 列
        query_time: 問い合わせ時刻 [s]

    Returns:
        補間された PoseSample、解決できない場合は None

    Example:
        >>> path = (PoseSample(0.0, 0.0, 0.0, velocity=1.0),
        ...         PoseSample(1.0, 1.0, 0.0, velocity=2.0))
        >>> interpolate_pose(path, 0.5).x
        0.5
    """
    if len(trajectory) == 0 or not math.isfinite(query_time):
        return None
    if not is_time_monotonic(trajectory):
        return None

    times = trajectory_times(trajectory)
    if query_time < times[0] or query_time > times[-1]:
        return None

    # First sample whose time >= query_time
    idx = int(np.searchsorted(times, query_time, side="left"))
    upper = trajectory[idx]
    if upper.time == query_time:
        return upper

    lower = trajectory[idx - 1]
    duration = upper.time - lower.time
    if duration < MIN_SEGMENT_DURATION:
        return None

    ratio = (query_time - lower.time) / duration
    result = PoseSample(
        time=query_time,
        x=lower.x + ratio * (upper.x - lower.x),
        y=lower.y + ratio * (upper.y - lower.y),
        z=lower.z + ratio * (upper.z - lower.z),
        yaw=_slerp_yaw(lower.time, lower.yaw, upper.time, upper.yaw, query_time),
        velocity=lower.velocity + ratio * (upper.velocity - lower.velocity),
    )
    if not result.is_finite():
        return None
    return result


def filter_by_time_horizon(trajectory: Sequence[PoseSample], horizon: float) -> Trajectory:
    """
    Clip a trajectory to [t0, t0 + horizon].

    末尾にちょうど horizon 時刻の補間サンプルを追加する。
    不正な軌道や horizon < 0 の場合は空タプルを返す。
    """
    if len(trajectory) == 0 or not is_time_monotonic(trajectory) or not horizon >= 0.0:
        return ()

    end_time = trajectory[0].time + horizon
    clipped: List[PoseSample] = [p for p in trajectory if p.time <= end_time]
    if clipped[-1].time < end_time:
        tail = interpolate_pose(trajectory, end_time)
        if tail is not None:
            clipped.append(tail)
    return tuple(clipped)

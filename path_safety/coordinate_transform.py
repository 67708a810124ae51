# -*- coding: utf-8 -*-
"""
================================================================================
Coordinate Transformation: world frame <-> agent local frame
================================================================================

ローカル座標系 (エージェント基準):
- x: 進行方向 (前方が正) [m]
- y: 左方向が正 [m]
- 原点: PoseSample の (x, y)

ワールド座標系:
- yaw だけ回転し、ポーズ位置だけ平行移動したもの

Version: 1.0
================================================================================
"""

import math

import numpy as np

from .vehicle_state import PoseSample


def normalize_angle(angle: float) -> float:
    """
    Wrap an angle into [-pi, pi).

    Args:
        angle: 角度 [rad]

    Returns:
        正規化された角度 [rad]
    """
    return (angle + math.pi) % (2.0 * math.pi) - math.pi


def yaw_difference(yaw_a: float, yaw_b: float) -> float:
    """Absolute shortest-arc heading difference [rad]"""
    return abs(normalize_angle(yaw_a - yaw_b))


def rotation_matrix(yaw: float) -> np.ndarray:
    """2D rotation matrix for heading yaw [rad]"""
    c = math.cos(yaw)
    s = math.sin(yaw)
    return np.array([[c, -s], [s, c]])


def to_world_frame(points_local: np.ndarray, pose: PoseSample) -> np.ndarray:
    """
    ローカル座標の点群 (N, 2) をワールド座標に変換

    Args:
        points_local: ローカル座標 (N, 2)
        pose: 基準ポーズ

    Returns:
        ワールド座標 (N, 2)
    """
    pts = np.asarray(points_local, dtype=float).reshape(-1, 2)
    return pts @ rotation_matrix(pose.yaw).T + np.array([pose.x, pose.y])


def to_local_frame(points_world: np.ndarray, pose: PoseSample) -> np.ndarray:
    """
    ワールド座標の点群 (N, 2) をポーズ基準のローカル座標に変換

    Args:
        points_world: ワールド座標 (N, 2)
        pose: 基準ポーズ

    Returns:
        ローカル座標 (N, 2)
    """
    pts = np.asarray(points_world, dtype=float).reshape(-1, 2)
    # R^T applied row-wise
    return (pts - np.array([pose.x, pose.y])) @ rotation_matrix(pose.yaw)

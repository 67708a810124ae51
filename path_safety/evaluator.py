# -*- coding: utf-8 -*-
"""
path_safety/evaluator.py

安全判定エバリュエータ (Safety Verdict Evaluator)
==================================================

候補自車軌道と予測物体軌道の組を共通の時間軸上で判定する。

自車の各時刻サンプルについて:
    1. 物体軌道を同時刻に補間 (補間不可 = その時刻は相互作用なし)
    2. 自車・物体の拡張ポリゴンを生成 (MarginPolicy のマージン)
    3. ポリゴン重なり -> 空間基準違反
    4. 縦方向に整列している場合、RSS最小距離と実際の縦方向隙間を比較
       -> 運動学基準違反
    5. いずれかの違反を ViolationRecord として記録

物体ペアのいずれかの時刻が違反なら、全体判定は UNSAFE。
判定は入力の純粋関数であり、同一入力には同一の結果 (違反順序も同一) を返す。
物体ペアは独立なのでスレッド並列で評価してよい (結果は入力順に集約)。
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
from shapely.geometry import Polygon, box

from .coordinate_transform import to_local_frame, yaw_difference
from .exceptions import InvalidInputError
from .footprint import ExtendedPolygon, ObjectShape, ObjectShapeDescriptor, Point2D, VehicleShape, extend
from .interpolation import filter_by_time_horizon, interpolate_pose
from .parameters import (
    DEFAULT_COLLISION_CHECK_PARAMETERS,
    CollisionCheckParameters,
    MarginPolicy,
    RSSParameters,
)
from .safety import calc_minimum_gap, compute_ttc, format_verdict_log, format_violation_log
from .vehicle_state import PoseSample, Trajectory, is_valid_trajectory

logger = logging.getLogger(__name__)


# ============================================================================
# Data Transfer Objects
# ============================================================================

class UnsafeCriterion(Enum):
    """Which safety criterion an instant failed."""
    POLYGON_OVERLAP = 0     # 拡張ポリゴンが重なった (空間基準)
    INSUFFICIENT_GAP = 1    # 縦方向隙間 < RSS最小距離 (運動学基準)


@dataclass(frozen=True)
class PredictedObjectPath:
    """
    One predicted path of a surrounding traffic participant.

    Attributes:
        object_id: 物体ID
        trajectory: 予測軌道
        shape: 物体形状 (物体ローカル座標)
        is_stationary: 現在停止しているか
    """
    object_id: str
    trajectory: Trajectory
    shape: ObjectShapeDescriptor
    is_stationary: bool = False


@dataclass(frozen=True)
class ViolationRecord:
    """
    Evidence for one unsafe instant.

    Attributes:
        object_id: 物体ID
        time: 時刻 [s]
        criteria: 違反した基準
        ego_polygon: 自車拡張ポリゴン
        object_polygon: 物体拡張ポリゴン
        rss_distance: RSS最小距離 [m] (縦方向に非整列なら None)
        longitudinal_gap: 実際の縦方向隙間 [m] (非整列なら None)
        is_object_front: 物体が前方なら True、後方なら False、非整列なら None
        ego_velocity: 自車速度 [m/s]
        object_velocity: 物体速度 [m/s]
        ttc: 時刻衝突余裕 [s] (接近していなければ None)
    """
    object_id: str
    time: float
    criteria: Tuple[UnsafeCriterion, ...]
    ego_polygon: ExtendedPolygon
    object_polygon: ExtendedPolygon
    rss_distance: Optional[float]
    longitudinal_gap: Optional[float]
    is_object_front: Optional[bool]
    ego_velocity: float
    object_velocity: float
    ttc: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "object_id": self.object_id,
            "time": self.time,
            "criteria": [c.name for c in self.criteria],
            "ego_polygon": [list(p) for p in self.ego_polygon.vertices],
            "object_polygon": [list(p) for p in self.object_polygon.vertices],
            "rss_distance": self.rss_distance,
            "longitudinal_gap": self.longitudinal_gap,
            "is_object_front": self.is_object_front,
            "ego_velocity": self.ego_velocity,
            "object_velocity": self.object_velocity,
            "ttc": self.ttc,
        }


@dataclass(frozen=True)
class ObjectCheckResult:
    """Verdict for one (candidate, object path) pair."""
    object_id: str
    is_safe: bool
    violations: Tuple[ViolationRecord, ...]
    skipped_times: Tuple[float, ...] = ()


@dataclass(frozen=True)
class SafetyVerdict:
    """
    Overall verdict for one candidate trajectory.

    violations は物体の入力順、次に時刻順に並ぶ。
    """
    is_safe: bool
    violations: Tuple[ViolationRecord, ...]
    object_results: Tuple[ObjectCheckResult, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_safe": self.is_safe,
            "violations": [v.to_dict() for v in self.violations],
            "objects": [
                {
                    "object_id": r.object_id,
                    "is_safe": r.is_safe,
                    "num_violations": len(r.violations),
                    "skipped_times": list(r.skipped_times),
                }
                for r in self.object_results
            ],
        }


@dataclass(frozen=True)
class LongitudinalRelation:
    """Lead/follow relation of two longitudinally aligned agents."""
    is_object_front: bool
    gap: float
    lead_velocity: float
    follow_velocity: float


# ============================================================================
# Geometry helpers
# ============================================================================

def compute_longitudinal_relation(
    ego_pose: PoseSample,
    ego_shape: VehicleShape,
    object_pose: PoseSample,
    object_footprint: Sequence[Point2D],
    lat_margin: float,
    yaw_threshold: float,
) -> Optional[LongitudinalRelation]:
    """
    Determine whether the object is directly ahead of or behind the ego.

    Aligned when:
        - |yaw_obj - yaw_ego| <= yaw_threshold (shared direction of travel)
        - object footprint overlaps the ego lateral band ±(width/2 + lat_margin)

    The gap is measured on the part of the footprint inside the band
    (自車レーン幅内の部分のみで縦方向の隙間を測る). If that part reaches
    between the ego rear and front edges the agents overlap longitudinally and
    the gap is 0; the side holding the larger share of the clipped part decides
    which agent leads.

    Args:
        ego_pose: 自車ポーズ
        ego_shape: 自車形状
        object_pose: 物体ポーズ
        object_footprint: 物体フットプリント (ワールド座標、マージンなし)
        lat_margin: 横マージン [m]
        yaw_threshold: 同一進行方向とみなす最大方位差 [rad]

    Returns:
        LongitudinalRelation、非整列なら None
    """
    if yaw_difference(object_pose.yaw, ego_pose.yaw) > yaw_threshold:
        return None

    local = to_local_frame(np.array(object_footprint, dtype=float), ego_pose)
    if len(local) < 3:
        return None
    footprint = Polygon(local)
    if not footprint.is_valid:
        footprint = footprint.buffer(0)

    half_band = ego_shape.width / 2.0 + lat_margin
    min_x, _, max_x, _ = footprint.bounds
    in_band = footprint.intersection(box(min_x - 1.0, -half_band, max_x + 1.0, half_band))
    # Grazing contact with the band edge has no extent
    if in_band.is_empty or in_band.area <= 0.0:
        return None

    front = ego_shape.max_longitudinal_offset
    rear = -ego_shape.rear_overhang
    band_min_x, _, band_max_x, _ = in_band.bounds

    if band_min_x > front:
        is_object_front, gap = True, band_min_x - front
    elif band_max_x < rear:
        is_object_front, gap = False, rear - band_max_x
    else:
        ahead = in_band.intersection(box(front, -half_band, max(band_max_x, front) + 1.0, half_band)).area
        behind = in_band.intersection(box(min(band_min_x, rear) - 1.0, -half_band, rear, half_band)).area
        is_object_front, gap = ahead >= behind, 0.0

    if is_object_front:
        lead_velocity, follow_velocity = object_pose.velocity, ego_pose.velocity
    else:
        lead_velocity, follow_velocity = ego_pose.velocity, object_pose.velocity
    return LongitudinalRelation(
        is_object_front=is_object_front,
        gap=float(gap),
        lead_velocity=lead_velocity,
        follow_velocity=follow_velocity,
    )


# ============================================================================
# Evaluation
# ============================================================================

def _validate_ego(ego_trajectory: Sequence[PoseSample], ego_shape: VehicleShape) -> Trajectory:
    if not is_valid_trajectory(ego_trajectory):
        raise InvalidInputError(
            "Ego trajectory must be non-empty, finite and have non-decreasing times"
        )
    if not isinstance(ego_shape, VehicleShape) or not ego_shape.is_valid():
        raise InvalidInputError(f"Invalid ego geometry: {ego_shape!r}")
    return tuple(ego_trajectory)


def _check_instant(
    ego_pose: PoseSample,
    object_pose: PoseSample,
    object_path: PredictedObjectPath,
    ego_shape: VehicleShape,
    margin_policy: MarginPolicy,
    rss_params: RSSParameters,
    check_params: CollisionCheckParameters,
) -> Tuple[bool, Optional[ViolationRecord]]:
    """Returns (resolved, violation)."""
    footprint = object_path.shape.to_world_polygon(object_pose)
    if footprint is None:
        return False, None

    lon_margin, lat_margin = margin_policy.margins(ego_pose.velocity, object_pose.velocity)

    ego_polygon = extend(ego_pose, ego_shape, lon_margin, lat_margin)
    if ego_polygon is None:
        raise InvalidInputError(f"Cannot build ego polygon at t={ego_pose.time:.2f}s")

    object_polygon = extend(
        object_pose,
        ObjectShape(footprint=footprint, is_stationary=object_path.is_stationary),
        lon_margin,
        lat_margin,
        is_stopped=object_path.is_stationary,
        stopped_policy=margin_policy.stationary_margins,
    )
    if object_polygon is None:
        return False, None

    criteria: List[UnsafeCriterion] = []
    if ego_polygon.intersects(object_polygon):
        criteria.append(UnsafeCriterion.POLYGON_OVERLAP)

    relation = compute_longitudinal_relation(
        ego_pose, ego_shape, object_pose, footprint,
        lat_margin, check_params.alignment_yaw_threshold,
    )
    rss_distance = None
    ttc = None
    if relation is not None:
        rss_distance = calc_minimum_gap(relation.lead_velocity, relation.follow_velocity, rss_params)
        ttc = compute_ttc(relation.gap, relation.follow_velocity, relation.lead_velocity)
        if relation.gap < rss_distance:
            criteria.append(UnsafeCriterion.INSUFFICIENT_GAP)

    if not criteria:
        return True, None

    return True, ViolationRecord(
        object_id=object_path.object_id,
        time=ego_pose.time,
        criteria=tuple(criteria),
        ego_polygon=ego_polygon,
        object_polygon=object_polygon,
        rss_distance=rss_distance,
        longitudinal_gap=relation.gap if relation is not None else None,
        is_object_front=relation.is_object_front if relation is not None else None,
        ego_velocity=ego_pose.velocity,
        object_velocity=object_pose.velocity,
        ttc=ttc,
    )


def _evaluate_pair(
    ego_trajectory: Trajectory,
    object_path: PredictedObjectPath,
    ego_shape: VehicleShape,
    margin_policy: MarginPolicy,
    rss_params: RSSParameters,
    check_params: CollisionCheckParameters,
) -> ObjectCheckResult:
    object_trajectory: Sequence[PoseSample] = object_path.trajectory
    if not is_valid_trajectory(object_trajectory):
        logger.warning(
            "[SKIP] obj=%s: predicted path is empty, non-finite or not time-ordered",
            object_path.object_id,
        )
        return ObjectCheckResult(
            object_id=object_path.object_id,
            is_safe=True,
            violations=(),
            skipped_times=tuple(p.time for p in ego_trajectory),
        )
    if check_params.time_horizon is not None:
        object_trajectory = filter_by_time_horizon(object_trajectory, check_params.time_horizon)

    violations: List[ViolationRecord] = []
    skipped: List[float] = []

    for ego_pose in ego_trajectory:
        object_pose = interpolate_pose(object_trajectory, ego_pose.time)
        if object_pose is None:
            skipped.append(ego_pose.time)
            continue

        resolved, violation = _check_instant(
            ego_pose, object_pose, object_path,
            ego_shape, margin_policy, rss_params, check_params,
        )
        if not resolved:
            skipped.append(ego_pose.time)
            continue
        if violation is not None:
            logger.debug(format_violation_log(violation))
            violations.append(violation)
            if check_params.stop_at_first_violation:
                break

    if skipped:
        logger.warning(
            "[SKIP] obj=%s: %d instant(s) without a resolvable object pose",
            object_path.object_id, len(skipped),
        )

    return ObjectCheckResult(
        object_id=object_path.object_id,
        is_safe=not violations,
        violations=tuple(violations),
        skipped_times=tuple(skipped),
    )


def evaluate_object(
    ego_trajectory: Sequence[PoseSample],
    object_path: PredictedObjectPath,
    ego_shape: VehicleShape,
    margin_policy: MarginPolicy,
    rss_params: RSSParameters,
    check_params: CollisionCheckParameters = DEFAULT_COLLISION_CHECK_PARAMETERS,
) -> ObjectCheckResult:
    """
    Judge one (candidate, predicted object path) pair.

    Raises:
        InvalidInputError: 自車軌道・自車形状が不正
        ConfigurationError: stationary_adjustment が不正なマージンを返した
    """
    ego = _validate_ego(ego_trajectory, ego_shape)
    return _evaluate_pair(ego, object_path, ego_shape, margin_policy, rss_params, check_params)


def evaluate(
    ego_trajectory: Sequence[PoseSample],
    object_paths: Sequence[PredictedObjectPath],
    ego_shape: VehicleShape,
    margin_policy: MarginPolicy,
    rss_params: RSSParameters,
    check_params: CollisionCheckParameters = DEFAULT_COLLISION_CHECK_PARAMETERS,
) -> SafetyVerdict:
    """
    Judge a candidate ego trajectory against all predicted object paths.

    Args:
        ego_trajectory: 候補自車軌道
        object_paths: 予測物体軌道のリスト
        ego_shape: 自車形状
        margin_policy: マージンポリシー
        rss_params: RSSパラメータ
        check_params: 判定設定 (並列度、打ち切り、ホライズン)

    Returns:
        SafetyVerdict (全物体・全時刻で両基準を満たす場合のみ is_safe=True)

    Raises:
        InvalidInputError: 自車軌道・自車形状が不正
        ConfigurationError: stationary_adjustment が不正なマージンを返した
    """
    ego = _validate_ego(ego_trajectory, ego_shape)
    paths = tuple(object_paths)

    def check(path: PredictedObjectPath) -> ObjectCheckResult:
        return _evaluate_pair(ego, path, ego_shape, margin_policy, rss_params, check_params)

    if check_params.max_workers > 1 and len(paths) > 1:
        with ThreadPoolExecutor(max_workers=check_params.max_workers) as pool:
            results = tuple(pool.map(check, paths))
    else:
        results = tuple(check(path) for path in paths)

    violations = tuple(v for r in results for v in r.violations)
    verdict = SafetyVerdict(
        is_safe=all(r.is_safe for r in results),
        violations=violations,
        object_results=results,
    )
    logger.debug(format_verdict_log(verdict))
    return verdict

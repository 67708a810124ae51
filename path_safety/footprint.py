# -*- coding: utf-8 -*-
"""
path_safety/footprint.py

拡張フットプリント / ポリゴン生成 (Footprint Extension / Polygon Builder)
========================================================================

自車・物体のフットプリントを縦・横の安全マージンで拡張し、閉じた2Dポリゴンを作る。

自車 (VehicleShape):
    ローカル座標で前端 = max_longitudinal_offset + lon_margin、
    後端 = -rear_overhang (マージンで後方は伸ばさない)、
    半幅 = width / 2 + lat_margin の矩形を作り、ポーズで回転・平行移動。

物体 (ObjectShape):
    ワールド座標フットプリントを物体ローカル座標に戻し、前方 (最大) 端のみ
    lon_margin、左右両端を lat_margin だけ拡張。後方 (最小) 端は不変。

頂点順: (前, 左) -> (前, 右) -> (後, 右) -> (後, 左) -> (前, 左) [閉リング]

物体形状の種類 (ポリゴン / バウンディングボックス / 円柱) は ShapeKind タグで
区別し、種類ごとに1つのワールドポリゴン変換関数を持つ。
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional, Sequence, Tuple, Union

import numpy as np
from shapely.geometry import Polygon

from .coordinate_transform import to_local_frame, to_world_frame
from .vehicle_state import PoseSample

CYLINDER_SEGMENTS = 16

Point2D = Tuple[float, float]

# (lon_margin, lat_margin) -> (lon_margin, lat_margin) for stationary objects
StoppedObjectPolicy = Callable[[float, float], Tuple[float, float]]


def keep_margins(lon_margin: float, lat_margin: float) -> Tuple[float, float]:
    """Stationary objects get the same margins as moving ones."""
    return lon_margin, lat_margin


# ============================================================================
# Shape descriptors
# ============================================================================

@dataclass(frozen=True)
class VehicleShape:
    """
    Ego vehicle geometry (base_link origin).

    Attributes:
        max_longitudinal_offset: 基準点から前端までの距離 [m]
        width: 車幅 [m]
        rear_overhang: 基準点から後端までの距離 [m]
    """
    max_longitudinal_offset: float
    width: float
    rear_overhang: float

    def is_valid(self) -> bool:
        values = (self.max_longitudinal_offset, self.width, self.rear_overhang)
        if not all(math.isfinite(v) for v in values):
            return False
        return self.max_longitudinal_offset > 0.0 and self.width > 0.0 and self.rear_overhang >= 0.0


@dataclass(frozen=True)
class ObjectShape:
    """Object footprint already expressed in world coordinates."""
    footprint: Tuple[Point2D, ...]
    is_stationary: bool = False


ShapeSpec = Union[VehicleShape, ObjectShape]


class ShapeKind(Enum):
    """Perception shape types."""
    POLYGON = 0
    BOUNDING_BOX = 1
    CYLINDER = 2


@dataclass(frozen=True)
class ObjectShapeDescriptor:
    """
    Object shape in the object's own frame.

    Attributes:
        kind: 形状の種類
        dimensions: BOUNDING_BOX は (length, width)、CYLINDER は (diameter, diameter)
        footprint: POLYGON のローカル頂点列
    """
    kind: ShapeKind
    dimensions: Tuple[float, float] = (0.0, 0.0)
    footprint: Tuple[Point2D, ...] = ()

    @classmethod
    def polygon(cls, footprint: Sequence[Sequence[float]]) -> "ObjectShapeDescriptor":
        return cls(ShapeKind.POLYGON, footprint=tuple((float(x), float(y)) for x, y in footprint))

    @classmethod
    def bounding_box(cls, length: float, width: float) -> "ObjectShapeDescriptor":
        return cls(ShapeKind.BOUNDING_BOX, dimensions=(float(length), float(width)))

    @classmethod
    def cylinder(cls, radius: float) -> "ObjectShapeDescriptor":
        return cls(ShapeKind.CYLINDER, dimensions=(2.0 * float(radius), 2.0 * float(radius)))

    def to_world_polygon(self, pose: PoseSample) -> Optional[Tuple[Point2D, ...]]:
        """World-frame footprint at pose, or None for degenerate shapes."""
        local = _LOCAL_FOOTPRINT_BUILDERS[self.kind](self)
        if local is None:
            return None
        return _as_points(to_world_frame(local, pose))


def _polygon_footprint(desc: ObjectShapeDescriptor) -> Optional[np.ndarray]:
    if len(desc.footprint) < 3:
        return None
    pts = np.array(desc.footprint, dtype=float)
    return pts if np.all(np.isfinite(pts)) else None


def _bounding_box_footprint(desc: ObjectShapeDescriptor) -> Optional[np.ndarray]:
    length, width = desc.dimensions
    if not (length > 0.0 and width > 0.0 and math.isfinite(length) and math.isfinite(width)):
        return None
    hl, hw = length / 2.0, width / 2.0
    return np.array([[hl, hw], [hl, -hw], [-hl, -hw], [-hl, hw]])


def _cylinder_footprint(desc: ObjectShapeDescriptor) -> Optional[np.ndarray]:
    diameter = desc.dimensions[0]
    if not (diameter > 0.0 and math.isfinite(diameter)):
        return None
    radius = diameter / 2.0
    angles = np.linspace(0.0, 2.0 * math.pi, CYLINDER_SEGMENTS, endpoint=False)
    return np.column_stack([radius * np.cos(angles), radius * np.sin(angles)])


_LOCAL_FOOTPRINT_BUILDERS: Dict[ShapeKind, Callable[[ObjectShapeDescriptor], Optional[np.ndarray]]] = {
    ShapeKind.POLYGON: _polygon_footprint,
    ShapeKind.BOUNDING_BOX: _bounding_box_footprint,
    ShapeKind.CYLINDER: _cylinder_footprint,
}


# ============================================================================
# Extended polygon
# ============================================================================

@dataclass(frozen=True)
class ExtendedPolygon:
    """Closed ring; the first vertex is repeated as the last."""
    vertices: Tuple[Point2D, ...]

    def to_shapely(self) -> Polygon:
        return Polygon(self.vertices)

    @property
    def area(self) -> float:
        return float(self.to_shapely().area)

    def intersects(self, other: "ExtendedPolygon") -> bool:
        return bool(self.to_shapely().intersects(other.to_shapely()))

    def as_array(self) -> np.ndarray:
        return np.array(self.vertices, dtype=float)


def _as_points(arr: np.ndarray) -> Tuple[Point2D, ...]:
    return tuple((float(x), float(y)) for x, y in arr)


def _closed_ring(front: float, rear: float, left: float, right: float, pose: PoseSample) -> Optional[ExtendedPolygon]:
    corners = np.array([
        [front, left],
        [front, right],
        [rear, right],
        [rear, left],
    ])
    world = to_world_frame(corners, pose)
    if not np.all(np.isfinite(world)):
        return None
    ring = _as_points(world)
    polygon = ExtendedPolygon(ring + (ring[0],))
    if not polygon.area > 0.0:
        return None
    return polygon


def _extend_vehicle(pose: PoseSample, shape: VehicleShape, lon_margin: float, lat_margin: float) -> Optional[ExtendedPolygon]:
    if not shape.is_valid():
        return None
    half_width = shape.width / 2.0 + lat_margin
    return _closed_ring(
        front=shape.max_longitudinal_offset + lon_margin,
        rear=-shape.rear_overhang,
        left=half_width,
        right=-half_width,
        pose=pose,
    )


def _extend_object(pose: PoseSample, shape: ObjectShape, lon_margin: float, lat_margin: float) -> Optional[ExtendedPolygon]:
    if len(shape.footprint) < 3:
        return None
    local = to_local_frame(np.array(shape.footprint, dtype=float), pose)
    if not np.all(np.isfinite(local)):
        return None
    min_x, min_y = local.min(axis=0)
    max_x, max_y = local.max(axis=0)
    return _closed_ring(
        front=float(max_x) + lon_margin,
        rear=float(min_x),
        left=float(max_y) + lat_margin,
        right=float(min_y) - lat_margin,
        pose=pose,
    )


def extend(
    pose: PoseSample,
    shape: ShapeSpec,
    lon_margin: float,
    lat_margin: float,
    is_stopped: bool = False,
    stopped_policy: StoppedObjectPolicy = keep_margins,
) -> Optional[ExtendedPolygon]:
    """
    Grow a footprint by safety margins into a closed polygon.

    Args:
        pose: 基準ポーズ (ワールド座標)
        shape: VehicleShape または ObjectShape
        lon_margin: 前方マージン [m]
        lat_margin: 左右マージン [m]
        is_stopped: 停止物体フラグ (True のとき stopped_policy でマージンを変換)
        stopped_policy: 停止物体のマージン変換

    Returns:
        ExtendedPolygon (5頂点の閉リング)、入力が不正な場合は None

    Example:
        >>> shape = VehicleShape(max_longitudinal_offset=4.0, width=2.0, rear_overhang=1.0)
        >>> extend(PoseSample(0.0, 0.0, 0.0), shape, 10.0, 2.0).vertices[0]
        (14.0, 3.0)
    """
    if is_stopped:
        lon_margin, lat_margin = stopped_policy(lon_margin, lat_margin)
    if not (math.isfinite(lon_margin) and math.isfinite(lat_margin)):
        return None
    if lon_margin < 0.0 or lat_margin < 0.0 or not pose.is_finite():
        return None

    if isinstance(shape, VehicleShape):
        return _extend_vehicle(pose, shape, lon_margin, lat_margin)
    if isinstance(shape, ObjectShape):
        return _extend_object(pose, shape, lon_margin, lat_margin)
    raise TypeError(f"Unsupported shape type: {type(shape).__name__}")

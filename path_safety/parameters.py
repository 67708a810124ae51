# -*- coding: utf-8 -*-
"""
path_safety/parameters.py

安全判定パラメータ (全て frozen dataclass、構築時に一度だけ検証)
================================================================

パラメータカテゴリ:
- RSSParameters: RSS最小車間距離の反応時間・減速度・下限値
- MarginPolicy: 拡張ポリゴンの縦・横マージン、停止物体ポリシー
- CollisionCheckParameters: 進行方向の整合閾値、予測ホライズン、並列度
- SafetyCheckConfig: 上記 + 自車形状をまとめたもの (JSON から読み込み)

不正な値 (ゼロ減速度など) は ConfigurationError として設定時に検出する。
実行時のデフォルト値で隠蔽してはならない。
"""

import json
import math
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple, Union

from .exceptions import ConfigurationError
from .footprint import StoppedObjectPolicy, VehicleShape, keep_margins

MIN_DECELERATION = 1e-6  # [m/s²]


def _require_finite(name: str, value: float) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(f"{name} must be a number, got {value!r}")
    if not math.isfinite(value):
        raise ConfigurationError(f"{name} must be finite, got {value!r}")


def _require_non_negative(name: str, value: float) -> None:
    _require_finite(name, value)
    if value < 0.0:
        raise ConfigurationError(f"{name} must be >= 0, got {value!r}")


@dataclass(frozen=True)
class RSSParameters:
    """
    RSS minimum-gap parameters.

    Decelerations may be given signed (e.g. -2.0 m/s²); only the magnitude
    is used and it must be strictly positive.

    Attributes:
        reaction_time: 後続エージェントの反応時間 [s]
        safety_time_margin: 追加の時間余裕 [s]
        min_threshold: 最小車間距離の下限 [m]
        lead_deceleration: 先行エージェントの減速度 [m/s²]
        follow_deceleration: 後続エージェントの減速度 [m/s²]
    """
    reaction_time: float = 2.0
    safety_time_margin: float = 1.0
    min_threshold: float = 1.0
    lead_deceleration: float = -1.0
    follow_deceleration: float = -1.0

    def __post_init__(self):
        _require_non_negative("reaction_time", self.reaction_time)
        _require_non_negative("safety_time_margin", self.safety_time_margin)
        _require_non_negative("min_threshold", self.min_threshold)
        for name in ("lead_deceleration", "follow_deceleration"):
            value = getattr(self, name)
            _require_finite(name, value)
            if abs(value) < MIN_DECELERATION:
                raise ConfigurationError(f"{name} magnitude must be > 0, got {value!r}")

    @property
    def lead_deceleration_magnitude(self) -> float:
        return abs(self.lead_deceleration)

    @property
    def follow_deceleration_magnitude(self) -> float:
        return abs(self.follow_deceleration)


@dataclass(frozen=True)
class MarginPolicy:
    """
    Margins applied when building extended polygons.

    Attributes:
        longitudinal_margin: 前方マージン [m]
        lateral_margin: 左右マージン [m]
        stationary_adjustment: 停止物体に対するマージン変換 (lon, lat) -> (lon, lat)
        relative_velocity_gain: 相対速度 1m/s あたりの前方マージン追加量 [s]
    """
    longitudinal_margin: float = 0.0
    lateral_margin: float = 0.0
    stationary_adjustment: StoppedObjectPolicy = field(default=keep_margins, compare=False)
    relative_velocity_gain: float = 0.0

    def __post_init__(self):
        _require_non_negative("longitudinal_margin", self.longitudinal_margin)
        _require_non_negative("lateral_margin", self.lateral_margin)
        _require_non_negative("relative_velocity_gain", self.relative_velocity_gain)
        if not callable(self.stationary_adjustment):
            raise ConfigurationError("stationary_adjustment must be callable")

    def margins(self, ego_velocity: float, object_velocity: float) -> Tuple[float, float]:
        """(longitudinal, lateral) margins for one instant [m]"""
        lon = self.longitudinal_margin + self.relative_velocity_gain * abs(ego_velocity - object_velocity)
        return lon, self.lateral_margin

    def stationary_margins(self, lon_margin: float, lat_margin: float) -> Tuple[float, float]:
        """
        Apply stationary_adjustment and check its result.

        Raises:
            ConfigurationError: 変換後のマージンが負・非有限・非数値
        """
        try:
            adj_lon, adj_lat = self.stationary_adjustment(lon_margin, lat_margin)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"stationary_adjustment must return (lon, lat): {e}") from e
        _require_non_negative("stationary longitudinal_margin", adj_lon)
        _require_non_negative("stationary lateral_margin", adj_lat)
        return adj_lon, adj_lat


@dataclass(frozen=True)
class CollisionCheckParameters:
    """
    Evaluator behaviour switches.

    Attributes:
        alignment_yaw_threshold: 同一進行方向とみなす最大方位差 [rad]
        time_horizon: 予測軌道を切り詰める時間 [s] (None = 切り詰めなし)
        stop_at_first_violation: 物体ごとに最初の違反で打ち切る
        max_workers: 物体ペアを並列評価するスレッド数
    """
    alignment_yaw_threshold: float = math.pi / 4.0
    time_horizon: Optional[float] = None
    stop_at_first_violation: bool = True
    max_workers: int = 1

    def __post_init__(self):
        _require_non_negative("alignment_yaw_threshold", self.alignment_yaw_threshold)
        if self.time_horizon is not None:
            _require_non_negative("time_horizon", self.time_horizon)
        if not isinstance(self.stop_at_first_violation, bool):
            raise ConfigurationError("stop_at_first_violation must be a bool")
        if isinstance(self.max_workers, bool) or not isinstance(self.max_workers, int) or self.max_workers < 1:
            raise ConfigurationError(f"max_workers must be a positive int, got {self.max_workers!r}")


DEFAULT_RSS_PARAMETERS = RSSParameters()
DEFAULT_MARGIN_POLICY = MarginPolicy()
DEFAULT_COLLISION_CHECK_PARAMETERS = CollisionCheckParameters()
DEFAULT_VEHICLE_SHAPE = VehicleShape(max_longitudinal_offset=3.8, width=1.8, rear_overhang=1.0)


def _validated_vehicle_shape(**kwargs: Any) -> VehicleShape:
    shape = VehicleShape(**kwargs)
    for f in fields(shape):
        _require_finite(f.name, getattr(shape, f.name))
    if shape.max_longitudinal_offset <= 0.0 or shape.width <= 0.0 or shape.rear_overhang < 0.0:
        raise ConfigurationError(f"Invalid vehicle geometry: {shape}")
    return shape


_SECTIONS: Dict[str, Callable[..., Any]] = {
    "vehicle": _validated_vehicle_shape,
    "margin": MarginPolicy,
    "rss": RSSParameters,
    "collision_check": CollisionCheckParameters,
}

# Keys that cannot be expressed in JSON
_NON_JSON_KEYS = {"margin": {"stationary_adjustment"}}


@dataclass(frozen=True)
class SafetyCheckConfig:
    """All parameters needed for one evaluate() call."""
    vehicle: VehicleShape = DEFAULT_VEHICLE_SHAPE
    margin: MarginPolicy = DEFAULT_MARGIN_POLICY
    rss: RSSParameters = DEFAULT_RSS_PARAMETERS
    collision_check: CollisionCheckParameters = DEFAULT_COLLISION_CHECK_PARAMETERS

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SafetyCheckConfig":
        """
        Build a config from nested section dicts.

        Missing sections use defaults; unknown sections or keys raise
        ConfigurationError.
        """
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config root must be an object, got {type(data).__name__}")

        unknown_sections = set(data) - set(_SECTIONS)
        if unknown_sections:
            raise ConfigurationError(f"Unknown config sections: {sorted(unknown_sections)}")

        built: Dict[str, Any] = {}
        for section, factory in _SECTIONS.items():
            if section not in data:
                continue
            values = data[section]
            if not isinstance(values, dict):
                raise ConfigurationError(f"Section '{section}' must be an object")
            target = VehicleShape if section == "vehicle" else factory
            allowed = {f.name for f in fields(target)} - _NON_JSON_KEYS.get(section, set())
            unknown = set(values) - allowed
            if unknown:
                raise ConfigurationError(f"Unknown keys in '{section}': {sorted(unknown)}")
            try:
                built[section] = factory(**values)
            except TypeError as e:
                raise ConfigurationError(f"Invalid section '{section}': {e}") from e
        return cls(**built)


def load_config(path: Union[str, Path]) -> SafetyCheckConfig:
    """
    Load a SafetyCheckConfig from a JSON file.

    Raises:
        FileNotFoundError: ファイルが存在しない
        ConfigurationError: JSON不正、または値が不正
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path.resolve()}")
    with config_path.open("r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Malformed JSON in {config_path}: {e}") from e
    return SafetyCheckConfig.from_dict(data)

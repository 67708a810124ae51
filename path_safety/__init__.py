"""
Trajectory Safety Check - v1.0
==============================

Spatio-temporal safety gate for candidate ego trajectories against
predicted paths of surrounding traffic participants.

Modules:
    - vehicle_state: PoseSample and trajectory helpers
    - coordinate_transform: world <-> local frame utilities
    - interpolation: time-indexed pose interpolator
    - footprint: shape descriptors and extended polygon builder
    - safety: RSS minimum-gap model, TTC, log formatting
    - parameters: frozen, validated configuration values
    - evaluator: safety verdict evaluator
    - exceptions: error taxonomy
    - utils: Logger and logging setup
    - main: command-line entry point

Version: v1.0
"""

from .vehicle_state import PoseSample, Trajectory, make_trajectory, is_time_monotonic, is_valid_trajectory
from .coordinate_transform import normalize_angle, to_local_frame, to_world_frame
from .interpolation import interpolate_pose, filter_by_time_horizon
from .footprint import (
    ExtendedPolygon,
    ObjectShape,
    ObjectShapeDescriptor,
    ShapeKind,
    VehicleShape,
    extend,
    keep_margins,
)
from .safety import calc_minimum_gap, compute_ttc, format_violation_log, format_verdict_log
from .parameters import (
    RSSParameters,
    MarginPolicy,
    CollisionCheckParameters,
    SafetyCheckConfig,
    load_config,
    DEFAULT_RSS_PARAMETERS,
    DEFAULT_MARGIN_POLICY,
    DEFAULT_COLLISION_CHECK_PARAMETERS,
    DEFAULT_VEHICLE_SHAPE,
)
from .evaluator import (
    UnsafeCriterion,
    PredictedObjectPath,
    ViolationRecord,
    ObjectCheckResult,
    SafetyVerdict,
    evaluate,
    evaluate_object,
)
from .exceptions import SafetyCheckError, ConfigurationError, InvalidInputError

__version__ = "1.0.0"
__all__ = [
    # State
    "PoseSample",
    "Trajectory",
    "make_trajectory",
    "is_time_monotonic",
    "is_valid_trajectory",
    # Coordinate transformation
    "normalize_angle",
    "to_local_frame",
    "to_world_frame",
    # Interpolator
    "interpolate_pose",
    "filter_by_time_horizon",
    # Polygon builder
    "ExtendedPolygon",
    "ObjectShape",
    "ObjectShapeDescriptor",
    "ShapeKind",
    "VehicleShape",
    "extend",
    "keep_margins",
    # RSS model
    "calc_minimum_gap",
    "compute_ttc",
    "format_violation_log",
    "format_verdict_log",
    # Parameters
    "RSSParameters",
    "MarginPolicy",
    "CollisionCheckParameters",
    "SafetyCheckConfig",
    "load_config",
    "DEFAULT_RSS_PARAMETERS",
    "DEFAULT_MARGIN_POLICY",
    "DEFAULT_COLLISION_CHECK_PARAMETERS",
    "DEFAULT_VEHICLE_SHAPE",
    # Evaluator
    "UnsafeCriterion",
    "PredictedObjectPath",
    "ViolationRecord",
    "ObjectCheckResult",
    "SafetyVerdict",
    "evaluate",
    "evaluate_object",
    # Errors
    "SafetyCheckError",
    "ConfigurationError",
    "InvalidInputError",
]

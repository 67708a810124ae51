import json
import math
from pathlib import Path

import pytest

from path_safety.exceptions import ConfigurationError
from path_safety.footprint import VehicleShape
from path_safety.parameters import (
    DEFAULT_COLLISION_CHECK_PARAMETERS,
    DEFAULT_RSS_PARAMETERS,
    CollisionCheckParameters,
    MarginPolicy,
    SafetyCheckConfig,
    load_config,
)

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "configs" / "default_safety_check.json"


def write_json(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_defaults_are_valid():
    config = SafetyCheckConfig()
    assert config.rss == DEFAULT_RSS_PARAMETERS
    assert config.collision_check == DEFAULT_COLLISION_CHECK_PARAMETERS
    assert config.vehicle.is_valid()
    assert config.collision_check.stop_at_first_violation is True
    assert config.collision_check.alignment_yaw_threshold == pytest.approx(math.pi / 4)


def test_parameters_are_frozen():
    with pytest.raises(AttributeError):
        DEFAULT_RSS_PARAMETERS.reaction_time = 0.5


def test_load_bundled_config():
    config = load_config(DEFAULT_CONFIG_PATH)
    assert config.vehicle == VehicleShape(3.8, 1.8, 1.0)
    assert config.margin.lateral_margin == 0.5
    assert config.rss.follow_deceleration_magnitude == 1.0
    assert config.collision_check.time_horizon is None


def test_partial_config_keeps_defaults(tmp_path):
    path = write_json(tmp_path / "config.json", {"rss": {"reaction_time": 0.5}})
    config = load_config(path)
    assert config.rss.reaction_time == 0.5
    assert config.rss.safety_time_margin == DEFAULT_RSS_PARAMETERS.safety_time_margin
    assert config.margin == MarginPolicy()


def test_unknown_section_rejected():
    with pytest.raises(ConfigurationError, match="sections"):
        SafetyCheckConfig.from_dict({"planner": {}})


def test_unknown_key_rejected():
    with pytest.raises(ConfigurationError, match="reaction"):
        SafetyCheckConfig.from_dict({"rss": {"reaction": 1.0}})


def test_stationary_adjustment_not_loadable_from_json():
    with pytest.raises(ConfigurationError):
        SafetyCheckConfig.from_dict({"margin": {"stationary_adjustment": "double"}})


@pytest.mark.parametrize("data", [
    {"rss": {"lead_deceleration": 0.0}},
    {"rss": {"follow_deceleration": "fast"}},
    {"margin": {"lateral_margin": -0.5}},
    {"vehicle": {"max_longitudinal_offset": 4.0, "width": 0.0, "rear_overhang": 1.0}},
    {"vehicle": {"width": 2.0}},
    {"collision_check": {"max_workers": 0}},
    {"collision_check": {"time_horizon": -1.0}},
    {"rss": []},
])
def test_invalid_values_rejected(data):
    with pytest.raises(ConfigurationError):
        SafetyCheckConfig.from_dict(data)


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.json")


def test_malformed_json_raises(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="Malformed"):
        load_config(path)


def test_margin_policy_relative_velocity_gain():
    policy = MarginPolicy(longitudinal_margin=1.0, lateral_margin=0.5, relative_velocity_gain=0.2)
    lon, lat = policy.margins(ego_velocity=10.0, object_velocity=5.0)
    assert lon == pytest.approx(2.0)
    assert lat == 0.5


def test_custom_stationary_adjustment_must_be_callable():
    with pytest.raises(ConfigurationError):
        MarginPolicy(stationary_adjustment=1.5)


def test_collision_check_rejects_bool_workers():
    with pytest.raises(ConfigurationError):
        CollisionCheckParameters(max_workers=True)


def test_stationary_margins_applies_adjustment():
    policy = MarginPolicy(stationary_adjustment=lambda lon, lat: (lon * 2.0, lat + 0.5))
    assert policy.stationary_margins(1.0, 0.5) == (2.0, 1.0)


@pytest.mark.parametrize("adjustment", [
    lambda lon, lat: (-1.0, lat),
    lambda lon, lat: (lon, float("inf")),
    lambda lon, lat: (lon,),
])
def test_stationary_margins_rejects_invalid_result(adjustment):
    policy = MarginPolicy(stationary_adjustment=adjustment)
    with pytest.raises(ConfigurationError):
        policy.stationary_margins(1.0, 0.5)

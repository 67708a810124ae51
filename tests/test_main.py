import json

import pytest

from path_safety.exceptions import InvalidInputError
from path_safety.footprint import ShapeKind
from path_safety.main import EXIT_ERROR, EXIT_SAFE, EXIT_UNSAFE, main, parse_scenario
from path_safety.utils import setup_logging


def samples(x0, v, y=0.0, n=5, dt=0.5):
    return [
        {"time": i * dt, "x": x0 + v * i * dt, "y": y, "yaw": 0.0, "velocity": v}
        for i in range(n)
    ]


def scenario(object_x0, object_y=0.0):
    return {
        "ego": samples(0.0, 10.0),
        "objects": [{
            "id": "car_1",
            "shape": {"type": "bounding_box", "length": 4.0, "width": 2.0},
            "trajectory": samples(object_x0, 10.0, y=object_y),
        }],
    }


@pytest.fixture
def write(tmp_path):
    def _write(name, data):
        path = tmp_path / name
        path.write_text(data if isinstance(data, str) else json.dumps(data), encoding="utf-8")
        return str(path)
    return _write


def test_safe_scenario_exits_zero(write, capsys):
    path = write("safe.json", scenario(0.0, object_y=10.0))
    assert main(["--scenario", path]) == EXIT_SAFE
    assert "[VERDICT] SAFE" in capsys.readouterr().out


def test_unsafe_scenario_exits_one(write, capsys):
    path = write("unsafe.json", scenario(20.0))
    assert main(["--scenario", path]) == EXIT_UNSAFE
    out = capsys.readouterr().out
    assert "[VERDICT] UNSAFE" in out
    assert "[UNSAFE-INSUFFICIENT_GAP] obj=car_1" in out


def test_json_output_with_all_violations(write, capsys):
    path = write("unsafe.json", scenario(20.0))
    assert main(["--scenario", path, "--json", "--all-violations"]) == EXIT_UNSAFE
    data = json.loads(capsys.readouterr().out)
    assert data["is_safe"] is False
    assert len(data["violations"]) == 5
    assert data["objects"][0]["num_violations"] == 5


def test_config_override_is_applied(write, capsys):
    path = write("unsafe.json", scenario(20.0))
    config = write("config.json", {
        "rss": {"reaction_time": 0.0, "safety_time_margin": 0.0, "min_threshold": 0.0},
    })
    # equal speeds and no reaction time leave only the floor
    assert main(["--scenario", path, "--config", config]) == EXIT_SAFE


def test_missing_scenario_exits_two(tmp_path):
    assert main(["--scenario", str(tmp_path / "missing.json")]) == EXIT_ERROR


def test_invalid_config_exits_two(write):
    path = write("safe.json", scenario(0.0, object_y=10.0))
    config = write("config.json", {"rss": {"lead_deceleration": 0.0}})
    assert main(["--scenario", path, "--config", config]) == EXIT_ERROR


def test_malformed_scenario_exits_two(write):
    assert main(["--scenario", write("broken.json", "{oops")]) == EXIT_ERROR


def test_invalid_ego_exits_two(write):
    data = scenario(0.0, object_y=10.0)
    data["ego"] = []
    assert main(["--scenario", write("empty.json", data)]) == EXIT_ERROR


def test_log_file_receives_report(write, tmp_path, capsys):
    path = write("unsafe.json", scenario(20.0))
    log_path = tmp_path / "run.log"
    assert main(["--scenario", path, "--log", str(log_path)]) == EXIT_UNSAFE
    text = log_path.read_text(encoding="utf-8")
    assert text.startswith("Safety Check Log")
    assert "[VERDICT] UNSAFE" in text
    assert "[VERDICT] UNSAFE" in capsys.readouterr().out


def test_parse_scenario_shape_types():
    data = {
        "ego": samples(0.0, 1.0),
        "objects": [
            {"id": "a", "shape": {"type": "polygon", "footprint": [[1, 0], [0, 1], [-1, 0]]},
             "trajectory": samples(5.0, 0.0)},
            {"id": "b", "shape": {"type": "cylinder", "radius": 0.4},
             "trajectory": samples(8.0, 0.0), "is_stationary": True},
        ],
    }
    ego, objects = parse_scenario(data)
    assert len(ego) == 5
    assert [o.shape.kind for o in objects] == [ShapeKind.POLYGON, ShapeKind.CYLINDER]
    assert objects[1].is_stationary is True
    assert objects[1].shape.dimensions == (0.8, 0.8)


@pytest.mark.parametrize("data", [
    {"objects": []},
    {"ego": [{"time": 0.0, "x": 0.0, "y": 0.0, "speed": 1.0}]},
    {"ego": [], "objects": [{"id": "a", "shape": {"type": "sphere"}, "trajectory": []}]},
    {"ego": [], "objects": [{"id": "a", "shape": {"type": "bounding_box"}, "trajectory": []}]},
])
def test_parse_scenario_rejects_malformed_input(data):
    with pytest.raises(InvalidInputError):
        parse_scenario(data)


def test_objects_must_be_a_list(write):
    data = scenario(0.0, object_y=10.0)
    data["objects"] = 5
    with pytest.raises(InvalidInputError, match="objects"):
        parse_scenario(data)
    assert main(["--scenario", write("scalar.json", data)]) == EXIT_ERROR


def test_unknown_log_level_is_a_usage_error(write, capsys):
    path = write("safe.json", scenario(0.0, object_y=10.0))
    with pytest.raises(SystemExit) as excinfo:
        main(["--scenario", path, "--log-level", "LOUD"])
    assert excinfo.value.code == EXIT_ERROR
    assert "invalid choice" in capsys.readouterr().err


def test_log_level_is_case_insensitive(write):
    path = write("safe.json", scenario(0.0, object_y=10.0))
    assert main(["--scenario", path, "--log-level", "debug"]) == EXIT_SAFE


def test_setup_logging_rejects_unknown_level():
    with pytest.raises(ValueError):
        setup_logging("LOUD")

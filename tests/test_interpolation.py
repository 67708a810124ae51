import math

import numpy as np
import pytest

from path_safety.interpolation import filter_by_time_horizon, interpolate_pose
from path_safety.vehicle_state import PoseSample


def make_path():
    return (
        PoseSample(time=0.0, x=0.0, y=0.0, velocity=1.0),
        PoseSample(time=1.0, x=1.0, y=0.0, velocity=2.0),
        PoseSample(time=2.0, x=2.0, y=0.0, velocity=3.0),
    )


def test_interpolates_position_and_velocity_mid_segment():
    result = interpolate_pose(make_path(), 0.5)
    assert result is not None
    assert result.time == pytest.approx(0.5)
    assert result.x == pytest.approx(0.5)
    assert result.velocity == pytest.approx(1.5)


def test_boundary_times_return_samples_unchanged():
    path = make_path()
    start = interpolate_pose(path, 0.0)
    end = interpolate_pose(path, 2.0)
    assert start == path[0]
    assert start.x == 0.0 and start.velocity == 1.0
    assert end == path[2]
    assert end.x == 2.0 and end.velocity == 3.0


def test_every_breakpoint_is_reproduced_exactly():
    path = make_path()
    for sample in path:
        assert interpolate_pose(path, sample.time) is sample


@pytest.mark.parametrize("query", [-1.0, 3.0, float("nan"), float("inf")])
def test_out_of_range_queries_are_absent(query):
    assert interpolate_pose(make_path(), query) is None


def test_empty_path_is_absent():
    assert interpolate_pose((), 1.0) is None


def test_reversed_path_fails_closed():
    reversed_path = (
        PoseSample(time=2.0, x=0.0, y=0.0, velocity=1.0),
        PoseSample(time=1.0, x=1.0, y=0.0, velocity=2.0),
        PoseSample(time=0.0, x=2.0, y=0.0, velocity=3.0),
    )
    assert interpolate_pose(reversed_path, 1.5) is None
    assert interpolate_pose(reversed_path, 2.0) is None


def test_partially_non_monotonic_path_fails_closed():
    path = (
        PoseSample(time=0.0, x=0.0, y=0.0),
        PoseSample(time=2.0, x=2.0, y=0.0),
        PoseSample(time=1.0, x=1.0, y=0.0),
        PoseSample(time=3.0, x=3.0, y=0.0),
    )
    assert interpolate_pose(path, 0.5) is None


def test_duplicated_time_returns_first_matching_sample():
    path = (
        PoseSample(time=0.0, x=0.0, y=0.0, velocity=1.0),
        PoseSample(time=0.0, x=1.0, y=0.0, velocity=2.0),
        PoseSample(time=1.0, x=2.0, y=0.0, velocity=3.0),
    )
    result = interpolate_pose(path, 0.0)
    assert result.x == 0.0
    assert result.velocity == 1.0
    # (0.0, x=1.0) -> (1.0, x=2.0) bracket
    assert interpolate_pose(path, 0.5).x == pytest.approx(1.5)


def test_single_sample_only_matches_exact_time():
    path = (PoseSample(time=1.0, x=5.0, y=0.0, velocity=2.0),)
    assert interpolate_pose(path, 1.0) is path[0]
    assert interpolate_pose(path, 1.1) is None
    assert interpolate_pose(path, 0.9) is None


def test_result_lies_on_bracketing_segment():
    path = (
        PoseSample(time=0.0, x=0.0, y=0.0),
        PoseSample(time=0.3, x=1.0, y=2.0),
        PoseSample(time=1.7, x=4.0, y=-1.0),
        PoseSample(time=2.0, x=6.0, y=0.0),
    )
    for t in np.linspace(0.0, 2.0, 41):
        result = interpolate_pose(path, float(t))
        assert result is not None
        idx = next(i for i, p in enumerate(path) if p.time >= t)
        lo, hi = path[max(idx - 1, 0)], path[idx]
        assert min(lo.x, hi.x) - 1e-9 <= result.x <= max(lo.x, hi.x) + 1e-9
        assert min(lo.y, hi.y) - 1e-9 <= result.y <= max(lo.y, hi.y) + 1e-9


def test_heading_uses_shortest_arc():
    quarter = (
        PoseSample(time=0.0, x=0.0, y=0.0, yaw=0.0),
        PoseSample(time=1.0, x=0.0, y=1.0, yaw=math.pi / 2),
    )
    assert interpolate_pose(quarter, 0.5).yaw == pytest.approx(math.pi / 4)

    # 3.0 rad -> -3.0 rad passes through pi, not through 0
    wrap = (
        PoseSample(time=0.0, x=0.0, y=0.0, yaw=3.0),
        PoseSample(time=1.0, x=-1.0, y=0.0, yaw=-3.0),
    )
    mid = interpolate_pose(wrap, 0.5)
    assert abs(mid.yaw) == pytest.approx(math.pi, abs=1e-6)


def test_filter_by_time_horizon_appends_horizon_sample():
    clipped = filter_by_time_horizon(make_path(), 1.5)
    assert [p.time for p in clipped] == pytest.approx([0.0, 1.0, 1.5])
    assert clipped[-1].x == pytest.approx(1.5)
    assert clipped[-1].velocity == pytest.approx(2.5)


def test_filter_by_time_horizon_keeps_exact_end():
    clipped = filter_by_time_horizon(make_path(), 1.0)
    assert len(clipped) == 2
    assert clipped[-1] == make_path()[1]


def test_filter_by_time_horizon_rejects_invalid_input():
    assert filter_by_time_horizon((), 1.0) == ()
    assert filter_by_time_horizon(make_path(), -1.0) == ()


def test_heading_interpolated_inside_each_segment():
    path = (
        PoseSample(time=0.0, x=0.0, y=0.0, yaw=0.0),
        PoseSample(time=1.0, x=1.0, y=0.0, yaw=0.2),
        PoseSample(time=3.0, x=2.0, y=1.0, yaw=0.6),
    )
    assert interpolate_pose(path, 0.25).yaw == pytest.approx(0.05)
    assert interpolate_pose(path, 2.0).yaw == pytest.approx(0.4)
    assert interpolate_pose(path, 2.0).y == pytest.approx(0.5)

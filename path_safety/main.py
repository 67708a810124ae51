#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
軌道安全判定 - メインエントリポイント
====================================

バージョン: v1.0

実行方法:
    # シナリオを既定パラメータで判定
    python -m path_safety.main --scenario scenario.json

    # パラメータ上書き付き
    python -m path_safety.main --scenario scenario.json --config configs/default_safety_check.json

    # 全違反を収集して JSON 出力
    python -m path_safety.main --scenario scenario.json --all-violations --json

終了コード:
    0: SAFE / 1: UNSAFE / 2: 設定・入力エラー

シナリオ形式 (JSON):
    {
      "ego": [{"time": 0.0, "x": 0.0, "y": 0.0, "yaw": 0.0, "velocity": 10.0}, ...],
      "objects": [
        {"id": "car_1", "is_stationary": false,
         "shape": {"type": "bounding_box", "length": 4.5, "width": 1.8},
         "trajectory": [...]}
      ]
    }
    shape.type: "polygon" (footprint: [[x, y], ...]) / "bounding_box" / "cylinder" (radius)
"""

import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional, Tuple, Union

from .evaluator import PredictedObjectPath, SafetyVerdict, evaluate
from .exceptions import ConfigurationError, InvalidInputError
from .footprint import ObjectShapeDescriptor
from .parameters import SafetyCheckConfig, load_config
from .safety import format_verdict_log, format_violation_log
from .utils import SCRIPT_VERSION, Logger, setup_logging
from .vehicle_state import PoseSample, Trajectory

EXIT_SAFE = 0
EXIT_UNSAFE = 1
EXIT_ERROR = 2

LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')

_POSE_KEYS = {f.name for f in dataclasses.fields(PoseSample)}


# ============================================================================
# Scenario parsing
# ============================================================================

def parse_trajectory(samples: Any, label: str) -> Trajectory:
    """JSON のサンプル列を Trajectory に変換"""
    if not isinstance(samples, list):
        raise InvalidInputError(f"{label}: trajectory must be a list")
    poses = []
    for i, sample in enumerate(samples):
        if not isinstance(sample, dict):
            raise InvalidInputError(f"{label}[{i}]: sample must be an object")
        unknown = set(sample) - _POSE_KEYS
        if unknown:
            raise InvalidInputError(f"{label}[{i}]: unknown keys {sorted(unknown)}")
        try:
            poses.append(PoseSample(**{k: float(v) for k, v in sample.items()}))
        except (TypeError, ValueError) as e:
            raise InvalidInputError(f"{label}[{i}]: {e}") from e
    return tuple(poses)


def parse_shape(shape: Any, label: str) -> ObjectShapeDescriptor:
    """JSON の形状記述を ObjectShapeDescriptor に変換"""
    if not isinstance(shape, dict) or "type" not in shape:
        raise InvalidInputError(f"{label}: shape must be an object with a 'type'")
    kind = shape["type"]
    try:
        if kind == "polygon":
            return ObjectShapeDescriptor.polygon(shape["footprint"])
        if kind == "bounding_box":
            return ObjectShapeDescriptor.bounding_box(shape["length"], shape["width"])
        if kind == "cylinder":
            return ObjectShapeDescriptor.cylinder(shape["radius"])
    except (KeyError, TypeError, ValueError) as e:
        raise InvalidInputError(f"{label}: malformed {kind} shape ({e!r})") from e
    raise InvalidInputError(f"{label}: unknown shape type {kind!r}")


def parse_scenario(data: Any) -> Tuple[Trajectory, List[PredictedObjectPath]]:
    if not isinstance(data, dict) or "ego" not in data:
        raise InvalidInputError("Scenario must be an object with an 'ego' trajectory")
    ego = parse_trajectory(data["ego"], "ego")

    raw_objects = data.get("objects", [])
    if not isinstance(raw_objects, list):
        raise InvalidInputError("'objects' must be a list")

    objects = []
    for i, obj in enumerate(raw_objects):
        if not isinstance(obj, dict):
            raise InvalidInputError(f"objects[{i}] must be an object")
        object_id = str(obj.get("id", i))
        objects.append(PredictedObjectPath(
            object_id=object_id,
            trajectory=parse_trajectory(obj.get("trajectory", []), f"objects[{object_id}]"),
            shape=parse_shape(obj.get("shape"), f"objects[{object_id}]"),
            is_stationary=bool(obj.get("is_stationary", False)),
        ))
    return ego, objects


def load_scenario(path: Union[str, Path]) -> Tuple[Trajectory, List[PredictedObjectPath]]:
    scenario_path = Path(path)
    if not scenario_path.exists():
        raise FileNotFoundError(f"Scenario not found: {scenario_path.resolve()}")
    with scenario_path.open("r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise InvalidInputError(f"Malformed JSON in {scenario_path}: {e}") from e
    return parse_scenario(data)


# ============================================================================
# Entry point
# ============================================================================

def run_check(
    scenario_path: Union[str, Path],
    config: SafetyCheckConfig,
    all_violations: bool = False,
) -> SafetyVerdict:
    ego, objects = load_scenario(scenario_path)
    check_params = config.collision_check
    if all_violations:
        check_params = dataclasses.replace(check_params, stop_at_first_violation=False)
    return evaluate(ego, objects, config.vehicle, config.margin, config.rss, check_params)


def _report(verdict: SafetyVerdict, as_json: bool, out) -> None:
    if as_json:
        out.write(json.dumps(verdict.to_dict(), indent=2) + "\n")
        return
    out.write(format_verdict_log(verdict) + "\n")
    for record in verdict.violations:
        out.write("  " + format_violation_log(record) + "\n")


def main(argv: Optional[list] = None) -> int:
    """メインエントリポイント"""
    parser = argparse.ArgumentParser(
        description=f"Trajectory safety check ({SCRIPT_VERSION})",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
実行例:
  python -m path_safety.main --scenario scenario.json
  python -m path_safety.main --scenario scenario.json --config configs/default_safety_check.json --json
        """
    )
    parser.add_argument('--scenario', type=str, required=True,
                        help='判定対象シナリオ (JSON)')
    parser.add_argument('--config', type=str, default=None,
                        help='パラメータ上書き用 JSON 設定ファイル')
    parser.add_argument('--all-violations', action='store_true',
                        help='最初の違反で打ち切らず全違反を収集')
    parser.add_argument('--json', action='store_true',
                        help='判定結果を JSON で出力')
    parser.add_argument('--log', type=str, default=None,
                        help='出力をログファイルにも保存')
    parser.add_argument('--log-level', type=str.upper, default='WARNING',
                        choices=LOG_LEVELS,
                        help='ライブラリのログレベル (デフォルト: WARNING)')

    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    out = Logger(args.log) if args.log else sys.stdout
    try:
        try:
            config = load_config(args.config) if args.config else SafetyCheckConfig()
            verdict = run_check(args.scenario, config, all_violations=args.all_violations)
        except (ConfigurationError, InvalidInputError, FileNotFoundError) as e:
            logging.getLogger("path_safety").error("%s: %s", type(e).__name__, e)
            return EXIT_ERROR

        _report(verdict, args.json, out)
        return EXIT_SAFE if verdict.is_safe else EXIT_UNSAFE
    finally:
        if isinstance(out, Logger):
            out.close()


if __name__ == "__main__":
    sys.exit(main())

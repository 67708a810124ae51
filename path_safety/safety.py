# -*- coding: utf-8 -*-
"""
path_safety/safety.py

RSS最小車間距離モデル & 安全ログ整形
====================================

目的:
    先行・後続の2エージェントが独立に制動する場合の最小縦方向距離 (RSS) を
    閉形式で計算する。時刻衝突余裕 (TTC) とログ整形もここに置く。

設計:
    - 純粋関数のみ、副作用なし
    - 減速度ゼロは RSSParameters 構築時に ConfigurationError で拒否済み
    - 非有限の速度は ValueError (非有限の距離を返さない)

参照:
    - RSS: Shalev-Shwartz et al., "On a Formal Model of Safe and Scalable
      Self-driving Cars", arXiv:1708.06374
"""

import math
from typing import TYPE_CHECKING, Optional

from .parameters import RSSParameters

if TYPE_CHECKING:
    from .evaluator import SafetyVerdict, ViolationRecord


# ============================================================================
# Core Safety Functions
# ============================================================================

def calc_minimum_gap(
    lead_velocity: float,
    follow_velocity: float,
    params: RSSParameters
) -> float:
    """
    Compute the RSS minimum safe longitudinal distance.

    The following agent keeps its speed through reaction_time + safety_time_margin,
    then brakes at follow_deceleration; the lead agent's own braking distance
    is credited back.

    Formula:
        d = v_f × (t_react + t_margin) + v_f²/(2·|a_f|) - v_l²/(2·|a_l|)
        d = max(d, min_threshold)

    Args:
        lead_velocity: 先行エージェント速度 [m/s]
        follow_velocity: 後続エージェント速度 [m/s]
        params: RSSパラメータ

    Returns:
        RSS安全距離 [m] (常に >= min_threshold >= 0)

    Raises:
        ValueError: 速度が非有限

    Example:
        >>> params = RSSParameters(reaction_time=1.0, safety_time_margin=1.0, min_threshold=3.0,
        ...                        lead_deceleration=-2.0, follow_deceleration=-1.0)
        >>> calc_minimum_gap(5.0, 10.0, params)
        63.75
    """
    if not (math.isfinite(lead_velocity) and math.isfinite(follow_velocity)):
        raise ValueError(
            f"Non-finite velocity: lead={lead_velocity!r}, follow={follow_velocity!r}"
        )

    reaction_dist = follow_velocity * (params.reaction_time + params.safety_time_margin)
    follow_brake_dist = (follow_velocity ** 2) / (2 * params.follow_deceleration_magnitude)
    lead_brake_dist = (lead_velocity ** 2) / (2 * params.lead_deceleration_magnitude)

    rss_dist = reaction_dist + follow_brake_dist - lead_brake_dist

    return max(rss_dist, params.min_threshold)


MIN_CLOSING_SPEED = 0.1  # [m/s]


def compute_ttc(
    gap: float,
    follow_velocity: float,
    lead_velocity: float,
    min_closing_speed: float = MIN_CLOSING_SPEED
) -> Optional[float]:
    """
    縦方向に整列した2エージェント間の衝突までの時間 (等速仮定)。

    後続が先行に min_closing_speed 以上で接近している場合のみ有限値を返す。
    隙間がすでにゼロ以下 (重なり) なら 0.0。

    Args:
        gap: 後続の前端から先行の後端までの縦方向隙間 [m]
        follow_velocity: 後続エージェント速度 [m/s]
        lead_velocity: 先行エージェント速度 [m/s]
        min_closing_speed: 接近とみなす最小の相対速度 [m/s]

    Returns:
        TTC [s]、接近していない・入力が非有限の場合は None

    Example:
        >>> compute_ttc(27.0, follow_velocity=15.0, lead_velocity=10.0)
        5.4
    """
    if not all(math.isfinite(v) for v in (gap, follow_velocity, lead_velocity)):
        return None

    closing_speed = follow_velocity - lead_velocity
    if closing_speed < min_closing_speed:
        return None
    return max(gap, 0.0) / closing_speed


# ============================================================================
# Logging Utilities
# ============================================================================

def format_violation_log(record: 'ViolationRecord') -> str:
    """
    Format a violation for logging with a standardized prefix.

    Args:
        record: 違反レコード

    Returns:
        整形済みログ文字列
    """
    prefix = "[UNSAFE-" + "+".join(c.name for c in record.criteria) + "]"

    gap_str = f"{record.longitudinal_gap:.1f}" if record.longitudinal_gap is not None else "N/A"
    rss_str = f"{record.rss_distance:.1f}" if record.rss_distance is not None else "N/A"
    ttc_str = f"{record.ttc:.2f}" if record.ttc is not None else "inf"
    if record.is_object_front is None:
        side = "side"
    else:
        side = "front" if record.is_object_front else "rear"

    return (
        f"{prefix} obj={record.object_id} t={record.time:.2f}s ({side}): "
        f"gap={gap_str}m, RSS={rss_str}m, TTC={ttc_str}s, "
        f"v_ego={record.ego_velocity:.1f}m/s, v_obj={record.object_velocity:.1f}m/s"
    )


def format_verdict_log(verdict: 'SafetyVerdict') -> str:
    """
    Format an overall verdict summary.

    Args:
        verdict: 判定結果

    Returns:
        整形済みログ文字列
    """
    status = "SAFE" if verdict.is_safe else "UNSAFE"
    unsafe_objects = [r.object_id for r in verdict.object_results if not r.is_safe]
    skipped = sum(len(r.skipped_times) for r in verdict.object_results)
    return (
        f"[VERDICT] {status}: objects={len(verdict.object_results)}, "
        f"unsafe={unsafe_objects}, violations={len(verdict.violations)}, "
        f"skipped_instants={skipped}"
    )

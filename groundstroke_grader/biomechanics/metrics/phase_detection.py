"""Detect groundstroke sub-phases (coil, acceleration, impact, follow-through, split-step).

Phases are located relative to a single impact anchor inside one stroke window:
- Impact: first interior energy peak with neutral/decelerating rotation, neutral
  shoulder coil and the wrist near the body mid-line; falls back to the global
  energy maximum of the window.
- Coil: searched backward from the anchor for a loaded, side-consistent posture.
- Acceleration: first rotation flip to positive between coil end and impact.
- Follow-through: wrist crosses to the stroke side after impact, until energy
  decays or the wrist returns toward the mid-line.
- Split-step: wide stance, low hands and low energy after the last phase.

At most one segment per phase is returned, in canonical order, each starting
strictly after the previous one.
"""

from __future__ import annotations

from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from groundstroke_grader.biomechanics.config import ANALYSIS_CONFIG, ANALYSIS_LOGGER as logger, PhaseThresholds
from groundstroke_grader.models import MotionPoint, PhaseSegment, StrokePhase, StrokeType

IndexRange = Tuple[int, int]


def variance_confidence(values: Sequence[float], *, fallback: float, scale: float | None = None) -> float:
    """``1 - min(1, var / scale)`` using the sample variance; ``fallback`` for < 2 values."""
    if len(values) < 2:
        return fallback
    denom = scale if scale is not None else ANALYSIS_CONFIG.phases.variance_scale
    variance = float(np.var(np.asarray(values, dtype=float), ddof=1))
    if not np.isfinite(variance) or denom <= 0:
        return 0.0
    return float(max(0.0, 1.0 - min(variance / denom, 1.0)))


def is_split_step(point: MotionPoint, thresholds: PhaseThresholds | None = None) -> bool:
    """Wide stance, hands low and low energy: the ready posture between strokes."""
    t = thresholds or ANALYSIS_CONFIG.phases
    stance_wide = point.hip_span > t.split_min_hip_span and point.shoulder_span > t.split_min_shoulder_span
    hands_low = point.wrist_height_rel < t.split_max_wrist_height
    return stance_wide and hands_low and point.energy < t.split_max_energy


def _is_local_peak(values: np.ndarray, i: int) -> bool:
    if i <= 0 or i >= len(values) - 1:
        return False
    return bool(values[i] > values[i - 1] and values[i] > values[i + 1])


def find_impact_anchor(points: Sequence[MotionPoint], thresholds: PhaseThresholds | None = None) -> Optional[int]:
    """Index of the impact frame within ``points``, or ``None`` for an empty window."""
    if not points:
        return None
    t = thresholds or ANALYSIS_CONFIG.phases
    energy = np.array([p.energy for p in points], dtype=float)
    for i in range(1, len(points) - 1):
        point = points[i]
        rot_neutral = abs(point.rot_sign) < t.impact_neutral_rotation or points[i + 1].rot_sign < point.rot_sign
        if (
            _is_local_peak(energy, i)
            and rot_neutral
            and abs(point.shoulder_coil_factor) < t.impact_neutral_shoulder
            and abs(point.wrist_x_offset_rel) < t.impact_wrist_mid
        ):
            return i
    return int(np.argmax(energy))


def _find_coil(
    points: Sequence[MotionPoint], impact: int, stroke_type: StrokeType, t: PhaseThresholds
) -> Optional[IndexRange]:
    lo = max(0, impact - t.coil_search_frames)
    side = stroke_type.side_sign
    for i in range(impact - 1, lo - 1, -1):
        point = points[i]
        loaded = (
            point.shoulder_coil_factor < t.coil_shoulder
            and point.rot_sign < 0
            and point.wrist_height_rel < t.coil_wrist_height
        )
        if not (loaded and side * point.wrist_x_offset_rel > t.coil_wrist_offset):
            continue
        start = i
        while start > lo:
            before = points[start - 1]
            if before.shoulder_coil_factor < t.coil_shoulder and before.rot_sign <= points[start].rot_sign:
                start -= 1
            else:
                break
        return (start, i)
    return None


def _find_acceleration(
    points: Sequence[MotionPoint], energy: np.ndarray, impact: int, coil_end: Optional[int], t: PhaseThresholds
) -> Optional[IndexRange]:
    lo = (coil_end if coil_end is not None else max(0, impact - t.acceleration_search_frames)) + 1
    start: Optional[int] = None
    for i in range(max(1, lo), impact):
        if points[i - 1].rot_sign <= 0 < points[i].rot_sign:
            start = i
            break
    if start is None:
        return None

    end = impact - 1
    for i in range(impact - 1, start, -1):
        growth = energy[i] - energy[i - 1]
        previous_growth = energy[i - 1] - energy[max(0, i - 2)]
        if growth <= previous_growth:
            end = i
            break
    return (start, max(start, end))


def _find_follow_through(
    points: Sequence[MotionPoint], energy: np.ndarray, impact: int, stroke_type: StrokeType, t: PhaseThresholds
) -> Optional[IndexRange]:
    side = stroke_type.side_sign
    n = len(points)
    start = next((i for i in range(impact + 1, n) if side * points[i].wrist_x_offset_rel > t.follow_wrist_offset), None)
    if start is None:
        return None
    peak = energy[impact]
    for i in range(start, n - 1):
        if energy[i] < t.follow_energy_decay * peak or abs(points[i].wrist_x_offset_rel) < t.follow_wrist_return:
            return (start, i)
    return (start, n - 1)


def _find_split_step(
    points: Sequence[MotionPoint], energy: np.ndarray, after: int, t: PhaseThresholds
) -> Optional[IndexRange]:
    n = len(points)
    start = next((i for i in range(after + 1, n) if is_split_step(points[i], t)), None)
    if start is None:
        return None
    end = start
    while end < n - 1 and energy[end + 1] <= t.split_max_energy:
        end += 1
    return (start, end)


def _confidence_source(phase: StrokePhase, frames: Sequence[MotionPoint]) -> List[float]:
    energies = [p.energy for p in frames]
    if phase is StrokePhase.COIL:
        return [p.shoulder_coil_factor for p in frames]
    if phase is StrokePhase.ACCELERATION:
        return [abs(b - a) for a, b in zip(energies, energies[1:])]
    if phase is StrokePhase.IMPACT:
        return energies[:1]
    if phase is StrokePhase.FOLLOW_THROUGH:
        return [max(0.0, a - b) for a, b in zip(energies, energies[1:])]
    return [1.0 - abs(p.wrist_x_offset_rel) for p in frames]


_SCORE_PROXIES: Dict[StrokePhase, Callable[[Sequence[MotionPoint]], float]] = {
    StrokePhase.COIL: lambda frames: max(-p.shoulder_coil_factor for p in frames),
    StrokePhase.ACCELERATION: lambda frames: frames[-1].energy,
    StrokePhase.IMPACT: lambda frames: max(p.energy for p in frames),
    StrokePhase.FOLLOW_THROUGH: lambda frames: frames[0].energy,
    StrokePhase.SPLIT_STEP: lambda frames: max(p.hip_span + p.shoulder_span for p in frames),
}


def phase_metrics(frames: Sequence[MotionPoint]) -> Dict[str, float]:
    energies = np.array([p.energy for p in frames], dtype=float)
    start, end = frames[0].timestamp, frames[-1].timestamp
    return {
        "start_time": float(start),
        "end_time": float(end),
        "duration": float(end - start),
        "frame_count": float(len(frames)),
        "peak_energy": float(energies.max()),
        "mean_energy": float(energies.mean()),
    }


def make_phase(
    phase: StrokePhase,
    points: Sequence[MotionPoint],
    bounds: IndexRange,
    thresholds: PhaseThresholds | None = None,
) -> PhaseSegment:
    """Build a PhaseSegment over the inclusive index range ``bounds``."""
    t = thresholds or ANALYSIS_CONFIG.phases
    start, end = bounds
    frames = tuple(points[start : end + 1])
    confidence = variance_confidence(
        _confidence_source(phase, frames), fallback=t.singleton_confidence, scale=t.variance_scale
    )
    return PhaseSegment(
        phase=phase,
        confidence=confidence,
        frames=frames,
        score=float(_SCORE_PROXIES[phase](frames)),
        metrics=phase_metrics(frames),
    )


def order_phases(segments: Sequence[PhaseSegment]) -> Tuple[PhaseSegment, ...]:
    """Keep the earliest segment per phase, in canonical order, with strictly increasing start times."""
    ordered: List[PhaseSegment] = []
    last_start = float("-inf")
    for kind in StrokePhase:
        candidates = sorted((s for s in segments if s.phase is kind), key=lambda s: s.start_time)
        if not candidates:
            continue
        first = candidates[0]
        if first.start_time > last_start:
            ordered.append(first)
            last_start = first.start_time
    return tuple(ordered)


def detect_phases(
    points: Sequence[MotionPoint],
    stroke_type: StrokeType,
    thresholds: PhaseThresholds | None = None,
) -> Tuple[PhaseSegment, ...]:
    """Detect the sub-phases of one stroke window.

    Args:
        points: the window's MotionPoints ordered by timestamp.
        stroke_type: classified type; mirrors the side-dependent wrist thresholds.
        thresholds: optional PhaseThresholds override.

    Returns:
        Up to five PhaseSegments in canonical order; empty when the window has
        too few points.
    """
    t = thresholds or ANALYSIS_CONFIG.phases
    if len(points) < t.min_points:
        logger.debug("Window of %d points is too short for phase detection.", len(points))
        return ()

    energy = np.array([p.energy for p in points], dtype=float)
    impact = find_impact_anchor(points, t)
    if impact is None:
        return ()

    found: List[PhaseSegment] = []
    coil = _find_coil(points, impact, stroke_type, t)
    if coil is not None and coil[0] < coil[1]:
        found.append(make_phase(StrokePhase.COIL, points, coil, t))

    acceleration = _find_acceleration(points, energy, impact, coil[1] if coil else None, t)
    if acceleration is not None:
        found.append(make_phase(StrokePhase.ACCELERATION, points, acceleration, t))

    found.append(make_phase(StrokePhase.IMPACT, points, (impact, impact), t))
    last_end = impact

    follow = _find_follow_through(points, energy, impact, stroke_type, t)
    if follow is not None:
        found.append(make_phase(StrokePhase.FOLLOW_THROUGH, points, follow, t))
        last_end = follow[1]

    split = _find_split_step(points, energy, last_end, t)
    if split is not None:
        found.append(make_phase(StrokePhase.SPLIT_STEP, points, split, t))

    return order_phases(found)


__all__ = [
    "variance_confidence",
    "is_split_step",
    "find_impact_anchor",
    "make_phase",
    "phase_metrics",
    "order_phases",
    "detect_phases",
]

"""Build the per-frame-pair motion series from ordered pose frames.

Each consecutive frame pair is turned into one ``MotionPoint`` independently,
so the pairs are fanned out to a bounded thread pool and joined behind a sort
barrier. Pairs whose metrics are undefined are dropped.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence

from groundstroke_grader.biomechanics.config import ANALYSIS_CONFIG, ANALYSIS_LOGGER as logger, EnergyWeights
from groundstroke_grader.biomechanics.metrics import kinematics as km
from groundstroke_grader.models import MotionPoint, PoseFrame

DEFAULT_MAX_WORKERS = 4


def compute_motion_point(
    prev_prev: PoseFrame,
    prev: PoseFrame,
    next: PoseFrame,
    *,
    weights: EnergyWeights | None = None,
) -> Optional[MotionPoint]:
    """Derive the MotionPoint for the ``prev -> next`` transition, or ``None``."""
    dt = next.timestamp - prev.timestamp
    if dt <= 0:
        return None

    shoulder_coil = km.shoulder_coil_factor(prev.joints, next.joints)
    hip_coil = km.hip_coil_factor(prev.joints, next.joints)
    if shoulder_coil is None or hip_coil is None:
        return None

    wrist_height = km.wrist_height_rel(next.joints)
    wrist_offset = km.wrist_x_offset_rel(next.joints)
    if wrist_height is None or wrist_offset is None:
        return None

    energy = km.energy(prev_prev.joints, prev.joints, next.joints, dt, weights=weights or ANALYSIS_CONFIG.energy)
    if energy is None:
        return None

    shoulder_span = km.shoulder_span(next.joints)
    hip_span = km.hip_span(next.joints)
    forearm = km.forearm_angular_speed(prev.joints, next.joints, dt)
    wrist_speed = km.wrist_linear_speed(prev.joints, next.joints, dt)
    com = km.com_speed(prev.joints, next.joints, dt)
    # energy() already required all of these; the guard keeps the types narrow.
    if None in (shoulder_span, hip_span, forearm, wrist_speed, com):
        return None

    return MotionPoint(
        timestamp=next.timestamp,
        frame_id=next.frame_id,
        energy=energy,
        shoulder_coil_factor=shoulder_coil,
        hip_coil_factor=hip_coil,
        rot_sign=km.rotation_sign(shoulder_coil),
        shoulder_span=shoulder_span,  # type: ignore[arg-type]
        hip_span=hip_span,  # type: ignore[arg-type]
        wrist_x_offset_rel=wrist_offset,
        wrist_height_rel=wrist_height,
        forearm_angular_speed=forearm,  # type: ignore[arg-type]
        wrist_linear_speed=wrist_speed,  # type: ignore[arg-type]
        com_speed=com,  # type: ignore[arg-type]
        foot_span=km.foot_span(next.joints),
        hand_speed_ratio=km.hand_speed_ratio(prev.joints, next.joints, dt),
    )


def build_motion_series(
    frames: Sequence[PoseFrame],
    *,
    max_workers: int = DEFAULT_MAX_WORKERS,
    weights: EnergyWeights | None = None,
) -> List[MotionPoint]:
    """Compute the motion series for ``frames`` on a bounded worker pool.

    Frames are ordered by timestamp first. The result holds at most one point
    per consecutive pair and is sorted by timestamp regardless of the order in
    which workers finish.
    """
    ordered = sorted(frames, key=lambda frame: frame.timestamp)
    if len(ordered) < 2:
        return []

    def _job(i: int) -> Optional[MotionPoint]:
        return compute_motion_point(ordered[max(i - 2, 0)], ordered[i - 1], ordered[i], weights=weights)

    workers = max(1, int(max_workers))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [pool.submit(_job, i) for i in range(1, len(ordered))]
        results = [future.result() for future in futures]

    points = sorted((point for point in results if point is not None), key=lambda point: point.timestamp)
    dropped = (len(ordered) - 1) - len(points)
    if dropped:
        logger.debug("Dropped %d of %d frame pairs with undefined metrics.", dropped, len(ordered) - 1)
    return points


__all__ = ["DEFAULT_MAX_WORKERS", "compute_motion_point", "build_motion_series"]

"""Span, coil, speed and energy computations for 2D groundstroke pose analysis.

Every function takes one or two joint maps (``Joint -> (x, y)``, normalized
coordinates with the y axis pointing up) and returns ``None`` when a required
joint is missing, a span is non-positive, or ``dt <= 0``. Callers must drop
the derived sample rather than substitute a default: an imputed zero would
drag the energy baseline down and create spurious stroke valleys.
"""

from __future__ import annotations

import math
from typing import Mapping, Optional, Tuple

from groundstroke_grader.biomechanics.config import ANALYSIS_CONFIG, EnergyWeights
from groundstroke_grader.models import Joint, Point

JointMap = Mapping[Joint, Point]

SHOULDERS: Tuple[Joint, Joint] = (Joint.LEFT_SHOULDER, Joint.RIGHT_SHOULDER)
HIPS: Tuple[Joint, Joint] = (Joint.LEFT_HIP, Joint.RIGHT_HIP)
ANKLES: Tuple[Joint, Joint] = (Joint.LEFT_ANKLE, Joint.RIGHT_ANKLE)


def _first_joint(joints: JointMap, *names: Joint) -> Optional[Point]:
    for name in names:
        point = joints.get(name)
        if point is not None:
            return point
    return None


def _hitting_wrist(joints: JointMap) -> Optional[Point]:
    return _first_joint(joints, Joint.RIGHT_WRIST, Joint.LEFT_WRIST)


def _midpoint(joints: JointMap, a: Joint, b: Joint) -> Optional[Point]:
    pa, pb = joints.get(a), joints.get(b)
    if pa is None or pb is None:
        return None
    return ((pa[0] + pb[0]) / 2.0, (pa[1] + pb[1]) / 2.0)


def _distance(a: Point, b: Point) -> float:
    return math.hypot(b[0] - a[0], b[1] - a[1])


def span(joints: JointMap, a: Joint, b: Joint) -> Optional[float]:
    """Euclidean distance between two named joints."""
    pa, pb = joints.get(a), joints.get(b)
    if pa is None or pb is None:
        return None
    return _distance(pa, pb)


def shoulder_span(joints: JointMap) -> Optional[float]:
    return span(joints, *SHOULDERS)


def hip_span(joints: JointMap) -> Optional[float]:
    return span(joints, *HIPS)


def foot_span(joints: JointMap) -> Optional[float]:
    return span(joints, *ANKLES)


def coil_factor(prev: JointMap, next: JointMap, a: Joint, b: Joint) -> Optional[float]:
    """Relative span change ``(span(next) - span(prev)) / span(prev)``.

    Undefined when the earlier span is missing or ``<= 0``; the later span is
    never used as a denominator.
    """
    prev_span = span(prev, a, b)
    if prev_span is None or prev_span <= 0:
        return None
    next_span = span(next, a, b)
    if next_span is None:
        return None
    return (next_span - prev_span) / prev_span


def shoulder_coil_factor(prev: JointMap, next: JointMap) -> Optional[float]:
    return coil_factor(prev, next, *SHOULDERS)


def hip_coil_factor(prev: JointMap, next: JointMap) -> Optional[float]:
    return coil_factor(prev, next, *HIPS)


def rotation_sign(value: float) -> float:
    """Discrete direction of a coil factor: -1, 0 or +1."""
    if value > 0:
        return 1.0
    if value < 0:
        return -1.0
    return 0.0


def wrist_height_rel(joints: JointMap) -> Optional[float]:
    """Wrist height above the shoulder midpoint, in shoulder spans (negative = below)."""
    width = shoulder_span(joints)
    if width is None or width <= 0:
        return None
    mid = _midpoint(joints, *SHOULDERS)
    wrist = _hitting_wrist(joints)
    if mid is None or wrist is None:
        return None
    return (wrist[1] - mid[1]) / width


def wrist_x_offset_rel(joints: JointMap) -> Optional[float]:
    """Horizontal wrist offset from the root joint, in shoulder spans."""
    width = shoulder_span(joints)
    if width is None or width <= 0:
        return None
    root = joints.get(Joint.ROOT)
    wrist = _hitting_wrist(joints)
    if root is None or wrist is None:
        return None
    return (wrist[0] - root[0]) / width


def _angle_delta(a1: float, a0: float) -> float:
    """Minimal signed difference ``a1 - a0`` wrapped to [-pi, pi]."""
    d = a1 - a0
    while d > math.pi:
        d -= 2 * math.pi
    while d < -math.pi:
        d += 2 * math.pi
    return d


def _angle_between(v1: Point, v2: Point) -> float:
    mag1 = math.hypot(*v1)
    mag2 = math.hypot(*v2)
    if mag1 <= 0 or mag2 <= 0:
        return 0.0
    cos_angle = (v1[0] * v2[0] + v1[1] * v2[1]) / (mag1 * mag2)
    return math.acos(min(1.0, max(-1.0, cos_angle)))


def forearm_angle(joints: JointMap) -> Optional[float]:
    """Angle (radians) between the upper arm (shoulder->elbow) and forearm (elbow->wrist)."""
    shoulder = _first_joint(joints, Joint.RIGHT_SHOULDER, Joint.LEFT_SHOULDER)
    elbow = _first_joint(joints, Joint.RIGHT_ELBOW, Joint.LEFT_ELBOW)
    wrist = _hitting_wrist(joints)
    if shoulder is None or elbow is None or wrist is None:
        return None
    upper = (elbow[0] - shoulder[0], elbow[1] - shoulder[1])
    lower = (wrist[0] - elbow[0], wrist[1] - elbow[1])
    return _angle_between(upper, lower)


def forearm_angular_speed(prev: JointMap, next: JointMap, dt: float) -> Optional[float]:
    """Forearm angular speed normalized by pi: ``|wrap(angle_next - angle_prev)| / (dt * pi)``."""
    if dt <= 0:
        return None
    prev_angle = forearm_angle(prev)
    next_angle = forearm_angle(next)
    if prev_angle is None or next_angle is None:
        return None
    return abs(_angle_delta(next_angle, prev_angle)) / (dt * math.pi)


def _point_speed(p0: Optional[Point], p1: Optional[Point], dt: float) -> Optional[float]:
    if dt <= 0 or p0 is None or p1 is None:
        return None
    return _distance(p0, p1) / dt


def wrist_linear_speed(prev: JointMap, next: JointMap, dt: float) -> Optional[float]:
    return _point_speed(_hitting_wrist(prev), _hitting_wrist(next), dt)


def com_speed(prev: JointMap, next: JointMap, dt: float) -> Optional[float]:
    """Speed of the hip midpoint, used as a centre-of-mass proxy."""
    return _point_speed(_midpoint(prev, *HIPS), _midpoint(next, *HIPS), dt)


def hand_speed_ratio(prev: JointMap, next: JointMap, dt: float) -> Optional[float]:
    """Left wrist speed divided by right wrist speed; undefined when the right wrist is still."""
    left = _point_speed(prev.get(Joint.LEFT_WRIST), next.get(Joint.LEFT_WRIST), dt)
    right = _point_speed(prev.get(Joint.RIGHT_WRIST), next.get(Joint.RIGHT_WRIST), dt)
    if left is None or right is None or right == 0:
        return None
    return left / right


def energy(
    prev_prev: JointMap,
    prev: JointMap,
    next: JointMap,
    dt: float,
    *,
    weights: EnergyWeights | None = None,
) -> Optional[float]:
    """Composite kinematic energy of the ``prev -> next`` transition.

    energy = 0.5 * (0.25*wrist^2 + 0.25*forearm^2 + 0.25*dShoulderCoil^2
                    + 0.20*dHipCoil^2 + 0.05*com^2)

    where each coil delta compares the ``prev -> next`` coil factor with the
    ``prev_prev -> prev`` one. Returns ``None`` if any term is undefined.
    """
    w = weights or ANALYSIS_CONFIG.energy
    if dt <= 0:
        return None

    wrist = wrist_linear_speed(prev, next, dt)
    if wrist is None:
        return None
    forearm = forearm_angular_speed(prev, next, dt)
    if forearm is None:
        return None

    shoulder_before = shoulder_coil_factor(prev_prev, prev)
    shoulder_after = shoulder_coil_factor(prev, next)
    if shoulder_before is None or shoulder_after is None:
        return None
    hip_before = hip_coil_factor(prev_prev, prev)
    hip_after = hip_coil_factor(prev, next)
    if hip_before is None or hip_after is None:
        return None

    com = com_speed(prev, next, dt)
    if com is None:
        return None

    d_shoulder = shoulder_after - shoulder_before
    d_hip = hip_after - hip_before
    return w.scale * (
        w.wrist_linear * wrist * wrist
        + w.forearm_angular * forearm * forearm
        + w.shoulder_coil * d_shoulder * d_shoulder
        + w.hip_coil * d_hip * d_hip
        + w.com * com * com
    )


__all__ = [
    "span",
    "shoulder_span",
    "hip_span",
    "foot_span",
    "coil_factor",
    "shoulder_coil_factor",
    "hip_coil_factor",
    "rotation_sign",
    "wrist_height_rel",
    "wrist_x_offset_rel",
    "forearm_angle",
    "forearm_angular_speed",
    "wrist_linear_speed",
    "com_speed",
    "hand_speed_ratio",
    "energy",
]

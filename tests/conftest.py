from __future__ import annotations

from typing import Callable, Dict, List

import pytest

from groundstroke_grader.models import Joint, MotionPoint, Point, PoseFrame

FRAME_DT = 0.05

# Rigid body pose, y axis up: shoulder span 0.2, right wrist 1.25 spans right of the root.
BASE_POSE: Dict[Joint, Point] = {
    Joint.LEFT_SHOULDER: (0.40, 0.70),
    Joint.RIGHT_SHOULDER: (0.60, 0.70),
    Joint.LEFT_ELBOW: (0.35, 0.60),
    Joint.RIGHT_ELBOW: (0.65, 0.60),
    Joint.LEFT_WRIST: (0.30, 0.55),
    Joint.RIGHT_WRIST: (0.75, 0.60),
    Joint.LEFT_HIP: (0.45, 0.40),
    Joint.RIGHT_HIP: (0.55, 0.40),
    Joint.LEFT_ANKLE: (0.42, 0.05),
    Joint.RIGHT_ANKLE: (0.58, 0.05),
    Joint.ROOT: (0.50, 0.40),
}


def shifted_pose(dx: float, pose: Dict[Joint, Point] | None = None) -> Dict[Joint, Point]:
    return {joint: (x + dx, y) for joint, (x, y) in (pose or BASE_POSE).items()}


def rally_displacements(n_pairs: int = 40, pauses=(6, 36), bump_centers=(21,)) -> List[float]:
    """Per-pair horizontal body displacement: slow drift, full stops at ``pauses`` and a fast swing per bump."""
    out = []
    for i in range(1, n_pairs + 1):
        if i in pauses:
            out.append(0.0)
            continue
        swing = max(max(0.0, 1.0 - abs(i - center) / 6.0) for center in bump_centers)
        out.append(0.002 + 0.008 * swing)
    return out


def build_rally_frames(n_pairs: int = 40, pauses=(6, 36), bump_centers=(21,)) -> List[PoseFrame]:
    frames = [PoseFrame(timestamp=0.0, frame_id="f0", joints=shifted_pose(0.0))]
    offset = 0.0
    for i, d in enumerate(rally_displacements(n_pairs, pauses, bump_centers), start=1):
        offset += d
        frames.append(PoseFrame(timestamp=i * FRAME_DT, frame_id=f"f{i}", joints=shifted_pose(offset)))
    return frames


@pytest.fixture
def rally_frames() -> List[PoseFrame]:
    """41 frames whose motion series has valleys at points 5 and 35 and one peak at point 20."""
    return build_rally_frames()


def make_point(
    index: int,
    *,
    energy: float = 0.1,
    offset: float = 0.25,
    shoulder_coil: float = 0.0,
    rot: float = 0.0,
    shoulder_span: float = 0.3,
    hip_span: float = 0.2,
    wrist_height: float = 0.0,
    dt: float = FRAME_DT,
) -> MotionPoint:
    return MotionPoint(
        timestamp=index * dt,
        frame_id=f"f{index}",
        energy=energy,
        shoulder_coil_factor=shoulder_coil,
        hip_coil_factor=0.0,
        rot_sign=rot,
        shoulder_span=shoulder_span,
        hip_span=hip_span,
        wrist_x_offset_rel=offset,
        wrist_height_rel=wrist_height,
        forearm_angular_speed=0.0,
        wrist_linear_speed=0.0,
        com_speed=0.0,
    )


@pytest.fixture
def point_factory() -> Callable[..., MotionPoint]:
    return make_point


def bump_energies(n: int = 40, valleys=(4, 34), center: int = 20, base: float = 0.1) -> List[float]:
    """Flat energy with near-zero dips at ``valleys`` and a triangular swing peaking at 0.5."""
    values = []
    for i in range(n):
        if i in valleys:
            values.append(0.01)
        else:
            values.append(base + 0.4 * max(0.0, 1.0 - abs(i - center) / 6.0))
    return values


@pytest.fixture
def energy_bump() -> Callable[..., List[float]]:
    return bump_energies


@pytest.fixture
def rally_builder() -> Callable[..., List[PoseFrame]]:
    return build_rally_frames

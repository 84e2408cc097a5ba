from __future__ import annotations

import pytest

from groundstroke_grader.biomechanics.metrics.motion_series import build_motion_series, compute_motion_point
from groundstroke_grader.models import Joint, PoseFrame


def test_motion_series_one_point_per_pair_sorted(rally_frames) -> None:
    points = build_motion_series(rally_frames, max_workers=4)
    assert len(points) == len(rally_frames) - 1
    timestamps = [p.timestamp for p in points]
    assert timestamps == sorted(timestamps)
    assert all(b > a for a, b in zip(timestamps, timestamps[1:]))
    # Each point carries the later frame of its pair.
    assert points[0].frame_id == rally_frames[1].frame_id
    assert all(p.energy >= 0.0 for p in points)


def test_motion_series_independent_of_worker_count(rally_frames) -> None:
    serial = build_motion_series(rally_frames, max_workers=1)
    parallel = build_motion_series(list(reversed(rally_frames)), max_workers=8)
    assert [p.frame_id for p in serial] == [p.frame_id for p in parallel]
    assert [p.energy for p in serial] == pytest.approx([p.energy for p in parallel])


def test_motion_series_shape_of_rally(rally_frames) -> None:
    points = build_motion_series(rally_frames)
    energies = [p.energy for p in points]
    assert energies[5] < 1e-12
    assert energies[35] < 1e-12
    assert max(range(len(energies)), key=energies.__getitem__) == 20
    first = points[0]
    assert first.wrist_x_offset_rel == pytest.approx(1.25)
    assert first.wrist_height_rel == pytest.approx(-0.5)
    assert first.rot_sign in (-1.0, 0.0, 1.0)
    assert first.foot_span == pytest.approx(0.16)
    assert first.hand_speed_ratio == pytest.approx(1.0)


def test_pairs_with_undefined_metrics_are_dropped(rally_frames) -> None:
    frames = list(rally_frames[:6])
    broken = dict(frames[2].joints)
    del broken[Joint.LEFT_SHOULDER]
    frames[2] = PoseFrame(timestamp=frames[2].timestamp, frame_id=frames[2].frame_id, joints=broken)
    points = build_motion_series(frames)
    # Pairs (1,2) and (2,3) need frame 2's shoulders; (3,4) needs it as prev_prev for the energy coil delta.
    assert [p.frame_id for p in points] == [frames[1].frame_id, frames[5].frame_id]


def test_duplicate_timestamps_never_produce_points(rally_frames) -> None:
    a, b = rally_frames[0], rally_frames[1]
    dup = PoseFrame(timestamp=a.timestamp, frame_id="dup", joints=b.joints)
    assert compute_motion_point(a, a, dup) is None
    assert build_motion_series([a]) == []
    assert build_motion_series([]) == []

from __future__ import annotations

import pytest

from groundstroke_grader.biomechanics.config import ClassificationThresholds
from groundstroke_grader.biomechanics.metrics.classification import ClassifierState, classify_window, step
from groundstroke_grader.models import StrokeType


def _window(point_factory, offsets, **kwargs):
    return [point_factory(i, offset=value, **kwargs) for i, value in enumerate(offsets)]


def test_first_stroke_defaults_to_forehand(point_factory) -> None:
    state = classify_window([], None)
    assert state.current_type is StrokeType.FOREHAND
    assert state.switch_indices == ()


def test_previous_type_is_carried_explicitly(point_factory) -> None:
    ambiguous = _window(point_factory, [0.08, -0.09, 0.15, -0.18])
    state = classify_window(ambiguous, StrokeType.BACKHAND)
    assert state.current_type is StrokeType.BACKHAND


def test_switch_requires_five_consecutive_frames(point_factory) -> None:
    four = classify_window(_window(point_factory, [-0.3] * 4), StrokeType.FOREHAND)
    assert four.current_type is StrokeType.FOREHAND
    assert four.candidate_type is StrokeType.BACKHAND
    assert four.candidate_run == 4

    five = classify_window(_window(point_factory, [-0.3] * 5), StrokeType.FOREHAND)
    assert five.current_type is StrokeType.BACKHAND
    assert five.switch_indices == (4,)
    assert five.lockout == 9


def test_lockout_blocks_candidate_updates_after_switch(point_factory) -> None:
    blocked = classify_window(_window(point_factory, [-0.3] * 5 + [0.3] * 13), StrokeType.FOREHAND)
    # 9 frames burn the lockout, the next 4 only build a forehand run.
    assert blocked.current_type is StrokeType.BACKHAND
    assert blocked.switch_indices == (4,)
    assert blocked.candidate_type is StrokeType.FOREHAND
    assert blocked.candidate_run == 4

    released = classify_window(_window(point_factory, [-0.3] * 5 + [0.3] * 14), StrokeType.FOREHAND)
    assert released.current_type is StrokeType.FOREHAND
    assert released.switch_indices == (4, 18)


def test_ambiguous_and_near_zero_frames_do_not_break_a_run(point_factory) -> None:
    offsets = [0.3, 0.3, 0.3, 0.08, 0.02, 0.3, 0.3]
    state = classify_window(_window(point_factory, offsets), StrokeType.BACKHAND)
    assert state.current_type is StrokeType.FOREHAND
    assert state.switch_indices == (6,)


def test_mid_band_frames_keep_candidate(point_factory) -> None:
    offsets = [0.3, 0.3, 0.3, 0.15, 0.3, 0.3]
    state = classify_window(_window(point_factory, offsets), StrokeType.BACKHAND)
    assert state.switch_indices == (5,)


def test_mid_band_frames_consume_lockout(point_factory) -> None:
    offsets = [-0.3] * 5 + [0.15] * 9 + [0.3] * 5
    state = classify_window(_window(point_factory, offsets), StrokeType.FOREHAND)
    assert state.switch_indices == (4, 18)


def test_narrow_shoulders_are_ignored(point_factory) -> None:
    state = classify_window(_window(point_factory, [-0.3] * 8, shoulder_span=0.04), StrokeType.FOREHAND)
    assert state.current_type is StrokeType.FOREHAND
    assert state.candidate_run == 0


def test_step_is_pure_and_honors_thresholds(point_factory) -> None:
    thresholds = ClassificationThresholds(persistence_frames=1, lockout_frames=0)
    start = ClassifierState.start(StrokeType.FOREHAND)
    after = step(start, point_factory(0, offset=-0.5), thresholds)
    assert start.current_type is StrokeType.FOREHAND
    assert after.current_type is StrokeType.BACKHAND
    assert after.switch_indices == (0,)


@pytest.mark.parametrize(
    "frames, previous, lockout_active",
    [
        # (wrist offset, shoulder span) per frame
        ([(0.3, 0.3), (0.3, 0.3), (0.08, 0.3), (0.3, 0.3), (-0.02, 0.3), (0.3, 0.3)], StrokeType.BACKHAND, False),
        (
            [(-0.3, 0.3)] * 5
            + [(0.05, 0.3), (0.3, 0.3), (0.3, 0.3), (-0.09, 0.3), (0.3, 0.3), (-0.3, 0.04), (0.3, 0.3), (0.3, 0.3)],
            StrokeType.FOREHAND,
            True,
        ),
    ],
)
def test_dropping_ambiguous_frames_keeps_classification(point_factory, frames, previous, lockout_active) -> None:
    thresholds = ClassificationThresholds()
    points = [point_factory(i, offset=offset, shoulder_span=span) for i, (offset, span) in enumerate(frames)]
    kept = [
        p
        for p in points
        if abs(p.wrist_x_offset_rel) > thresholds.ambiguous_offset and p.shoulder_span >= thresholds.min_shoulder_span
    ]
    assert len(kept) < len(points)

    full = classify_window(points, previous, thresholds)
    filtered = classify_window(kept, previous, thresholds)
    assert full.current_type is filtered.current_type
    assert full.lockout == filtered.lockout
    assert (full.candidate_type, full.candidate_run) == (filtered.candidate_type, filtered.candidate_run)
    assert (full.lockout > 0) is lockout_active

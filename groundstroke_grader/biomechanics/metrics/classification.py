"""Forehand/backhand classification with persistence and lockout hysteresis.

The classifier is a pure fold: ``step`` maps ``(state, point) -> state`` and
``classify_window`` folds it over one stroke window. Only ``current_type``
crosses window boundaries; candidate run and lockout start fresh per window.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional, Sequence, Tuple

from groundstroke_grader.biomechanics.config import ANALYSIS_CONFIG, ClassificationThresholds
from groundstroke_grader.models import MotionPoint, StrokeType


@dataclass(frozen=True)
class ClassifierState:
    current_type: StrokeType = StrokeType.FOREHAND
    candidate_type: Optional[StrokeType] = None
    candidate_run: int = 0
    lockout: int = 0
    position: int = 0
    switch_indices: Tuple[int, ...] = ()

    @classmethod
    def start(cls, previous_type: Optional[StrokeType] = None) -> "ClassifierState":
        return cls(current_type=previous_type or StrokeType.FOREHAND)


def _side_of(offset: float, switch_offset: float) -> Optional[StrokeType]:
    if offset > switch_offset:
        return StrokeType.FOREHAND
    if offset < -switch_offset:
        return StrokeType.BACKHAND
    return None


def step(
    state: ClassifierState,
    point: MotionPoint,
    thresholds: ClassificationThresholds | None = None,
) -> ClassifierState:
    """Advance the classifier by one motion point."""
    t = thresholds or ANALYSIS_CONFIG.classification
    offset = point.wrist_x_offset_rel
    advanced = replace(state, position=state.position + 1)

    # Near-zero and ambiguous frames leave lockout and the candidate run untouched.
    if abs(offset) < t.min_wrist_offset or point.shoulder_span < t.min_shoulder_span:
        return advanced
    if abs(offset) <= t.ambiguous_offset:
        return advanced

    if advanced.lockout > 0:
        return replace(advanced, lockout=advanced.lockout - 1)

    side = _side_of(offset, t.switch_offset)
    if side is None:
        return advanced

    run = advanced.candidate_run + 1 if advanced.candidate_type is side else 1
    updated = replace(advanced, candidate_type=side, candidate_run=run)
    if run >= t.persistence_frames and updated.current_type is not side:
        return replace(
            updated,
            current_type=side,
            lockout=t.lockout_frames,
            switch_indices=updated.switch_indices + (state.position,),
        )
    return updated


def classify_window(
    points: Sequence[MotionPoint],
    previous_type: Optional[StrokeType] = None,
    thresholds: ClassificationThresholds | None = None,
) -> ClassifierState:
    """Fold ``step`` over a stroke window, seeded with the previous stroke's type.

    ``switch_indices`` holds the window positions at which a switch was confirmed.
    """
    state = ClassifierState.start(previous_type)
    for point in points:
        state = step(state, point, thresholds)
    return state


__all__ = ["ClassifierState", "step", "classify_window"]

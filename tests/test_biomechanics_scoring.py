from __future__ import annotations

import pytest

from groundstroke_grader.biomechanics.comparison.scoring import (
    score_stroke,
    score_video,
    sub_metric_averages,
    trimmed_mean,
)
from groundstroke_grader.models import PhaseSegment, StrokePhase, StrokeSegment, StrokeType


def _stroke(point_factory, stroke_type=StrokeType.FOREHAND, scores=None, confidence=1.0):
    frame = point_factory(0)
    phases = tuple(
        PhaseSegment(phase=kind, confidence=confidence, frames=(frame,), score=value)
        for kind, value in (scores or {}).items()
    )
    return StrokeSegment(
        stroke_type=stroke_type,
        start_time=0.0,
        end_time=1.0,
        frames=(frame,),
        phases=phases,
        confidence=0.9,
    )


ALL_PHASES = {
    StrokePhase.COIL: 0.1,
    StrokePhase.ACCELERATION: 0.3,
    StrokePhase.IMPACT: 0.5,
    StrokePhase.FOLLOW_THROUGH: 0.4,
    StrokePhase.SPLIT_STEP: 0.6,
}


def test_trimmed_mean_drops_one_extreme_each_side() -> None:
    assert trimmed_mean([]) is None
    assert trimmed_mean([4.0]) == pytest.approx(4.0)
    assert trimmed_mean([1.0, 5.0]) == pytest.approx(3.0)
    assert trimmed_mean([1.0, 2.0, 3.0]) == pytest.approx(2.0)
    assert trimmed_mean([0.0, 10.0, 2.0, 4.0]) == pytest.approx(3.0)
    # Duplicated extremes: only one copy of each is dropped.
    assert trimmed_mean([1.0, 1.0, 9.0, 9.0]) == pytest.approx(5.0)


def test_score_stroke_full(point_factory) -> None:
    score = score_stroke(_stroke(point_factory, scores=ALL_PHASES, confidence=0.8))
    expected_total = 0.25 * 0.1 + 0.25 * 0.3 + 0.20 * 0.5 + 0.20 * 0.4 + 0.10 * 0.6
    assert score.total_score == pytest.approx(expected_total * 1.0 * 0.8)
    assert score.sub_metrics["completeness"] == pytest.approx(1.0)
    assert score.sub_metrics["confidence"] == pytest.approx(0.8)
    assert score.sub_metrics["follow_through"] == pytest.approx(0.4)


def test_missing_and_zero_phases_reduce_completeness(point_factory) -> None:
    scores = {StrokePhase.IMPACT: 0.5, StrokePhase.FOLLOW_THROUGH: 0.0}
    score = score_stroke(_stroke(point_factory, scores=scores))
    assert score.sub_metrics["completeness"] == pytest.approx(0.2)
    assert score.sub_metrics["coil"] == 0.0
    assert score.total_score == pytest.approx(0.20 * 0.5 * 0.2 * 1.0)


def test_completeness_takes_fifths(point_factory) -> None:
    kinds = list(ALL_PHASES)
    for count in range(len(kinds) + 1):
        scores = {kind: ALL_PHASES[kind] for kind in kinds[:count]}
        value = score_stroke(_stroke(point_factory, scores=scores)).sub_metrics["completeness"]
        assert value == pytest.approx(count / 5)


def test_stroke_without_phases_scores_zero(point_factory) -> None:
    score = score_stroke(_stroke(point_factory))
    assert score.total_score == 0.0
    assert score.sub_metrics["confidence"] == 0.0
    assert score.phases == ()


def test_video_score_per_hand(point_factory) -> None:
    forehands = [
        _stroke(point_factory, scores={StrokePhase.IMPACT: value}) for value in (0.1, 0.5, 1.0)
    ]
    video = score_video(forehands)
    totals = sorted(s.total_score for s in video.strokes)
    assert video.forehand_avg == pytest.approx(totals[1])
    assert video.backhand_avg is None
    assert video.overall == pytest.approx(video.forehand_avg)

    backhand = _stroke(point_factory, StrokeType.BACKHAND, scores={StrokePhase.IMPACT: 1.0})
    mixed = score_video(forehands + [backhand])
    assert mixed.backhand_avg == pytest.approx(0.2 * 1.0 * 0.2)
    assert mixed.overall == pytest.approx((mixed.forehand_avg + mixed.backhand_avg) / 2)


def test_empty_video_score() -> None:
    video = score_video([])
    assert video.strokes == ()
    assert video.forehand_avg is None and video.backhand_avg is None
    assert video.overall == 0.0


def test_sub_metric_averages(point_factory) -> None:
    strokes = [
        _stroke(point_factory, scores={StrokePhase.IMPACT: 0.2}),
        _stroke(point_factory, scores={StrokePhase.IMPACT: 0.4}),
        _stroke(point_factory, StrokeType.BACKHAND, scores={StrokePhase.IMPACT: 1.0}),
    ]
    video = score_video(strokes)
    assert sub_metric_averages(video, StrokeType.FOREHAND)["impact"] == pytest.approx(0.3)
    assert sub_metric_averages(video)["impact"] == pytest.approx((0.2 + 0.4 + 1.0) / 3)
    assert sub_metric_averages(score_video([]), StrokeType.BACKHAND) == {}

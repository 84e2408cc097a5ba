"""Stroke and video level scoring.

Level 1 (per phase) scores come from phase detection. This module weights them
into a per-stroke total, discounts it by phase completeness and mean phase
confidence, then aggregates per hand with a trimmed mean.
"""

from __future__ import annotations

import math
from typing import Dict, Iterable, List, Optional, Sequence

from groundstroke_grader.biomechanics.config import ANALYSIS_CONFIG, ScoringWeights
from groundstroke_grader.models import StrokePhase, StrokeScore, StrokeSegment, StrokeType, VideoScore


def phase_weights(weights: ScoringWeights | None = None) -> Dict[StrokePhase, float]:
    w = weights or ANALYSIS_CONFIG.scoring
    return {
        StrokePhase.COIL: w.coil,
        StrokePhase.ACCELERATION: w.acceleration,
        StrokePhase.IMPACT: w.impact,
        StrokePhase.FOLLOW_THROUGH: w.follow_through,
        StrokePhase.SPLIT_STEP: w.split_step,
    }


def _mean(values: Sequence[float]) -> Optional[float]:
    if not values:
        return None
    return math.fsum(values) / len(values)


def trimmed_mean(values: Iterable[float], min_samples: int | None = None) -> Optional[float]:
    """Mean after dropping one max and one min when at least ``min_samples`` values exist.

    Returns ``None`` for an empty input.
    """
    items = sorted(float(v) for v in values)
    threshold = ANALYSIS_CONFIG.scoring.trim_min_samples if min_samples is None else min_samples
    if len(items) >= threshold and len(items) >= 3:
        items = items[1:-1]
    return _mean(items)


def score_stroke(stroke: StrokeSegment, weights: ScoringWeights | None = None) -> StrokeScore:
    """Weighted phase total x completeness x mean phase confidence."""
    per_phase = {kind: 0.0 for kind in StrokePhase}
    for segment in stroke.phases:
        per_phase[segment.phase] = float(segment.score)

    table = phase_weights(weights)
    total = math.fsum(table[kind] * per_phase[kind] for kind in StrokePhase)
    completeness = sum(1 for segment in stroke.phases if segment.score > 0) / float(len(StrokePhase))
    confidence = _mean([segment.confidence for segment in stroke.phases]) or 0.0

    sub_metrics: Dict[str, float] = {kind.value: per_phase[kind] for kind in StrokePhase}
    sub_metrics["completeness"] = completeness
    sub_metrics["confidence"] = confidence
    return StrokeScore(
        stroke_id=stroke.id,
        stroke_type=stroke.stroke_type,
        phases=stroke.phases,
        total_score=total * completeness * confidence,
        sub_metrics=sub_metrics,
    )


def score_video(strokes: Sequence[StrokeSegment], weights: ScoringWeights | None = None) -> VideoScore:
    """Score every stroke and aggregate per hand; overall is the mean of the defined hand averages."""
    scores = tuple(score_stroke(stroke, weights) for stroke in strokes)
    min_samples = (weights or ANALYSIS_CONFIG.scoring).trim_min_samples
    forehand = trimmed_mean((s.total_score for s in scores if s.stroke_type is StrokeType.FOREHAND), min_samples)
    backhand = trimmed_mean((s.total_score for s in scores if s.stroke_type is StrokeType.BACKHAND), min_samples)
    defined = [avg for avg in (forehand, backhand) if avg is not None]
    overall = _mean(defined) if defined else 0.0
    return VideoScore(strokes=scores, forehand_avg=forehand, backhand_avg=backhand, overall=float(overall or 0.0))


def sub_metric_averages(video_score: VideoScore, stroke_type: StrokeType | None = None) -> Dict[str, float]:
    """Average every sub-metric across the video's strokes, optionally restricted to one hand."""
    selected = [s for s in video_score.strokes if stroke_type is None or s.stroke_type is stroke_type]
    collected: Dict[str, List[float]] = {}
    for score in selected:
        for name, value in score.sub_metrics.items():
            collected.setdefault(name, []).append(float(value))
    return {name: _mean(values) or 0.0 for name, values in collected.items()}


__all__ = ["phase_weights", "trimmed_mean", "score_stroke", "score_video", "sub_metric_averages"]

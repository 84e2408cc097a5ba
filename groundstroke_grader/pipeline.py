"""End-to-end groundstroke analysis: pose frames to a graded session result."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, List, Optional, Protocol, Sequence, Tuple

from .biomechanics.comparison.scoring import score_video
from .biomechanics.metrics.motion_series import build_motion_series
from .biomechanics.metrics.strokes import segment_strokes
from .config import AppConfig, get_config
from .models import (
    BestClip,
    PoseFrame,
    PoseSourceError,
    SessionResult,
    StrokeScore,
    StrokeSegment,
    StrokeType,
    ValidationError,
)
from .pose_source import JsonPoseSource, PoseSource

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]

PROGRESS_START = 0.05
PROGRESS_FRAMES = 0.20
PROGRESS_MOTION = 0.35
PROGRESS_SEGMENTS = 0.55
PROGRESS_SCORES = 0.75
PROGRESS_DONE = 1.0


class ClipExporter(Protocol):
    def export_clip(self, video_id: str, start: float, end: float, stroke_type: StrokeType) -> str:
        ...


class _Progress:
    """Forward non-decreasing progress values; a failing callback never stops the run."""

    def __init__(self, callback: Optional[ProgressCallback]) -> None:
        self.callback = callback
        self.value = 0.0

    def __call__(self, value: float) -> None:
        self.value = max(self.value, float(value))
        if self.callback is None:
            return
        try:
            self.callback(self.value)
        except Exception:
            logger.warning("Progress callback failed at %.2f", self.value, exc_info=True)


def best_stroke(
    stroke_type: StrokeType, strokes: Sequence[StrokeSegment], scores: Sequence[StrokeScore]
) -> Optional[Tuple[StrokeSegment, StrokeScore]]:
    """Highest-scoring stroke of ``stroke_type``; the earliest wins ties."""
    best: Optional[Tuple[StrokeSegment, StrokeScore]] = None
    for stroke, score in zip(strokes, scores):
        if stroke.stroke_type is not stroke_type:
            continue
        if best is None or score.total_score > best[1].total_score:
            best = (stroke, score)
    return best


def representative_score(stroke_type: StrokeType, scores: Sequence[StrokeScore]) -> StrokeScore:
    """First score of ``stroke_type`` in time order; a zero score when the hand has none."""
    for score in scores:
        if score.stroke_type is stroke_type:
            return score
    return StrokeScore.zero(stroke_type)


class StrokeAnalysisPipeline:
    """Orchestrates pose loading, motion series, segmentation, scoring and clip export."""

    def __init__(
        self,
        pose_source: PoseSource,
        clip_exporter: Optional[ClipExporter] = None,
        *,
        config: Optional[AppConfig] = None,
    ) -> None:
        self.pose_source = pose_source
        self.clip_exporter = clip_exporter
        self.config = config or get_config()

    def _export_best(
        self, video_id: str, stroke_type: StrokeType, choice: Optional[Tuple[StrokeSegment, StrokeScore]]
    ) -> Tuple[BestClip, Optional[str]]:
        if choice is None:
            return BestClip.whole_video(stroke_type, video_id), None
        stroke, _score = choice
        fallback = BestClip(stroke_type=stroke_type, reference=video_id, stroke_id=stroke.id)
        if self.clip_exporter is None:
            return fallback, f"No clip exporter configured; {stroke_type.value} highlight uses the full video."
        try:
            reference = self.clip_exporter.export_clip(video_id, stroke.start_time, stroke.end_time, stroke_type)
        except Exception as exc:
            logger.warning("Export of best %s clip failed for %s: %s", stroke_type.value, video_id, exc)
            return fallback, f"{stroke_type.value} highlight export failed ({exc}); using the full video."
        return (
            BestClip(
                stroke_type=stroke_type,
                reference=str(reference),
                start=stroke.start_time,
                end=stroke.end_time,
                stroke_id=stroke.id,
                exported=True,
            ),
            None,
        )

    def analyze(self, video_id: str, progress_callback: Optional[ProgressCallback] = None) -> SessionResult:
        progress = _Progress(progress_callback)
        progress(PROGRESS_START)

        try:
            frames: Tuple[PoseFrame, ...] = tuple(self.pose_source.load_frames(video_id))
        except (PoseSourceError, ValidationError) as exc:
            logger.error("Could not load pose frames for %s: %s", video_id, exc)
            progress(PROGRESS_DONE)
            return SessionResult.empty(video_id, warnings=(str(exc),))
        progress(PROGRESS_FRAMES)

        if len(frames) <= 1:
            logger.warning("Only %d pose frame(s) for %s; nothing to analyze.", len(frames), video_id)
            progress(PROGRESS_DONE)
            return SessionResult.empty(video_id, warnings=("Not enough pose frames to analyze.",))

        analysis = self.config.analysis
        motion_points = tuple(
            build_motion_series(frames, max_workers=self.config.motion_workers, weights=analysis.energy)
        )
        progress(PROGRESS_MOTION)

        strokes = tuple(segment_strokes(motion_points, analysis))
        progress(PROGRESS_SEGMENTS)

        video_score = score_video(strokes, analysis.scoring)
        scores = video_score.strokes
        progress(PROGRESS_SCORES)
        logger.debug(
            "%s: %d frames, %d motion points, %d strokes, overall %.4f",
            video_id,
            len(frames),
            len(motion_points),
            len(strokes),
            video_score.overall,
        )

        choices = {kind: best_stroke(kind, strokes, scores) for kind in StrokeType}
        with ThreadPoolExecutor(max_workers=max(1, min(2, self.config.export_workers))) as pool:
            futures = {kind: pool.submit(self._export_best, video_id, kind, choices[kind]) for kind in StrokeType}
            exports: Dict[StrokeType, Tuple[BestClip, Optional[str]]] = {
                kind: future.result() for kind, future in futures.items()
            }
        warnings: List[str] = [message for _clip, message in exports.values() if message]
        progress(PROGRESS_DONE)

        return SessionResult(
            video_id=video_id,
            best_forehand_clip=exports[StrokeType.FOREHAND][0],
            best_backhand_clip=exports[StrokeType.BACKHAND][0],
            forehand_score=representative_score(StrokeType.FOREHAND, scores),
            backhand_score=representative_score(StrokeType.BACKHAND, scores),
            frames=frames,
            motion_points=motion_points,
            stroke_segments=strokes,
            stroke_scores=scores,
            video_score=video_score,
            warnings=tuple(warnings),
        )


def analyze(
    video_id: str,
    progress_callback: Optional[ProgressCallback] = None,
    *,
    pose_source: Optional[PoseSource] = None,
    clip_exporter: Optional[ClipExporter] = None,
    config: Optional[AppConfig] = None,
) -> SessionResult:
    """Analyze one video's pose data; ``pose_source`` defaults to JSON files in the working directory."""
    pipeline = StrokeAnalysisPipeline(pose_source or JsonPoseSource(), clip_exporter, config=config)
    return pipeline.analyze(video_id, progress_callback)


__all__ = [
    "ClipExporter",
    "ProgressCallback",
    "StrokeAnalysisPipeline",
    "analyze",
    "best_stroke",
    "representative_score",
]

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Mapping, Optional, Tuple

__all__ = [
    "Joint",
    "Point",
    "StrokeType",
    "StrokePhase",
    "PoseFrame",
    "MotionPoint",
    "PhaseSegment",
    "StrokeSegment",
    "StrokeScore",
    "VideoScore",
    "BestClip",
    "SessionResult",
    "ValidationError",
    "AnalysisError",
    "PoseSourceError",
    "ClipExportError",
]

Point = Tuple[float, float]


class ValidationError(ValueError):
    """Raised when user-supplied data cannot be normalised safely."""


class AnalysisError(RuntimeError):
    """Base class for failures surfaced at the analysis pipeline boundary."""


class PoseSourceError(AnalysisError):
    """Raised when the pose source cannot produce frames for a video."""


class ClipExportError(AnalysisError):
    """Raised by clip exporters when a highlight clip cannot be written."""


class Joint(str, Enum):
    """Body joints read by the metric extractor (2D, normalized, y axis up)."""

    LEFT_SHOULDER = "left_shoulder"
    RIGHT_SHOULDER = "right_shoulder"
    LEFT_ELBOW = "left_elbow"
    RIGHT_ELBOW = "right_elbow"
    LEFT_WRIST = "left_wrist"
    RIGHT_WRIST = "right_wrist"
    LEFT_HIP = "left_hip"
    RIGHT_HIP = "right_hip"
    LEFT_ANKLE = "left_ankle"
    RIGHT_ANKLE = "right_ankle"
    ROOT = "root"


class StrokeType(str, Enum):
    FOREHAND = "forehand"
    BACKHAND = "backhand"

    @property
    def side_sign(self) -> int:
        """+1 when the hitting wrist sits right of the root for this stroke, -1 otherwise."""
        return 1 if self is StrokeType.FOREHAND else -1


class StrokePhase(str, Enum):
    """Sub-phases of a groundstroke, declared in canonical temporal order."""

    COIL = "coil"
    ACCELERATION = "acceleration"
    IMPACT = "impact"
    FOLLOW_THROUGH = "follow_through"
    SPLIT_STEP = "split_step"

    @property
    def rank(self) -> int:
        return list(StrokePhase).index(self)


@dataclass(frozen=True)
class PoseFrame:
    """One frame of pose joints as supplied by the pose source."""

    timestamp: float
    frame_id: str
    joints: Mapping[Joint, Point]
    confidences: Mapping[Joint, float] = field(default_factory=dict)


@dataclass(frozen=True)
class MotionPoint:
    """Feature vector derived from one consecutive pair of pose frames."""

    timestamp: float
    frame_id: str
    energy: float
    shoulder_coil_factor: float
    hip_coil_factor: float
    rot_sign: float
    shoulder_span: float
    hip_span: float
    wrist_x_offset_rel: float
    wrist_height_rel: float
    forearm_angular_speed: float
    wrist_linear_speed: float
    com_speed: float
    foot_span: Optional[float] = None
    hand_speed_ratio: Optional[float] = None


@dataclass(frozen=True)
class PhaseSegment:
    phase: StrokePhase
    confidence: float
    frames: Tuple[MotionPoint, ...]
    score: float
    metrics: Mapping[str, float] = field(default_factory=dict)

    @property
    def start_time(self) -> float:
        return self.frames[0].timestamp

    @property
    def end_time(self) -> float:
        return self.frames[-1].timestamp


@dataclass(frozen=True)
class StrokeSegment:
    stroke_type: StrokeType
    start_time: float
    end_time: float
    frames: Tuple[MotionPoint, ...]
    phases: Tuple[PhaseSegment, ...]
    confidence: float
    aggregates: Mapping[str, float] = field(default_factory=dict)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def phase(self, kind: StrokePhase) -> Optional[PhaseSegment]:
        for segment in self.phases:
            if segment.phase is kind:
                return segment
        return None


@dataclass(frozen=True)
class StrokeScore:
    stroke_id: str
    stroke_type: StrokeType
    phases: Tuple[PhaseSegment, ...]
    total_score: float
    sub_metrics: Mapping[str, float] = field(default_factory=dict)

    @classmethod
    def zero(cls, stroke_type: StrokeType) -> "StrokeScore":
        return cls(stroke_id=uuid.uuid4().hex, stroke_type=stroke_type, phases=(), total_score=0.0)


@dataclass(frozen=True)
class VideoScore:
    strokes: Tuple[StrokeScore, ...]
    forehand_avg: Optional[float]
    backhand_avg: Optional[float]
    overall: float


@dataclass(frozen=True)
class BestClip:
    """Highlight clip chosen for one stroke type.

    ``start``/``end`` are ``None`` when no stroke of this type was exported and
    ``reference`` points at the whole original video.
    """

    stroke_type: StrokeType
    reference: str
    start: Optional[float] = None
    end: Optional[float] = None
    stroke_id: Optional[str] = None
    exported: bool = False

    @classmethod
    def whole_video(cls, stroke_type: StrokeType, video_id: str) -> "BestClip":
        return cls(stroke_type=stroke_type, reference=video_id)


@dataclass(frozen=True)
class SessionResult:
    video_id: str
    best_forehand_clip: BestClip
    best_backhand_clip: BestClip
    forehand_score: StrokeScore
    backhand_score: StrokeScore
    frames: Tuple[PoseFrame, ...]
    motion_points: Tuple[MotionPoint, ...]
    stroke_segments: Tuple[StrokeSegment, ...]
    stroke_scores: Tuple[StrokeScore, ...]
    video_score: VideoScore
    warnings: Tuple[str, ...] = ()

    @classmethod
    def empty(cls, video_id: str, *, warnings: Tuple[str, ...] = ()) -> "SessionResult":
        """All-zero result returned for degenerate input."""
        return cls(
            video_id=video_id,
            best_forehand_clip=BestClip.whole_video(StrokeType.FOREHAND, video_id),
            best_backhand_clip=BestClip.whole_video(StrokeType.BACKHAND, video_id),
            forehand_score=StrokeScore.zero(StrokeType.FOREHAND),
            backhand_score=StrokeScore.zero(StrokeType.BACKHAND),
            frames=(),
            motion_points=(),
            stroke_segments=(),
            stroke_scores=(),
            video_score=VideoScore(strokes=(), forehand_avg=0.0, backhand_avg=0.0, overall=0.0),
            warnings=tuple(warnings),
        )

    def best_clip(self, stroke_type: StrokeType) -> BestClip:
        if stroke_type is StrokeType.FOREHAND:
            return self.best_forehand_clip
        return self.best_backhand_clip

    @property
    def strokes_by_type(self) -> Dict[StrokeType, Tuple[StrokeSegment, ...]]:
        return {
            kind: tuple(seg for seg in self.stroke_segments if seg.stroke_type is kind) for kind in StrokeType
        }

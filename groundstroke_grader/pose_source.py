"""Pose sources: where the pipeline gets its ordered PoseFrames from.

``JsonPoseSource`` reads pose JSON written by an upstream detector. Two record
layouts are understood:

* named joints: ``{"timestamp": 0.033, "frame_id": "f1", "joints":
  {"left_shoulder": [x, y], ...}, "confidences": {"left_shoulder": 0.9}}``
  with y already pointing up;
* MediaPipe landmarks: ``{"frame_idx": 1, "timestamp_ms": 33.3, "landmarks":
  [[x, y, z, conf], ...]}`` (33 entries, image y pointing down).

The payload may be a list of records or an object with a ``frames`` list.
"""

from __future__ import annotations

import json
import logging
import math
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Union

from .models import Joint, Point, PoseFrame, PoseSourceError, ValidationError

logger = logging.getLogger(__name__)

CONFIDENCE_FLOOR = 0.1

MEDIAPIPE_JOINTS: Dict[int, Joint] = {
    11: Joint.LEFT_SHOULDER,
    12: Joint.RIGHT_SHOULDER,
    13: Joint.LEFT_ELBOW,
    14: Joint.RIGHT_ELBOW,
    15: Joint.LEFT_WRIST,
    16: Joint.RIGHT_WRIST,
    23: Joint.LEFT_HIP,
    24: Joint.RIGHT_HIP,
    27: Joint.LEFT_ANKLE,
    28: Joint.RIGHT_ANKLE,
}


class PoseSource(Protocol):
    def load_frames(self, video_id: str) -> Sequence[PoseFrame]:
        ...


def _finite(value: Any) -> Optional[float]:
    try:
        num = float(value)
    except (TypeError, ValueError):
        return None
    return num if math.isfinite(num) else None


def _with_root(joints: Dict[Joint, Point], confidences: Dict[Joint, float]) -> None:
    if Joint.ROOT in joints:
        return
    left, right = joints.get(Joint.LEFT_HIP), joints.get(Joint.RIGHT_HIP)
    if left is None or right is None:
        return
    joints[Joint.ROOT] = ((left[0] + right[0]) / 2.0, (left[1] + right[1]) / 2.0)
    confidences[Joint.ROOT] = min(confidences.get(Joint.LEFT_HIP, 1.0), confidences.get(Joint.RIGHT_HIP, 1.0))


def _timestamp(record: Mapping[str, Any], index: int) -> float:
    if "timestamp" in record:
        value = _finite(record["timestamp"])
    elif "timestamp_ms" in record:
        ms = _finite(record["timestamp_ms"])
        value = ms / 1000.0 if ms is not None else None
    else:
        raise ValidationError(f"Frame {index} has no timestamp or timestamp_ms field.")
    if value is None:
        raise ValidationError(f"Frame {index} has a non-numeric timestamp.")
    return value


def _frame_id(record: Mapping[str, Any], index: int) -> str:
    for key in ("frame_id", "frame_idx"):
        if record.get(key) is not None:
            return str(record[key])
    return str(index)


def _parse_named(record: Mapping[str, Any], index: int, floor: float) -> tuple[Dict[Joint, Point], Dict[Joint, float]]:
    raw_joints = record.get("joints")
    if not isinstance(raw_joints, Mapping):
        raise ValidationError(f"Frame {index}: 'joints' must be an object mapping joint names to [x, y].")
    raw_conf = record.get("confidences") or {}
    if not isinstance(raw_conf, Mapping):
        raise ValidationError(f"Frame {index}: 'confidences' must be an object.")

    joints: Dict[Joint, Point] = {}
    confidences: Dict[Joint, float] = {}
    for name, coords in raw_joints.items():
        try:
            joint = Joint(str(name))
        except ValueError:
            continue
        if not isinstance(coords, (list, tuple)) or len(coords) < 2:
            raise ValidationError(f"Frame {index}: joint {name!r} must be [x, y].")
        x, y = _finite(coords[0]), _finite(coords[1])
        if x is None or y is None:
            continue
        conf = _finite(raw_conf.get(name, 1.0))
        conf = 1.0 if conf is None else conf
        if conf < floor:
            continue
        joints[joint] = (x, y)
        confidences[joint] = conf
    return joints, confidences


def _parse_landmarks(
    record: Mapping[str, Any], index: int, floor: float
) -> tuple[Dict[Joint, Point], Dict[Joint, float]]:
    landmarks = record.get("landmarks")
    if not isinstance(landmarks, (list, tuple)):
        raise ValidationError(f"Frame {index}: 'landmarks' must be a list.")
    joints: Dict[Joint, Point] = {}
    confidences: Dict[Joint, float] = {}
    for lm_index, joint in MEDIAPIPE_JOINTS.items():
        if lm_index >= len(landmarks):
            continue
        entry = landmarks[lm_index]
        if not isinstance(entry, (list, tuple)) or len(entry) < 2:
            raise ValidationError(f"Frame {index}: landmark {lm_index} must be [x, y, z, conf].")
        x, y = _finite(entry[0]), _finite(entry[1])
        if x is None or y is None:
            continue
        conf = _finite(entry[3]) if len(entry) >= 4 else 1.0
        if conf is None or conf < floor:
            continue
        joints[joint] = (x, 1.0 - y)
        confidences[joint] = conf
    return joints, confidences


def parse_pose_payload(payload: Any, *, confidence_floor: float = CONFIDENCE_FLOOR) -> List[PoseFrame]:
    """Convert a decoded pose JSON payload into PoseFrames ordered by timestamp."""
    if isinstance(payload, Mapping):
        records = payload.get("frames")
    else:
        records = payload
    if not isinstance(records, list):
        raise ValidationError("Pose payload must be a list of frames or an object with a 'frames' list.")

    frames: List[PoseFrame] = []
    skipped = 0
    for index, record in enumerate(records):
        if not isinstance(record, Mapping):
            raise ValidationError(f"Frame {index} must be an object.")
        if "joints" in record:
            joints, confidences = _parse_named(record, index, confidence_floor)
        elif record.get("landmarks"):
            joints, confidences = _parse_landmarks(record, index, confidence_floor)
        else:
            skipped += 1
            continue
        _with_root(joints, confidences)
        frames.append(
            PoseFrame(
                timestamp=_timestamp(record, index),
                frame_id=_frame_id(record, index),
                joints=joints,
                confidences=confidences,
            )
        )
    if skipped:
        logger.debug("Skipped %d pose records without landmarks.", skipped)
    frames.sort(key=lambda frame: frame.timestamp)
    return frames


class JsonPoseSource:
    """Load PoseFrames from JSON files on disk.

    ``video_id`` may be a direct path to a JSON file, ``<root>/<video_id>.json``
    or ``<root>/<video_id>/pose_data.json``.
    """

    def __init__(self, root: Union[str, Path, None] = None, *, confidence_floor: float = CONFIDENCE_FLOOR) -> None:
        self.root = Path(root) if root is not None else Path(".")
        self.confidence_floor = confidence_floor

    def resolve(self, video_id: str) -> Path:
        direct = Path(video_id)
        candidates = [
            direct,
            self.root / f"{video_id}.json",
            self.root / video_id / "pose_data.json",
        ]
        for candidate in candidates:
            if candidate.is_file() and candidate.suffix.lower() == ".json":
                return candidate
        raise PoseSourceError(f"No pose data found for {video_id!r} under {self.root}.")

    def load_frames(self, video_id: str) -> Sequence[PoseFrame]:
        path = self.resolve(video_id)
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise PoseSourceError(f"Could not read pose data from {path}: {exc}") from exc
        frames = parse_pose_payload(payload, confidence_floor=self.confidence_floor)
        logger.info("Loaded %d pose frames from %s", len(frames), path)
        return frames


__all__ = ["CONFIDENCE_FLOOR", "MEDIAPIPE_JOINTS", "PoseSource", "JsonPoseSource", "parse_pose_payload"]

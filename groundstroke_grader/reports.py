from __future__ import annotations

import json
import math
from dataclasses import asdict, is_dataclass
from enum import Enum
from importlib import metadata
from pathlib import Path
from typing import Any, Mapping, Sequence

import numpy as np
import pandas as pd
from rich.table import Table

from .biomechanics.comparison.scoring import sub_metric_averages
from .config import as_dict as config_as_dict
from .models import MotionPoint, SessionResult, StrokeType

MOTION_COLUMNS: tuple[str, ...] = (
    "timestamp",
    "frame_id",
    "energy",
    "shoulder_coil_factor",
    "hip_coil_factor",
    "rot_sign",
    "shoulder_span",
    "hip_span",
    "foot_span",
    "wrist_x_offset_rel",
    "wrist_height_rel",
    "forearm_angular_speed",
    "wrist_linear_speed",
    "com_speed",
    "hand_speed_ratio",
)


def _app_version() -> str:
    try:
        return metadata.version("groundstroke-grader")
    except metadata.PackageNotFoundError:  # pragma: no cover - local checkout
        return "0.0.0"


def _json_safe(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (str, bool, int)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, np.generic):
        return _json_safe(value.item())
    if isinstance(value, pd.DataFrame):
        return [_json_safe(rec) for rec in value.to_dict(orient="records")]
    if isinstance(value, Mapping):
        return {str(_json_safe(k)): _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    if is_dataclass(value) and not isinstance(value, type):
        return _json_safe(asdict(value))
    return str(value)


def _stroke_summary(result: SessionResult) -> list[dict[str, Any]]:
    scores = {score.stroke_id: score for score in result.stroke_scores}
    rows = []
    for stroke in result.stroke_segments:
        score = scores.get(stroke.id)
        rows.append(
            {
                "id": stroke.id,
                "stroke_type": stroke.stroke_type,
                "start_time": stroke.start_time,
                "end_time": stroke.end_time,
                "frame_count": len(stroke.frames),
                "confidence": stroke.confidence,
                "total_score": score.total_score if score else None,
                "sub_metrics": dict(score.sub_metrics) if score else {},
                "phases": [
                    {
                        "phase": phase.phase,
                        "confidence": phase.confidence,
                        "score": phase.score,
                        "metrics": dict(phase.metrics),
                    }
                    for phase in stroke.phases
                ],
            }
        )
    return rows


def session_to_dict(result: SessionResult, *, include_motion: bool = False) -> dict[str, Any]:
    """JSON-ready view of a session: scores, best clips and strokes (non-finite numbers become null)."""
    video = result.video_score
    payload: dict[str, Any] = {
        "video_id": result.video_id,
        "app_version": _app_version(),
        "frame_count": len(result.frames),
        "motion_point_count": len(result.motion_points),
        "video_score": {
            "forehand_avg": video.forehand_avg,
            "backhand_avg": video.backhand_avg,
            "overall": video.overall,
        },
        "best_clips": {
            kind.value: result.best_clip(kind) for kind in StrokeType
        },
        "representative_scores": {
            StrokeType.FOREHAND.value: result.forehand_score,
            StrokeType.BACKHAND.value: result.backhand_score,
        },
        "sub_metric_averages": {
            kind.value: sub_metric_averages(video, kind) for kind in StrokeType
        },
        "stroke_counts": {kind.value: len(strokes) for kind, strokes in result.strokes_by_type.items()},
        "strokes": _stroke_summary(result),
        "warnings": list(result.warnings),
        "config": config_as_dict(),
    }
    for kind in StrokeType:
        score = payload["representative_scores"][kind.value]
        payload["representative_scores"][kind.value] = {
            "stroke_id": score.stroke_id,
            "total_score": score.total_score,
            "sub_metrics": dict(score.sub_metrics),
        }
    if include_motion:
        payload["motion_series"] = motion_series_dataframe(result.motion_points)
    return _json_safe(payload)


def write_session_report(result: SessionResult, path: Path, *, include_motion: bool = False) -> Path:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(session_to_dict(result, include_motion=include_motion), indent=2), encoding="utf-8")
    return target


def motion_series_dataframe(points: Sequence[MotionPoint]) -> pd.DataFrame:
    """One row per MotionPoint, ordered by timestamp."""
    if not points:
        return pd.DataFrame(columns=list(MOTION_COLUMNS))
    records = [{column: getattr(point, column) for column in MOTION_COLUMNS} for point in points]
    return pd.DataFrame.from_records(records, columns=list(MOTION_COLUMNS)).sort_values("timestamp", ignore_index=True)


def _fmt(value: float | None, digits: int = 3) -> str:
    return f"{value:.{digits}f}" if value is not None else "n/a"


def build_summary_table(result: SessionResult) -> Table:
    """Rich table with per-hand averages, overall score and one row per stroke."""
    video = result.video_score
    table = Table(
        title=f"{result.video_id}: FH {_fmt(video.forehand_avg)} | BH {_fmt(video.backhand_avg)} | "
        f"overall {_fmt(video.overall)}"
    )
    for column in ("#", "type", "start", "end", "phases", "confidence", "score"):
        table.add_column(column, justify="left" if column in {"type", "phases"} else "right")

    scores = {score.stroke_id: score for score in result.stroke_scores}
    for index, stroke in enumerate(result.stroke_segments, start=1):
        score = scores.get(stroke.id)
        table.add_row(
            str(index),
            stroke.stroke_type.value,
            f"{stroke.start_time:.2f}",
            f"{stroke.end_time:.2f}",
            ", ".join(phase.phase.value for phase in stroke.phases) or "-",
            f"{stroke.confidence:.2f}",
            _fmt(score.total_score if score else None, 4),
        )
    return table


__all__ = [
    "MOTION_COLUMNS",
    "session_to_dict",
    "write_session_report",
    "motion_series_dataframe",
    "build_summary_table",
]

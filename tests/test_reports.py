from __future__ import annotations

import json
import math

from groundstroke_grader.config import AppConfig
from groundstroke_grader.models import SessionResult
from groundstroke_grader.pipeline import StrokeAnalysisPipeline
from groundstroke_grader.reports import (
    MOTION_COLUMNS,
    build_summary_table,
    motion_series_dataframe,
    session_to_dict,
    write_session_report,
)


def test_empty_session_report_is_json_ready(tmp_path) -> None:
    result = SessionResult.empty("rally", warnings=("Not enough pose frames to analyze.",))
    payload = session_to_dict(result)
    json.dumps(payload, allow_nan=False)
    assert payload["best_clips"]["forehand"]["reference"] == "rally"
    assert payload["best_clips"]["backhand"]["start"] is None
    assert payload["representative_scores"]["forehand"]["total_score"] == 0.0
    assert payload["strokes"] == []

    target = write_session_report(result, tmp_path / "out" / "rally.json")
    assert json.loads(target.read_text(encoding="utf-8"))["video_id"] == "rally"


def test_motion_dataframe_orders_rows(point_factory) -> None:
    points = [point_factory(2), point_factory(0, energy=math.nan), point_factory(1)]
    frame = motion_series_dataframe(points)
    assert list(frame.columns) == list(MOTION_COLUMNS)
    assert frame["frame_id"].tolist() == ["f0", "f1", "f2"]
    assert motion_series_dataframe([]).empty


def test_session_with_motion_series(rally_frames) -> None:

    class _Source:
        def load_frames(self, video_id):
            return rally_frames


    result = StrokeAnalysisPipeline(_Source(), config=AppConfig()).analyze("rally")
    payload = session_to_dict(result, include_motion=True)
    json.dumps(payload, allow_nan=False)
    assert len(payload["motion_series"]) == len(result.motion_points)
    assert payload["strokes"][0]["phases"]
    assert build_summary_table(result).row_count == len(result.stroke_segments)

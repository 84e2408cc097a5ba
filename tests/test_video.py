from __future__ import annotations

import numpy as np
import pytest

cv2 = pytest.importorskip("cv2")

from groundstroke_grader.biomechanics.utils.video import (  # noqa: E402
    OpenCVClipExporter,
    get_video_metadata,
    highlight_clip_name,
)
from groundstroke_grader.models import ClipExportError, StrokeType  # noqa: E402


def _write_video(path, frames: int = 20, fps: float = 10.0):
    writer = cv2.VideoWriter(str(path), cv2.VideoWriter_fourcc(*"MJPG"), fps, (64, 48))
    if not writer.isOpened():
        pytest.skip("MJPG writer unavailable in this OpenCV build")
    for i in range(frames):
        frame = np.full((48, 64, 3), i * 10 % 255, dtype=np.uint8)
        writer.write(frame)
    writer.release()
    return path


def test_highlight_clip_name() -> None:
    assert highlight_clip_name("videos/rally.mp4", StrokeType.BACKHAND) == "rally_backhand_highlight.mp4"
    assert highlight_clip_name("rally", StrokeType.FOREHAND) == "rally_forehand_highlight.mp4"


def test_export_clip_writes_trimmed_video(tmp_path) -> None:
    source = _write_video(tmp_path / "rally.avi")
    meta = get_video_metadata(source)
    assert meta["width"] == 64 and meta["height"] == 48

    exporter = OpenCVClipExporter(tmp_path / "clips", sources={"rally-id": source})
    reference = exporter.export_clip("rally-id", 0.5, 1.0, StrokeType.FOREHAND)

    clip = tmp_path / "clips" / "rally_forehand_highlight.avi"
    assert reference == str(clip)
    cap = cv2.VideoCapture(reference)
    try:
        assert cap.isOpened()
        assert int(cap.get(cv2.CAP_PROP_FRAME_COUNT)) == 6
    finally:
        cap.release()


def test_export_clip_errors(tmp_path) -> None:
    exporter = OpenCVClipExporter(tmp_path / "clips")
    with pytest.raises(ClipExportError):
        exporter.export_clip(str(tmp_path / "missing.mp4"), 0.0, 1.0, StrokeType.FOREHAND)

    source = _write_video(tmp_path / "short.avi", frames=5)
    with pytest.raises(ClipExportError):
        exporter.export_clip(str(source), 2.0, 1.0, StrokeType.BACKHAND)
    with pytest.raises(ClipExportError):
        exporter.export_clip(str(source), 30.0, 31.0, StrokeType.BACKHAND)

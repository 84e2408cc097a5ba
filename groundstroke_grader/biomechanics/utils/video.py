"""Video utilities: readability checks, metadata and highlight clip export."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Mapping, Optional, Union

import cv2

from groundstroke_grader.biomechanics.config import ANALYSIS_LOGGER
from groundstroke_grader.models import ClipExportError, StrokeType

logger = ANALYSIS_LOGGER

_FOURCC_BY_SUFFIX = {".avi": "MJPG", ".mp4": "mp4v", ".m4v": "mp4v", ".mov": "mp4v"}


def validate_video_readable(video_path: Union[str, Path]) -> Dict[str, Union[bool, int, float, str]]:
    """Check if a video can be opened and read; raise descriptive errors otherwise.

    Example:
        >>> validate_video_readable("rally.mp4")  # doctest: +SKIP
        {'readable': True, 'width': 1920, 'height': 1080, 'fps': 30.0, 'total_frames': 900, 'codec': 'avc1'}
    """
    path = Path(video_path)
    if not path.exists():
        raise FileNotFoundError(f"Video not found: {path}")
    if not path.is_file():
        raise ValueError(f"Expected a video file, but got a directory: {path}")

    cap = cv2.VideoCapture(str(path))
    if not cap.isOpened():
        raise RuntimeError(f"Could not open video {path}. The file may be corrupted or use an unsupported codec.")

    try:
        width = int(cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        height = int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        fps = float(cap.get(cv2.CAP_PROP_FPS))
        total_frames = int(cap.get(cv2.CAP_PROP_FRAME_COUNT))
        codec = _decode_fourcc(int(cap.get(cv2.CAP_PROP_FOURCC)))

        if fps <= 0:
            raise ValueError(f"Invalid FPS reported for {path} (fps={fps}).")
        if width <= 0 or height <= 0:
            raise ValueError(f"Invalid frame size for {path} (w={width}, h={height}).")

        ret, frame = cap.read()
        if not ret or frame is None or frame.size == 0:
            raise ValueError(f"Failed to read the first frame from {path}.")

        return {
            "readable": True,
            "width": width,
            "height": height,
            "fps": fps,
            "total_frames": total_frames,
            "codec": codec,
        }
    finally:
        cap.release()


def get_video_metadata(video_path: Union[str, Path]) -> Dict[str, Union[int, float, str]]:
    """Return basic metadata for the provided video, including its duration in seconds."""
    validation = validate_video_readable(video_path)
    fps = float(validation["fps"])
    total_frames = int(validation["total_frames"])
    return {
        "width": int(validation["width"]),
        "height": int(validation["height"]),
        "fps": fps,
        "total_frames": total_frames,
        "duration_seconds": (total_frames / fps) if fps > 0 else 0.0,
        "codec": str(validation["codec"]),
    }


def _decode_fourcc(cc: int) -> str:
    return "".join([chr((cc >> 8 * i) & 0xFF) for i in range(4)])


def highlight_clip_name(video_path: Union[str, Path], stroke_type: StrokeType, suffix: str | None = None) -> str:
    path = Path(video_path)
    ext = suffix or path.suffix or ".mp4"
    return f"{path.stem}_{stroke_type.value}_highlight{ext}"


class OpenCVClipExporter:
    """Trim ``[start, end]`` (seconds, inclusive) out of the source video with OpenCV.

    ``video_id`` is looked up in ``sources`` first and otherwise treated as a
    path. Clips land in ``output_dir`` as ``<stem>_<type>_highlight.<ext>``.
    """

    def __init__(
        self,
        output_dir: Union[str, Path],
        *,
        sources: Optional[Mapping[str, Union[str, Path]]] = None,
        suffix: str | None = None,
    ) -> None:
        self.output_dir = Path(output_dir)
        self.sources = {key: Path(value) for key, value in (sources or {}).items()}
        self.suffix = suffix

    def resolve(self, video_id: str) -> Path:
        return self.sources.get(video_id, Path(video_id))

    def export_clip(self, video_id: str, start: float, end: float, stroke_type: StrokeType) -> str:
        if end < start:
            raise ClipExportError(f"Empty clip range [{start}, {end}] for {video_id}.")
        source = self.resolve(video_id)
        try:
            meta = validate_video_readable(source)
        except (FileNotFoundError, ValueError, RuntimeError) as exc:
            raise ClipExportError(f"Cannot export clip from {source}: {exc}") from exc

        fps = float(meta["fps"])
        first = max(0, int(round(start * fps)))
        last = max(first, int(round(end * fps)))
        self.output_dir.mkdir(parents=True, exist_ok=True)
        target = self.output_dir / highlight_clip_name(source, stroke_type, self.suffix)
        fourcc = cv2.VideoWriter_fourcc(*_FOURCC_BY_SUFFIX.get(target.suffix.lower(), "mp4v"))

        cap = cv2.VideoCapture(str(source))
        writer = cv2.VideoWriter(str(target), fourcc, fps, (int(meta["width"]), int(meta["height"])))
        written = 0
        try:
            if not writer.isOpened():
                raise ClipExportError(f"Could not open a video writer for {target}.")
            cap.set(cv2.CAP_PROP_POS_FRAMES, first)
            for _ in range(first, last + 1):
                ret, frame = cap.read()
                if not ret or frame is None:
                    break
                writer.write(frame)
                written += 1
        finally:
            cap.release()
            writer.release()

        if written == 0:
            raise ClipExportError(f"No frames in [{start:.2f}s, {end:.2f}s] of {source}.")
        logger.info("Exported %s highlight (%d frames) to %s", stroke_type.value, written, target)
        return str(target)


__all__ = [
    "validate_video_readable",
    "get_video_metadata",
    "highlight_clip_name",
    "OpenCVClipExporter",
]

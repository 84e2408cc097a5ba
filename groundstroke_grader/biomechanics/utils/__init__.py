"""Video helpers and the OpenCV highlight clip exporter."""

from .video import OpenCVClipExporter, get_video_metadata, highlight_clip_name, validate_video_readable

__all__ = [
    "OpenCVClipExporter",
    "get_video_metadata",
    "highlight_clip_name",
    "validate_video_readable",
]

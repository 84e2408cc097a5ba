"""Biomechanics core for groundstroke grading.

This module is **lazy-imported** so configuration can be loaded without the
numpy-backed metrics or the OpenCV video helpers.
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "ANALYSIS_CONFIG",
    "ANALYSIS_LOGGER",
    "AnalysisConfig",
    "load_config_from_file",
    "validate_config_values",
    "print_config",
    "build_motion_series",
    "segment_strokes",
    "detect_phases",
    "score_video",
    "OpenCVClipExporter",
    "get_video_metadata",
    "validate_video_readable",
]

_CONFIG_EXPORTS = {
    "ANALYSIS_CONFIG",
    "ANALYSIS_LOGGER",
    "AnalysisConfig",
    "load_config_from_file",
    "validate_config_values",
    "print_config",
}
_METRICS_EXPORTS = {"build_motion_series", "segment_strokes", "detect_phases"}
_UTILS_EXPORTS = {"OpenCVClipExporter", "get_video_metadata", "validate_video_readable"}


def __getattr__(name: str) -> Any:  # pragma: no cover - exercised indirectly
    if name in _CONFIG_EXPORTS:
        from . import config as _config

        return getattr(_config, name)
    if name in _METRICS_EXPORTS:
        from . import metrics as _metrics

        return getattr(_metrics, name)
    if name == "score_video":
        from .comparison.scoring import score_video

        return score_video
    if name in _UTILS_EXPORTS:
        from . import utils as _utils

        return getattr(_utils, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__() -> list[str]:  # pragma: no cover - trivial
    return sorted(set(list(globals()) + __all__))

"""Motion metrics, stroke segmentation and phase detection.

Submodules are lazy-imported so the pure kinematics helpers can be used
without pulling in numpy-backed segmentation code.
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "energy",
    "coil_factor",
    "shoulder_coil_factor",
    "hip_coil_factor",
    "wrist_height_rel",
    "wrist_x_offset_rel",
    "forearm_angular_speed",
    "wrist_linear_speed",
    "com_speed",
    "hand_speed_ratio",
    "compute_motion_point",
    "build_motion_series",
    "ClassifierState",
    "classify_window",
    "segment_strokes",
    "baseline_energy",
    "find_peaks_and_valleys",
    "candidate_windows",
    "stroke_confidence",
    "detect_phases",
    "find_impact_anchor",
    "variance_confidence",
]

_KINEMATICS_EXPORTS = {
    "energy",
    "coil_factor",
    "shoulder_coil_factor",
    "hip_coil_factor",
    "wrist_height_rel",
    "wrist_x_offset_rel",
    "forearm_angular_speed",
    "wrist_linear_speed",
    "com_speed",
    "hand_speed_ratio",
}
_SERIES_EXPORTS = {"compute_motion_point", "build_motion_series"}
_CLASSIFICATION_EXPORTS = {"ClassifierState", "classify_window"}
_STROKE_EXPORTS = {
    "segment_strokes",
    "baseline_energy",
    "find_peaks_and_valleys",
    "candidate_windows",
    "stroke_confidence",
}
_PHASE_EXPORTS = {"detect_phases", "find_impact_anchor", "variance_confidence"}


def __getattr__(name: str) -> Any:  # pragma: no cover - exercised indirectly
    if name in _KINEMATICS_EXPORTS:
        from . import kinematics as _kinematics

        return getattr(_kinematics, name)
    if name in _SERIES_EXPORTS:
        from . import motion_series as _motion_series

        return getattr(_motion_series, name)
    if name in _CLASSIFICATION_EXPORTS:
        from . import classification as _classification

        return getattr(_classification, name)
    if name in _STROKE_EXPORTS:
        from . import strokes as _strokes

        return getattr(_strokes, name)
    if name in _PHASE_EXPORTS:
        from . import phase_detection as _phase_detection

        return getattr(_phase_detection, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__() -> list[str]:  # pragma: no cover - trivial
    return sorted(set(list(globals()) + __all__))

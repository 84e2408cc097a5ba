"""Energy-based stroke segmentation.

The motion series is cut at low-energy valleys; every pair of consecutive
valleys with at least one energetic peak between them becomes a candidate
stroke window. Windows are classified in order (the previous stroke's type
seeds the next window), then phase detection and stroke confidence run per
window.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from groundstroke_grader.biomechanics.config import ANALYSIS_CONFIG, AnalysisConfig, ANALYSIS_LOGGER as logger
from groundstroke_grader.biomechanics.metrics.classification import classify_window
from groundstroke_grader.biomechanics.metrics.phase_detection import detect_phases, variance_confidence
from groundstroke_grader.models import MotionPoint, PhaseSegment, StrokeSegment, StrokeType

IndexRange = Tuple[int, int]


@dataclass(frozen=True)
class EnergyExtrema:
    baseline: float
    peaks: Tuple[int, ...]
    valleys: Tuple[int, ...]


def baseline_energy(energies: Sequence[float], quantile: float | None = None) -> float:
    """Lower nearest-rank quantile of ``energies``: ``sorted[floor(q * n)]``."""
    if not energies:
        return 0.0
    q = ANALYSIS_CONFIG.segmentation.baseline_quantile if quantile is None else quantile
    ordered = sorted(energies)
    index = min(len(ordered) - 1, max(0, int(len(ordered) * q)))
    return float(ordered[index])


def find_peaks_and_valleys(energies: Sequence[float], config: AnalysisConfig | None = None) -> EnergyExtrema:
    """Scan ``[margin, n - margin - 1]`` for strict local peaks and valleys of the energy series."""
    seg = (config or ANALYSIS_CONFIG).segmentation
    baseline = baseline_energy(energies, seg.baseline_quantile)
    peak_threshold = baseline * seg.peak_factor
    valley_threshold = baseline * seg.valley_factor

    peaks: List[int] = []
    valleys: List[int] = []
    for i in range(seg.scan_margin, len(energies) - seg.scan_margin):
        e, before, after = energies[i], energies[i - 1], energies[i + 1]
        if e > before and e > after and e > peak_threshold:
            peaks.append(i)
        if e < before and e < after and e < valley_threshold:
            valleys.append(i)
    return EnergyExtrema(baseline=baseline, peaks=tuple(peaks), valleys=tuple(valleys))


def candidate_windows(extrema: EnergyExtrema) -> List[IndexRange]:
    """Inclusive ``(valley, next_valley)`` ranges that enclose at least one peak."""
    windows: List[IndexRange] = []
    valleys = extrema.valleys
    for start, end in zip(valleys, valleys[1:]):
        if any(start < peak < end for peak in extrema.peaks):
            windows.append((start, end))
    return windows


def stroke_confidence(
    points: Sequence[MotionPoint],
    phases: Sequence[PhaseSegment],
    baseline: float,
    config: AnalysisConfig | None = None,
) -> float:
    """Blend of mean phase confidence, energy stability and peak-to-baseline ratio."""
    cfg = config or ANALYSIS_CONFIG
    seg = cfg.segmentation
    phase_conf = float(np.mean([p.confidence for p in phases])) if phases else cfg.phases.default_phase_confidence
    energies = [p.energy for p in points]
    energy_conf = variance_confidence(energies, fallback=1.0, scale=cfg.phases.variance_scale)
    peak = max(energies) if energies else 0.0
    ratio = min(1.0, (peak / (baseline + seg.baseline_epsilon)) / seg.energy_ratio_cap)
    blended = (
        seg.confidence_phase_weight * phase_conf
        + seg.confidence_energy_weight * energy_conf
        + seg.confidence_ratio_weight * ratio
    )
    return float(min(1.0, max(0.0, blended)))


def build_stroke(
    window: Sequence[MotionPoint],
    stroke_type: StrokeType,
    baseline: float,
    config: AnalysisConfig | None = None,
) -> StrokeSegment:
    cfg = config or ANALYSIS_CONFIG
    phases = detect_phases(window, stroke_type, cfg.phases)
    return StrokeSegment(
        stroke_type=stroke_type,
        start_time=window[0].timestamp,
        end_time=window[-1].timestamp,
        frames=tuple(window),
        phases=phases,
        confidence=stroke_confidence(window, phases, baseline, cfg),
        aggregates={phase.phase.value: phase.score for phase in phases},
    )


def segment_strokes(
    points: Sequence[MotionPoint],
    config: AnalysisConfig | None = None,
    *,
    initial_type: Optional[StrokeType] = None,
) -> List[StrokeSegment]:
    """Cut the motion series into classified stroke segments with nested phases."""
    cfg = config or ANALYSIS_CONFIG
    if len(points) < 2:
        return []

    ordered = sorted(points, key=lambda p: p.timestamp)
    extrema = find_peaks_and_valleys([p.energy for p in ordered], cfg)
    windows = candidate_windows(extrema)
    logger.debug(
        "Energy baseline %.4f: %d peaks, %d valleys, %d candidate windows.",
        extrema.baseline,
        len(extrema.peaks),
        len(extrema.valleys),
        len(windows),
    )

    strokes: List[StrokeSegment] = []
    previous_type = initial_type
    for start, end in windows:
        window = ordered[start : end + 1]
        state = classify_window(window, previous_type, cfg.classification)
        previous_type = state.current_type
        strokes.append(build_stroke(window, state.current_type, extrema.baseline, cfg))
    return strokes


__all__ = [
    "EnergyExtrema",
    "baseline_energy",
    "find_peaks_and_valleys",
    "candidate_windows",
    "stroke_confidence",
    "build_stroke",
    "segment_strokes",
]

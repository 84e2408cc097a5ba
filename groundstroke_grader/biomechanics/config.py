"""Configuration for groundstroke segmentation, phase detection and scoring.

Settings include:
- EnergyWeights: coefficients of the composite kinematic energy scalar.
- SegmentationThresholds: baseline quantile and valley/peak factors used to cut
  the energy series into stroke windows, plus stroke-confidence weights.
- ClassificationThresholds: wrist-offset bands, persistence and lockout used by
  the forehand/backhand hysteresis classifier.
- PhaseThresholds: search windows and cutoffs for coil, acceleration, impact,
  follow-through and split-step detection.
- ScoringWeights: per-phase weights of the stroke score and trimming rule.

The constants were tuned empirically on rear-view recordings and have no
documented derivation; they are kept as named values so a domain expert can
review them. Every value can be overridden via environment variables named
``GROUNDSTROKE_<SECTION>_<FIELD>`` (e.g. ``GROUNDSTROKE_SEGMENTATION_PEAK_FACTOR``)
or through an ``[analysis]`` table in a TOML/JSON config file.
"""

from __future__ import annotations

import json
import logging
import math
import os
import warnings
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Type, TypeVar

from groundstroke_grader.env import get_env

try:  # Python 3.11+
    import tomllib  # type: ignore[attr-defined]
except ModuleNotFoundError:  # pragma: no cover - fallback when tomllib missing
    try:
        import tomli as tomllib  # type: ignore
    except ModuleNotFoundError:
        tomllib = None  # type: ignore[assignment]


def _configure_logger() -> logging.Logger:
    logger = logging.getLogger("groundstroke_grader.biomechanics")
    level_name = get_env("LOG_LEVEL") or os.getenv("LOG_LEVEL")
    if level_name:
        level = getattr(logging, level_name.upper(), logging.INFO)
        logger.setLevel(level)
    return logger


ANALYSIS_LOGGER = _configure_logger()
logger = ANALYSIS_LOGGER


@dataclass(frozen=True)
class EnergyWeights:
    """energy = scale * (wrist*v_w^2 + forearm*w_f^2 + shoulder*dC_s^2 + hip*dC_h^2 + com*v_c^2)."""

    scale: float = 0.5
    wrist_linear: float = 0.25
    forearm_angular: float = 0.25
    shoulder_coil: float = 0.25
    hip_coil: float = 0.20
    com: float = 0.05


@dataclass(frozen=True)
class SegmentationThresholds:
    baseline_quantile: float = 0.2
    valley_factor: float = 0.25
    peak_factor: float = 1.3
    scan_margin: int = 2
    confidence_phase_weight: float = 0.5
    confidence_energy_weight: float = 0.3
    confidence_ratio_weight: float = 0.2
    energy_ratio_cap: float = 3.0
    baseline_epsilon: float = 1e-3


@dataclass(frozen=True)
class ClassificationThresholds:
    min_wrist_offset: float = 0.05
    min_shoulder_span: float = 0.05
    ambiguous_offset: float = 0.1
    switch_offset: float = 0.2
    persistence_frames: int = 5
    lockout_frames: int = 9


@dataclass(frozen=True)
class PhaseThresholds:
    min_points: int = 6
    coil_search_frames: int = 20
    coil_shoulder: float = -0.08
    coil_wrist_height: float = -0.1
    coil_wrist_offset: float = 0.1
    acceleration_search_frames: int = 15
    impact_neutral_rotation: float = 0.10
    impact_neutral_shoulder: float = 0.05
    impact_wrist_mid: float = 0.30
    follow_wrist_offset: float = 0.20
    follow_energy_decay: float = 0.30
    follow_wrist_return: float = 0.15
    split_min_hip_span: float = 0.25
    split_min_shoulder_span: float = 0.20
    split_max_wrist_height: float = -0.05
    split_max_energy: float = 0.20
    variance_scale: float = 0.1
    singleton_confidence: float = 0.6
    default_phase_confidence: float = 0.8


@dataclass(frozen=True)
class ScoringWeights:
    coil: float = 0.25
    acceleration: float = 0.25
    impact: float = 0.20
    follow_through: float = 0.20
    split_step: float = 0.10
    trim_min_samples: int = 3


@dataclass(frozen=True)
class AnalysisConfig:
    energy: EnergyWeights = EnergyWeights()
    segmentation: SegmentationThresholds = SegmentationThresholds()
    classification: ClassificationThresholds = ClassificationThresholds()
    phases: PhaseThresholds = PhaseThresholds()
    scoring: ScoringWeights = ScoringWeights()


_SECTIONS: Dict[str, str] = {
    "energy": "ENERGY",
    "segmentation": "SEGMENTATION",
    "classification": "CLASSIFICATION",
    "phases": "PHASES",
    "scoring": "SCORING",
}

_T = TypeVar("_T")


def _coerce_value(raw: Any, default: Any) -> Any:
    try:
        if isinstance(default, int) and not isinstance(default, bool):
            return int(raw)
        value = float(raw)
    except (TypeError, ValueError):
        return default
    return value if math.isfinite(value) else default


def _build_section(cls: Type[_T], section: str, overrides: Mapping[str, Any]) -> _T:
    """Instantiate a threshold dataclass from defaults, file overrides, then env."""
    base = cls()
    values: Dict[str, Any] = {}
    for spec in fields(cls):  # type: ignore[arg-type]
        default = getattr(base, spec.name)
        value = _coerce_value(overrides[spec.name], default) if spec.name in overrides else default
        env_raw = get_env(f"{_SECTIONS[section]}_{spec.name.upper()}")
        if env_raw is not None:
            value = _coerce_value(env_raw, value)
        values[spec.name] = value
    return replace(base, **values)  # type: ignore[type-var]


def build_analysis_config(raw: Mapping[str, Any] | None = None) -> AnalysisConfig:
    """Build an AnalysisConfig from a ``{section: {field: value}}`` mapping plus env overrides."""
    body = raw or {}
    sections: Dict[str, Any] = {}
    for name, cls in (
        ("energy", EnergyWeights),
        ("segmentation", SegmentationThresholds),
        ("classification", ClassificationThresholds),
        ("phases", PhaseThresholds),
        ("scoring", ScoringWeights),
    ):
        section = body.get(name, {})
        sections[name] = _build_section(cls, name, section if isinstance(section, Mapping) else {})
    return AnalysisConfig(**sections)


def _load_toml_file(path: Path) -> Dict[str, Any]:
    if tomllib is None:
        raise ImportError("tomllib is unavailable; install the 'tomli' package to load TOML configs.")
    with path.open("rb") as handle:
        return tomllib.load(handle)


def load_config_from_file(config_path: Path) -> AnalysisConfig:
    """Load analysis thresholds from TOML or JSON and apply env var overrides.

    Env vars take precedence over file values. Supports either a root-level
    mapping or an [analysis] table/object in the config file.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")
    if not path.is_file():
        raise ValueError(f"Expected a config file, but got a directory: {path}")

    suffix = path.suffix.lower()
    if suffix == ".toml":
        raw_config = _load_toml_file(path)
    elif suffix == ".json":
        with path.open("r", encoding="utf-8") as handle:
            raw_config = json.load(handle)
    else:
        raise ValueError(f"Unsupported config format for {path}; expected .toml or .json.")

    config_body = raw_config.get("analysis", raw_config) if isinstance(raw_config, dict) else raw_config
    if not isinstance(config_body, dict):
        raise ValueError("Invalid config structure; expected a dict or an [analysis] section.")
    return build_analysis_config(config_body)


ANALYSIS_CONFIG: AnalysisConfig = build_analysis_config()


def _warn(message: str) -> None:
    warnings.warn(message, RuntimeWarning, stacklevel=3)
    logger.warning(message)


def _check_weight_sums(config: AnalysisConfig) -> None:
    energy = config.energy
    energy_total = energy.wrist_linear + energy.forearm_angular + energy.shoulder_coil + energy.hip_coil + energy.com
    scoring = config.scoring
    scoring_total = scoring.coil + scoring.acceleration + scoring.impact + scoring.follow_through + scoring.split_step
    seg = config.segmentation
    confidence_total = seg.confidence_phase_weight + seg.confidence_energy_weight + seg.confidence_ratio_weight
    for label, total in (
        ("energy weights", energy_total),
        ("phase scoring weights", scoring_total),
        ("stroke confidence weights", confidence_total),
    ):
        if not 0.99 <= total <= 1.01:
            _warn(f"{label} sum to {total:.3f} (expected 1.0); scores will not be comparable across configs.")


def _check_fractions(config: AnalysisConfig) -> None:
    for name, value in (
        ("segmentation.baseline_quantile", config.segmentation.baseline_quantile),
        ("phases.follow_energy_decay", config.phases.follow_energy_decay),
        ("phases.singleton_confidence", config.phases.singleton_confidence),
        ("phases.default_phase_confidence", config.phases.default_phase_confidence),
    ):
        if not 0.0 <= value <= 1.0:
            _warn(f"{name}={value} is outside [0,1]; please correct the environment or config.")
    if config.segmentation.valley_factor >= config.segmentation.peak_factor:
        _warn(
            "segmentation.valley_factor should be well below segmentation.peak_factor "
            f"({config.segmentation.valley_factor} >= {config.segmentation.peak_factor})."
        )
    if config.classification.ambiguous_offset > config.classification.switch_offset:
        _warn(
            "classification.ambiguous_offset exceeds classification.switch_offset; "
            "no frame can ever trigger a stroke-type switch."
        )


def _check_counts(config: AnalysisConfig) -> None:
    for name, value in (
        ("segmentation.scan_margin", config.segmentation.scan_margin),
        ("classification.persistence_frames", config.classification.persistence_frames),
        ("phases.min_points", config.phases.min_points),
        ("phases.coil_search_frames", config.phases.coil_search_frames),
        ("scoring.trim_min_samples", config.scoring.trim_min_samples),
    ):
        if value <= 0:
            _warn(f"{name}={value} is non-positive; expected a positive frame count.")
    if config.classification.lockout_frames < 0:
        _warn(f"classification.lockout_frames={config.classification.lockout_frames} is negative.")
    if config.phases.variance_scale <= 0:
        _warn(f"phases.variance_scale={config.phases.variance_scale} must be positive.")


def validate_config_values(config: AnalysisConfig | None = None) -> None:
    """Validate current config values and emit warnings for suspicious settings."""
    cfg = config or ANALYSIS_CONFIG
    _check_weight_sums(cfg)
    _check_fractions(cfg)
    _check_counts(cfg)


def config_as_dict(config: AnalysisConfig | None = None) -> Dict[str, Dict[str, Any]]:
    cfg = config or ANALYSIS_CONFIG
    out: Dict[str, Dict[str, Any]] = {}
    for name in _SECTIONS:
        section = getattr(cfg, name)
        out[name] = {spec.name: getattr(section, spec.name) for spec in fields(section)}
    return out


def print_config(config: AnalysisConfig | None = None) -> None:
    """Print configuration values for debugging purposes."""
    print("Groundstroke analysis configuration:")
    for section, values in config_as_dict(config).items():
        print(f"  [{section}]")
        for key, value in values.items():
            print(f"    {key} = {value}")


__all__ = [
    "ANALYSIS_LOGGER",
    "ANALYSIS_CONFIG",
    "AnalysisConfig",
    "EnergyWeights",
    "SegmentationThresholds",
    "ClassificationThresholds",
    "PhaseThresholds",
    "ScoringWeights",
    "build_analysis_config",
    "load_config_from_file",
    "validate_config_values",
    "config_as_dict",
    "print_config",
]


# Run validation at import to surface misconfigurations early.
validate_config_values()

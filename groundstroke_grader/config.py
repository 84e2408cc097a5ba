from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping

from .biomechanics.config import ANALYSIS_CONFIG, AnalysisConfig, build_analysis_config, config_as_dict
from .env import get_env

try:  # pragma: no cover - Python 3.11+
    import tomllib  # type: ignore[attr-defined]
except ModuleNotFoundError:  # pragma: no cover - Python <3.11
    try:
        import tomli as tomllib  # type: ignore
    except ModuleNotFoundError:
        tomllib = None  # type: ignore

DEFAULT_MOTION_WORKERS = 4
DEFAULT_EXPORT_WORKERS = 2
DEFAULT_CLIPS_DIR = Path("clips")


@dataclass(frozen=True)
class AppConfig:
    motion_workers: int = DEFAULT_MOTION_WORKERS
    export_workers: int = DEFAULT_EXPORT_WORKERS
    clips_dir: Path = DEFAULT_CLIPS_DIR
    analysis: AnalysisConfig = field(default_factory=lambda: ANALYSIS_CONFIG)


def _config_path() -> Path | None:
    """Resolve the TOML configuration file, if present."""
    env_override = get_env("CONFIG")
    if env_override:
        path = Path(env_override).expanduser()
        return path if path.exists() else None

    default_path = Path("config/groundstroke.toml")
    if default_path.exists():
        return default_path
    return None


def _load_toml(path: Path) -> Mapping[str, Any]:
    if tomllib is None:
        raise RuntimeError("TOML configuration requires Python 3.11+ or the 'tomli' package.")
    with path.open("rb") as handle:
        return tomllib.load(handle)


def _coerce_workers(raw: Any, default: int) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


def _build_config(raw: Mapping[str, Any]) -> AppConfig:
    pipeline = raw.get("pipeline")
    section: Mapping[str, Any] = pipeline if isinstance(pipeline, Mapping) else {}
    motion_workers = _coerce_workers(
        get_env("MOTION_WORKERS", section.get("motion_workers")), DEFAULT_MOTION_WORKERS
    )
    export_workers = _coerce_workers(
        get_env("EXPORT_WORKERS", section.get("export_workers")), DEFAULT_EXPORT_WORKERS
    )
    clips_dir = get_env("CLIPS_DIR", section.get("clips_dir"))
    analysis_section = raw.get("analysis")
    analysis = build_analysis_config(analysis_section if isinstance(analysis_section, Mapping) else None)
    return AppConfig(
        motion_workers=motion_workers,
        export_workers=export_workers,
        clips_dir=Path(clips_dir).expanduser() if clips_dir else DEFAULT_CLIPS_DIR,
        analysis=analysis,
    )


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Load configuration once; env vars override the TOML file, which overrides defaults."""
    path = _config_path()
    data = _load_toml(path) if path else {}
    return _build_config(data)


def as_dict() -> dict[str, Any]:
    """Return the effective configuration for debug/CLI display."""
    config = get_config()
    return {
        "motion_workers": config.motion_workers,
        "export_workers": config.export_workers,
        "clips_dir": str(config.clips_dir),
        "analysis": config_as_dict(config.analysis),
        "source": str(_config_path() or "defaults"),
    }

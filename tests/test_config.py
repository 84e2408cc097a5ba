from __future__ import annotations

import json

import pytest

from groundstroke_grader import config as app_config
from groundstroke_grader.env import get_env
from groundstroke_grader.biomechanics.config import (
    AnalysisConfig,
    build_analysis_config,
    config_as_dict,
    load_config_from_file,
    validate_config_values,
)


def test_defaults() -> None:
    cfg = build_analysis_config()
    assert cfg.segmentation.baseline_quantile == pytest.approx(0.2)
    assert cfg.classification.persistence_frames == 5
    assert cfg.classification.lockout_frames == 9
    assert cfg.scoring.split_step == pytest.approx(0.10)
    assert set(config_as_dict(cfg)) == {"energy", "segmentation", "classification", "phases", "scoring"}


def test_env_overrides_take_precedence(monkeypatch) -> None:
    monkeypatch.setenv("GROUNDSTROKE_SEGMENTATION_PEAK_FACTOR", "1.6")
    monkeypatch.setenv("GROUNDSTROKE_CLASSIFICATION_LOCKOUT_FRAMES", "12")
    monkeypatch.setenv("GROUNDSTROKE_PHASES_MIN_POINTS", "not-a-number")
    cfg = build_analysis_config({"segmentation": {"peak_factor": 2.0, "valley_factor": 0.3}})
    assert cfg.segmentation.peak_factor == pytest.approx(1.6)
    assert cfg.segmentation.valley_factor == pytest.approx(0.3)
    assert cfg.classification.lockout_frames == 12
    assert cfg.phases.min_points == 6


def test_load_config_from_toml_and_json(tmp_path) -> None:
    toml_path = tmp_path / "analysis.toml"
    toml_path.write_text("[analysis.scoring]\nimpact = 0.3\n", encoding="utf-8")
    assert load_config_from_file(toml_path).scoring.impact == pytest.approx(0.3)

    json_path = tmp_path / "analysis.json"
    json_path.write_text(json.dumps({"phases": {"coil_search_frames": 25}}), encoding="utf-8")
    assert load_config_from_file(json_path).phases.coil_search_frames == 25

    with pytest.raises(FileNotFoundError):
        load_config_from_file(tmp_path / "missing.toml")
    with pytest.raises(ValueError):
        load_config_from_file(tmp_path)


def test_validation_warns_on_bad_weights() -> None:
    bad = build_analysis_config({"scoring": {"impact": 0.9}})
    with pytest.warns(RuntimeWarning, match="phase scoring weights"):
        validate_config_values(bad)


def test_app_config_reads_toml(tmp_path, monkeypatch) -> None:
    path = tmp_path / "groundstroke.toml"
    path.write_text(
        "[pipeline]\nmotion_workers = 3\nclips_dir = \"highlights\"\n\n[analysis.classification]\nlockout_frames = 4\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("GROUNDSTROKE_CONFIG", str(path))
    monkeypatch.setenv("GROUNDSTROKE_EXPORT_WORKERS", "0")
    app_config.get_config.cache_clear()
    try:
        cfg = app_config.get_config()
        assert cfg.motion_workers == 3
        assert cfg.export_workers == app_config.DEFAULT_EXPORT_WORKERS
        assert str(cfg.clips_dir) == "highlights"
        assert isinstance(cfg.analysis, AnalysisConfig)
        assert cfg.analysis.classification.lockout_frames == 4
        assert app_config.as_dict()["source"] == str(path)
    finally:
        app_config.get_config.cache_clear()


def test_get_env_reads_prefixed_names(monkeypatch) -> None:
    monkeypatch.setenv("GROUNDSTROKE_CLIPS_DIR", "highlights")
    monkeypatch.delenv("GROUNDSTROKE_LOG_LEVEL", raising=False)
    assert get_env("CLIPS_DIR") == "highlights"
    assert get_env("LOG_LEVEL") is None
    assert get_env("LOG_LEVEL", "INFO") == "INFO"

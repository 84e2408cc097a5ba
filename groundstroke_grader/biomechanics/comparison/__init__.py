"""Stroke and video level scoring."""

from __future__ import annotations

from typing import Any

__all__ = [
    "phase_weights",
    "trimmed_mean",
    "score_stroke",
    "score_video",
    "sub_metric_averages",
]

_SCORING_EXPORTS = set(__all__)


def __getattr__(name: str) -> Any:  # pragma: no cover - exercised indirectly
    if name in _SCORING_EXPORTS:
        from . import scoring as _scoring

        return getattr(_scoring, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__() -> list[str]:  # pragma: no cover - trivial
    return sorted(set(list(globals()) + __all__))

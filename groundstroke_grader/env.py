from __future__ import annotations

import os

PRIMARY_PREFIX = "GROUNDSTROKE_"


def get_env(name: str, default: str | None = None) -> str | None:
    """
    Resolve configuration environment variables.

    Every setting lives under the ``GROUNDSTROKE_`` prefix, e.g. ``GROUNDSTROKE_LOG_LEVEL``.
    """
    value = os.getenv(f"{PRIMARY_PREFIX}{name}")
    if value is not None:
        return value
    return default

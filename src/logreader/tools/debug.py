"""Opt-in switch for extra per-line instrumentation."""

from __future__ import annotations

import os

_TRUTHY = {"1", "true", "yes", "on"}


def debug_enabled() -> bool:
    """Return True when ``LOGREADER_DEBUG`` asks for verbose tracing."""
    return os.getenv("LOGREADER_DEBUG", "").strip().lower() in _TRUTHY

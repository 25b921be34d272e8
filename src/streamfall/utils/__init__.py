"""Utility functions for streamfall.

Available via `from streamfall.utils import ...` for power users.
Not re-exported at the top-level `streamfall` package.
"""

from streamfall.utils.duration import milliseconds_to_seconds, parse_iso8601_duration
from streamfall.utils.platform import detect_platform, ensure_platform

__all__ = [
    "detect_platform",
    "ensure_platform",
    "milliseconds_to_seconds",
    "parse_iso8601_duration",
]

"""Duration parsing helpers."""

import logging
import re

logger = logging.getLogger(__name__)

_ISO8601_PATTERN = re.compile(
    r"^P(?:(?P<days>\d+)D)?"
    r"(?:T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+)S)?)?$"
)


def parse_iso8601_duration(value: str) -> int:
    """Parse an ISO-8601 duration like 'PT3M20S' to seconds.

    Returns 0 for empty or unparseable values (logs warning).
    """
    if not value:
        return 0

    match = _ISO8601_PATTERN.match(value)
    if not match or value in ("P", "PT"):
        logger.warning("Could not parse duration: %s", value)
        return 0

    parts = {k: int(v) for k, v in match.groupdict().items() if v}
    return (
        parts.get("days", 0) * 86400
        + parts.get("hours", 0) * 3600
        + parts.get("minutes", 0) * 60
        + parts.get("seconds", 0)
    )


def milliseconds_to_seconds(value: int | None) -> int:
    """Convert a millisecond duration to whole seconds (floor)."""
    if not value or value < 0:
        return 0
    return value // 1000

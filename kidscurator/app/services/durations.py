from __future__ import annotations

import re

ISO8601_DURATION_PATTERN = re.compile(
    r"PT(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+)S)?"
)
_LEADING_INT_PATTERN = re.compile(r"^\s*[+-]?\d+")


def parse_duration_seconds(raw_value: str | None) -> int:
    """
    Best-effort conversion of a duration label into whole seconds.

    Accepts ISO-8601 (`PT1H2M10S`, any component optional) and clock labels
    (`1:02:10`, `2:05`). Never raises: anything unreadable counts as zero,
    which the duration gate later treats as "too short".
    """
    if not raw_value:
        return 0

    matched = ISO8601_DURATION_PATTERN.search(raw_value)
    if matched is not None:
        hours = int(matched.group("hours") or 0)
        minutes = int(matched.group("minutes") or 0)
        seconds = int(matched.group("seconds") or 0)
        return hours * 3_600 + minutes * 60 + seconds

    parts = [_coerce_clock_part(part) for part in raw_value.split(":")]
    total_seconds = 0
    for multiplier, value in zip((1, 60, 3_600), reversed(parts)):
        total_seconds += multiplier * value
    return max(0, total_seconds)


def format_duration(total_seconds: int) -> str:
    clamped = max(0, int(total_seconds))
    hours, remainder = divmod(clamped, 3_600)
    minutes, seconds = divmod(remainder, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


def _coerce_clock_part(raw_part: str) -> int:
    # Leading digits win ("05s" -> 5); anything else is zero.
    matched = _LEADING_INT_PATTERN.match(raw_part)
    if matched is None:
        return 0
    return max(0, int(matched.group(0)))

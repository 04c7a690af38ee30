"""Time ruler tick placement for the waveform timeline."""

from __future__ import annotations

import math
from dataclasses import dataclass

from ..constants import (
    MICROS_PER_SECOND,
    TIMELINE_MIN_TICK_SPACING_PX,
    TIMELINE_STEP_TABLE_SECONDS,
    TIMELINE_TARGET_TICKS,
)

_OVERFLOW_STEP_SECONDS = 300


@dataclass(frozen=True)
class TimelineTick:
    time_microseconds: int
    label: str
    x: int


def format_tick_label(time_microseconds: int) -> str:
    """Render a tick time as minutes:seconds.milliseconds, e.g. 1:23.456."""
    total_ms = max(0, int(time_microseconds)) // 1000
    minutes, rest_ms = divmod(total_ms, 60_000)
    seconds, millis = divmod(rest_ms, 1000)
    return f"{minutes}:{seconds:02d}.{millis:03d}"


def snap_step(seconds: float) -> int:
    for step in TIMELINE_STEP_TABLE_SECONDS:
        if seconds <= step:
            return step
    return int(math.ceil(seconds / _OVERFLOW_STEP_SECONDS)) * _OVERFLOW_STEP_SECONDS


def choose_step(
    total_seconds: float,
    pixel_width: int,
    *,
    target_ticks: int = TIMELINE_TARGET_TICKS,
    min_spacing_px: int = TIMELINE_MIN_TICK_SPACING_PX,
) -> int:
    """Pick a tick interval in whole seconds.

    Starts from total/target_ticks snapped up to a round value; when that
    would crowd ticks closer than min_spacing_px the interval is widened.
    """
    step = snap_step(total_seconds / max(1, target_ticks))
    max_ticks = max(1, int(pixel_width) // max(1, min_spacing_px))
    if total_seconds / step > max_ticks:
        step = snap_step(math.ceil(total_seconds / max_ticks))
    return step


def ticks(
    total_microseconds: int,
    pixel_width: int,
    *,
    target_ticks: int = TIMELINE_TARGET_TICKS,
    min_spacing_px: int = TIMELINE_MIN_TICK_SPACING_PX,
) -> list[TimelineTick]:
    if total_microseconds <= 0 or pixel_width <= 0:
        return []
    total_seconds = total_microseconds / MICROS_PER_SECOND
    step_us = choose_step(
        total_seconds,
        pixel_width,
        target_ticks=target_ticks,
        min_spacing_px=min_spacing_px,
    ) * MICROS_PER_SECOND
    result: list[TimelineTick] = []
    time_us = 0
    while time_us <= total_microseconds:
        x = int(time_us * pixel_width // total_microseconds)
        result.append(TimelineTick(time_us, format_tick_label(time_us), x))
        time_us += step_us
    return result

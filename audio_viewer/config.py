"""Configuration loading from environment variables."""
from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

from .constants import (
    DEFAULT_END_TOLERANCE_MS,
    DEFAULT_PROGRESS_INTERVAL_MS,
    DEFAULT_SEEK_STEP_SECONDS,
    DEFAULT_WAVEFORM_POINTS,
    MP3_PLAYBACK_MODES,
    MP3_RESYNC_WINDOW_BYTES,
    TIMELINE_MIN_TICK_SPACING_PX,
    TIMELINE_TARGET_TICKS,
)
from .utils import env_flag, parse_choice_env, parse_float_env, parse_int_env, resolve_path


@dataclass(frozen=True)
class PlayerConfig:
    log_level: str
    file_log_level: str
    log_dir: str
    log_file: Optional[str]
    waveform_points: int = DEFAULT_WAVEFORM_POINTS
    mp3_envelope_points: int = DEFAULT_WAVEFORM_POINTS
    progress_interval_ms: int = DEFAULT_PROGRESS_INTERVAL_MS
    end_tolerance_ms: int = DEFAULT_END_TOLERANCE_MS
    timeline_target_ticks: int = TIMELINE_TARGET_TICKS
    timeline_min_tick_spacing_px: int = TIMELINE_MIN_TICK_SPACING_PX
    seek_step_seconds: float = DEFAULT_SEEK_STEP_SECONDS
    mp3_playback_mode: str = "stream"
    mp3_resync_window_bytes: int = MP3_RESYNC_WINDOW_BYTES

    @property
    def end_tolerance_us(self) -> int:
        return int(self.end_tolerance_ms) * 1000


def load_config() -> PlayerConfig:
    base_dir = str(Path(__file__).resolve().parents[1])
    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO"
    file_log_level = os.getenv("FILE_LOG_LEVEL", "DEBUG").strip().upper() or "DEBUG"
    log_dir = resolve_path(os.getenv("LOG_DIR", "logs"), base_dir)
    log_file = None
    if env_flag("LOG_TO_FILE", "1"):
        os.makedirs(log_dir, exist_ok=True)
        log_file = os.path.join(
            log_dir, f"audio_{datetime.now().strftime('%Y%m%d_%H%M%S_%f')}.log"
        )
    return PlayerConfig(
        log_level=log_level,
        file_log_level=file_log_level,
        log_dir=log_dir,
        log_file=log_file,
        waveform_points=parse_int_env(
            "WAVEFORM_POINTS", DEFAULT_WAVEFORM_POINTS, min_value=10, max_value=20000
        ),
        mp3_envelope_points=parse_int_env(
            "MP3_ENVELOPE_POINTS", DEFAULT_WAVEFORM_POINTS, min_value=10, max_value=20000
        ),
        progress_interval_ms=parse_int_env(
            "PROGRESS_INTERVAL_MS", DEFAULT_PROGRESS_INTERVAL_MS, min_value=10, max_value=2000
        ),
        end_tolerance_ms=parse_int_env(
            "END_TOLERANCE_MS", DEFAULT_END_TOLERANCE_MS, min_value=0, max_value=10000
        ),
        timeline_target_ticks=parse_int_env(
            "TIMELINE_TARGET_TICKS", TIMELINE_TARGET_TICKS, min_value=2, max_value=50
        ),
        timeline_min_tick_spacing_px=parse_int_env(
            "TIMELINE_MIN_TICK_SPACING_PX",
            TIMELINE_MIN_TICK_SPACING_PX,
            min_value=10,
            max_value=500,
        ),
        seek_step_seconds=parse_float_env(
            "SEEK_STEP_SECONDS", DEFAULT_SEEK_STEP_SECONDS, min_value=0.1, max_value=600.0
        ),
        mp3_playback_mode=parse_choice_env("MP3_PLAYBACK_MODE", "stream", MP3_PLAYBACK_MODES),
        mp3_resync_window_bytes=parse_int_env(
            "MP3_RESYNC_WINDOW_BYTES",
            MP3_RESYNC_WINDOW_BYTES,
            min_value=1024,
            max_value=1048576,
        ),
    )

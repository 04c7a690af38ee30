"""Shared constants for audio loading, waveform extraction and playback."""
from __future__ import annotations

SUPPORTED_EXTENSIONS = ("wav", "au", "aiff", "mp3")
SUPPORTED_FORMATS_LABEL = "WAV, AU, AIFF, MP3"

MICROS_PER_SECOND = 1_000_000

DEFAULT_WAVEFORM_POINTS = 1000
DEFAULT_PROGRESS_INTERVAL_MS = 100
DEFAULT_END_TOLERANCE_MS = 1000
DEFAULT_SEEK_STEP_SECONDS = 5.0

TIMELINE_TARGET_TICKS = 10
TIMELINE_MIN_TICK_SPACING_PX = 50
TIMELINE_STEP_TABLE_SECONDS = (1, 2, 5, 10, 15, 30, 60, 120, 300, 600, 900, 1800)

MP3_PLAYBACK_MODES = ("stream", "clip")
MP3_DEFAULT_SAMPLE_RATE = 44100
MP3_DEFAULT_CHANNELS = 2
MP3_RESYNC_WINDOW_BYTES = 65536

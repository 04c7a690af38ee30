"""Command-line entrypoint: load an audio file, print its summary, optionally play it."""
from __future__ import annotations

import argparse
import sys
import threading
from dataclasses import replace
from typing import Optional, Sequence

from .application.bootstrap import create_session
from .application.ui_hooks import PlayerHooks
from .config import PlayerConfig, load_config
from .constants import SUPPORTED_EXTENSIONS
from .domain.metadata import format_position
from .domain.playback import PlaybackStatus
from .logging_config import setup_logging
from .storage.audio_source import FileAudioSource


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Inspect an audio file: metadata, waveform envelope and timeline.",
        epilog=f"Supported extensions: {', '.join(SUPPORTED_EXTENSIONS)}",
    )
    parser.add_argument("file", help="Path to a WAV, AU, AIFF or MP3 file")
    parser.add_argument("--play", action="store_true", help="Play the file to the end")
    parser.add_argument("--width", type=int, default=600, help="Timeline width in pixels")
    parser.add_argument(
        "--points", type=int, default=None, help="Override the waveform point count"
    )
    return parser


def _sparkline(values, width: int = 60) -> str:
    blocks = " .:-=+*#%@"
    if not values:
        return ""
    step = max(1, len(values) // width)
    sampled = [max(values[i : i + step]) for i in range(0, len(values), step)]
    return "".join(blocks[min(len(blocks) - 1, int(v * (len(blocks) - 1)))] for v in sampled)


def run(config: PlayerConfig, args: argparse.Namespace, logger) -> int:
    finished = threading.Event()

    def on_state(state) -> None:
        if state.kind is PlaybackStatus.STOPPED:
            finished.set()

    def on_progress(_fraction: float, position_us: int, total_us: int) -> None:
        logger.debug("Position %s", format_position(position_us, total_us))

    hooks = PlayerHooks(
        metadata_ready=lambda descriptor, duration: logger.info(
            "Format: %s, %d Hz, %d ch, %s",
            descriptor.encoding_name,
            descriptor.sample_rate_hz,
            descriptor.channel_count,
            duration.label(),
        ),
        waveform_ready=lambda envelope: logger.info(
            "Waveform: %d points (%s)", len(envelope), envelope.provenance.value
        ),
        progress=on_progress,
        state_changed=on_state,
        error=lambda kind, message: logger.error("%s: %s", kind.value, message),
        status=lambda text: logger.info("Status: %s", text),
    )
    session = create_session(config, logger, hooks)
    try:
        loaded = session.loaded if session.load(FileAudioSource(args.file)) else None
        if loaded is None:
            return 1
        for label, value in loaded.metadata.rows():
            print(f"{label + ':':<13}{value}")
        print(_sparkline(loaded.envelope.points))
        print("  ".join(tick.label for tick in session.timeline(args.width)))
        if args.play:
            if session.controller is None:
                return 2
            finished.clear()
            if not session.controller.play().accepted:
                return 2
            finished.wait()
        return 0
    finally:
        session.dispose()


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = load_config()
    if args.points:
        config = replace(config, waveform_points=args.points, mp3_envelope_points=args.points)
    logger = setup_logging(config)
    logger.info("Starting audio viewer")
    logger.info("Log file: %s", config.log_file)
    return run(config, args, logger)


if __name__ == "__main__":
    sys.exit(main())

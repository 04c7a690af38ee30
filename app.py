"""Script entrypoint for the audio viewer command line."""

from __future__ import annotations

import sys

from audio_viewer.main import main


def launch() -> int:
    return main(sys.argv[1:])


if __name__ == "__main__":
    raise SystemExit(launch())

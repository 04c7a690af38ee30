"""Timer-thread scheduler backing the playback progress tick."""

from __future__ import annotations

import logging
import threading
from typing import Callable


class ThreadingScheduler:
    """Run callbacks on daemon threading.Timer threads."""

    def __init__(self, logger=None) -> None:
        self.logger = logger or logging.getLogger(__name__)

    def after(self, delay_ms: int, callback: Callable[[], None]) -> threading.Timer:
        def _run() -> None:
            try:
                callback()
            except Exception:
                self.logger.exception("Scheduled callback failed")

        timer = threading.Timer(max(0, int(delay_ms)) / 1000.0, _run)
        timer.daemon = True
        timer.start()
        return timer

    def cancel(self, handle: threading.Timer | None) -> None:
        if handle is not None:
            handle.cancel()

"""Background thread that saves the tally snapshot on a fixed interval."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

logger = logging.getLogger(__name__)


class PeriodicSaver:
    """Calls ``save`` every ``interval_seconds`` until stopped.

    A failing cycle is logged and counted; the next cycle runs on schedule.
    """

    def __init__(
        self,
        save: Callable[[], object],
        interval_seconds: float,
        *,
        name: str = "tally-saver",
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.interval_seconds: float = interval_seconds
        self.name: str = name
        self.cycles: int = 0
        self.failures: int = 0
        self._save: Callable[[], object] = save
        self._stop_event: threading.Event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()
        logger.info(f"Saving tallies every {self.interval_seconds:g}s")

    def stop(self, final_save: bool = False, timeout: float | None = None) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        if final_save:
            self.run_once()

    def run_once(self) -> bool:
        try:
            self._save()
        except Exception as exc:  # noqa: BLE001
            self.failures += 1
            logger.error(f"Tally snapshot cycle failed: {exc}")
            return False
        finally:
            self.cycles += 1
        return True

    def _run(self) -> None:
        while not self._stop_event.wait(self.interval_seconds):
            self.run_once()

from __future__ import annotations

import logging
import threading
import weakref
from typing import Protocol

logger = logging.getLogger("expiremap")


class Sweepable(Protocol):
    def sweep(self) -> int: ...


class Reclaimer:
    """Periodically sweeps expired entries out of a map on a daemon thread.

    Only a weak reference to the map is held, so the thread never keeps a map
    alive on its own. Once the map is collected the loop ends by itself.
    At most one sweeping thread exists per reclaimer; each thread owns the
    event that stops it, so a restart never revives a stopped thread.
    """

    def __init__(self, target: Sweepable, period: float) -> None:
        if period <= 0:
            raise ValueError("Sweep period must be positive.")
        self._target = weakref.ref(target)
        self._period = period
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._state_lock = threading.Lock()

    @property
    def period(self) -> float:
        return self._period

    @property
    def is_running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive() and not self._stop_event.is_set()

    def start(self) -> None:
        with self._state_lock:
            if self.is_running:
                return
            previous = self._thread
            if previous is not None and previous is not threading.current_thread():
                # A stopped thread may still be finishing its last sweep.
                previous.join()
            self._stop_event = threading.Event()
            self._thread = threading.Thread(
                target=self._run,
                args=(self._stop_event,),
                name="expiremap-reclaimer",
                daemon=True,
            )
            self._thread.start()
        logger.info("Reclaimer started (period=%.3fs)", self._period)

    def stop(self, timeout: float | None = None) -> None:
        with self._state_lock:
            self._stop_event.set()
            thread = self._thread
            if thread is None:
                return
            if thread is not threading.current_thread():
                thread.join(timeout)
            if thread.is_alive():
                logger.info("Reclaimer stopping; sweep still in progress")
                return
            self._thread = None
        logger.info("Reclaimer stopped")

    def _run(self, stop_event: threading.Event) -> None:
        while not stop_event.wait(self._period):
            target = self._target()
            if target is None:
                return
            try:
                removed = target.sweep()
            except Exception:
                logger.exception("Sweep failed; will retry next period")
                removed = 0
            # Drop the strong reference before sleeping again.
            target = None
            if removed:
                logger.debug("Swept %d expired entries", removed)

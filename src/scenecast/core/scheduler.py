"""
Frame Scheduler - host repaint cadence

The playback clock never assumes a fixed tick interval: it asks the
scheduler for "the next frame" and receives the wall-clock timestamp (ms)
at which that frame fires, computing its own deltas.

ThreadedFrameScheduler is the headless default: one daemon worker thread
that fires all pending callbacks once per interval, like a display's
animation-frame loop. Tests drive a manual scheduler instead.
"""

import itertools
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional

from ..logger import logger

FrameCallback = Callable[[float], None]


class FrameScheduler(ABC):
    """Source of animation-frame callbacks and the matching clock."""

    @abstractmethod
    def now(self) -> float:
        """Current timestamp in milliseconds."""

    @abstractmethod
    def request_frame(self, callback: FrameCallback) -> int:
        """Run callback(timestamp_ms) once on the next frame. Returns a handle."""

    @abstractmethod
    def cancel(self, handle: int) -> None:
        """Drop a pending callback. Unknown handles are ignored."""

    def close(self) -> None:
        """Release scheduler resources."""


class ThreadedFrameScheduler(FrameScheduler):
    """
    Fires pending callbacks from a single worker thread.

    Callbacks requested during a frame run on the following frame, so a
    tick that reschedules itself is never reentrant.
    """

    def __init__(self, interval_ms: float = 16.0):
        self.interval_ms = interval_ms
        self._pending: Dict[int, FrameCallback] = {}
        self._handles = itertools.count(1)
        self._cond = threading.Condition()
        self._thread: Optional[threading.Thread] = None
        self._closed = False

    def now(self) -> float:
        return time.perf_counter() * 1000.0

    def request_frame(self, callback: FrameCallback) -> int:
        with self._cond:
            if self._closed:
                raise RuntimeError("Scheduler is closed")
            handle = next(self._handles)
            self._pending[handle] = callback
            self._ensure_worker()
            self._cond.notify()
            return handle

    def cancel(self, handle: int) -> None:
        with self._cond:
            self._pending.pop(handle, None)

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._pending.clear()
            self._cond.notify_all()
        if self._thread and self._thread is not threading.current_thread():
            self._thread.join(timeout=1.0)

    def _ensure_worker(self) -> None:
        # Caller holds self._cond
        if self._thread is None or not self._thread.is_alive():
            self._thread = threading.Thread(target=self._loop, name="frame-scheduler", daemon=True)
            self._thread.start()

    def _loop(self) -> None:
        interval = self.interval_ms / 1000.0
        next_frame = time.perf_counter() + interval
        while True:
            with self._cond:
                while not self._pending and not self._closed:
                    self._cond.wait()
                    next_frame = time.perf_counter() + interval
                if self._closed:
                    return

            delay = next_frame - time.perf_counter()
            if delay > 0:
                time.sleep(delay)
            next_frame = max(next_frame + interval, time.perf_counter())

            with self._cond:
                batch = self._pending
                self._pending = {}

            timestamp = self.now()
            for callback in batch.values():
                try:
                    callback(timestamp)
                except Exception as e:
                    logger.error(f"Frame callback failed: {e}")

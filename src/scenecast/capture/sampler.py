"""
Frame Sampler

Maps real-time playback onto the ideal frame grid 0, 1/F, 2/F, ... < D.

On every playback tick, every grid point whose time has elapsed is filled.
When the clock lagged past several grid points in one tick, they all get
the same snapshot rather than being skipped, so the number of frames
always equals the grid length.
"""

import math
import threading
from typing import Any, Callable, List, Optional

from ..core.models import CaptureJob
from ..exceptions import RenderFailure
from ..logger import logger
from .frame_queue import FrameQueue


def frame_count(duration_ms: float, fps: int) -> int:
    """Number of grid points strictly before the end of the timeline."""
    if duration_ms <= 0 or fps <= 0:
        return 0
    # Rounding absorbs float noise such as 300.00000000000006ms
    return int(math.ceil(round(duration_ms * fps / 1000.0, 6)))


def frame_grid(duration_ms: float, fps: int) -> List[float]:
    """Grid timestamps in milliseconds."""
    return [i * 1000.0 / fps for i in range(frame_count(duration_ms, fps))]


class FrameSampler:
    def __init__(
        self,
        fps: int,
        duration_ms: float,
        snapshot: Callable[[], Any],
        frame_queue: FrameQueue,
        signature: Optional[Callable[[Any], str]] = None,
    ):
        self.fps = fps
        self.duration_ms = duration_ms
        self.total_frames = frame_count(duration_ms, fps)
        self.queue = frame_queue
        self._snapshot = snapshot
        self._signature = signature or (lambda state: state.signature)
        self._next_index = 0
        self._enqueued = 0
        self._lock = threading.Lock()

    @property
    def next_index(self) -> int:
        """First grid slot not yet filled (= slots consumed so far)."""
        return self._next_index

    @property
    def enqueued(self) -> int:
        return self._enqueued

    @property
    def complete(self) -> bool:
        return self._next_index >= self.total_frames

    def grid_time(self, index: int) -> float:
        return index * 1000.0 / self.fps

    def on_tick(self, position_ms: float) -> int:
        """
        Fill all grid slots up to `position_ms` with one snapshot.

        Returns the number of jobs enqueued. A failed snapshot consumes its
        slots without enqueuing; the muxer fills the hole.
        """
        with self._lock:
            first = self._next_index
            last = first
            while last < self.total_frames and self.grid_time(last) <= position_ms:
                last += 1
            if last == first:
                return 0
            self._next_index = last

            try:
                state = self._snapshot()
                signature = self._signature(state)
            except Exception as e:
                failure = RenderFailure(f"Snapshot failed: {e}", frame_index=first)
                logger.warning(f"   ⚠️  Frames {first}-{last - 1} skipped: {failure}")
                return 0

            for index in range(first, last):
                self.queue.put(CaptureJob(
                    frame_index=index,
                    visual_state=state,
                    content_signature=signature,
                    timestamp_ms=position_ms,
                ))
            self._enqueued += last - first
            if last - first > 1:
                logger.debug(f"Catch-up: frames {first}-{last - 1} share one snapshot at {position_ms:.0f}ms")
            return last - first

"""
Playback Clock

State machine and tick loop for timeline playback.

States:
    IDLE    -> nothing played since load
    PLAYING -> ticks scheduled
    PAUSED  -> stopped by pause()
    ENDED   -> tick reached the end of the timeline

Each tick measures the real elapsed time since the previous tick, so the
clock stays correct under any frame pacing. A tick always finishes before
the next one is requested.
"""

import threading
from enum import Enum
from typing import Callable, Optional

from ..logger import logger
from .models import TimelineState
from .scheduler import FrameScheduler
from .timeline import SceneTimeline


class ClockState(Enum):
    IDLE = "idle"
    PLAYING = "playing"
    PAUSED = "paused"
    ENDED = "ended"


SceneChangeHandler = Callable[[int, int], None]
TickHandler = Callable[[float], None]
EndHandler = Callable[[], None]


class PlaybackClock:
    """
    Drives TimelineState from scheduler frames.

    Callbacks:
        on_scene_change(previous_index, new_index) when a tick crosses a boundary
        on_tick(current_time_ms) after every non-final tick
        on_end() once when a tick reaches the end (state already ENDED)
    """

    def __init__(
        self,
        scheduler: FrameScheduler,
        on_scene_change: Optional[SceneChangeHandler] = None,
        on_tick: Optional[TickHandler] = None,
        on_end: Optional[EndHandler] = None,
    ):
        self.scheduler = scheduler
        self.on_scene_change = on_scene_change
        self.on_tick = on_tick
        self.on_end = on_end

        self.state = ClockState.IDLE
        self.timeline: Optional[SceneTimeline] = None
        self.position = TimelineState()
        self.lock = threading.RLock()
        self._handle: Optional[int] = None

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------
    @property
    def loaded(self) -> bool:
        return self.timeline is not None and len(self.timeline) > 0

    @property
    def is_playing(self) -> bool:
        return self.state is ClockState.PLAYING

    @property
    def current_time_ms(self) -> float:
        return self.position.current_time_ms

    @property
    def current_scene_index(self) -> int:
        return self.position.current_scene_index

    @property
    def total_duration_ms(self) -> float:
        return self.timeline.total_duration_ms if self.timeline else 0.0

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------
    def load(self, timeline: SceneTimeline) -> None:
        with self.lock:
            self._cancel_tick()
            self.timeline = timeline
            self.state = ClockState.IDLE
            self.position = TimelineState(current_scene_index=0 if len(timeline) else -1)

    def play(self) -> bool:
        """IDLE/PAUSED/ENDED -> PLAYING. No-op without a timeline or when playing."""
        with self.lock:
            if not self.loaded or self.state is ClockState.PLAYING:
                return False
            self.state = ClockState.PLAYING
            self.position.is_playing = True
            self.position.last_tick_timestamp = self.scheduler.now()
            self._handle = self.scheduler.request_frame(self._tick)
            return True

    def pause(self) -> bool:
        """PLAYING -> PAUSED. Returns False if not playing."""
        with self.lock:
            if self.state is not ClockState.PLAYING:
                return False
            self.state = ClockState.PAUSED
            self.position.is_playing = False
            self._cancel_tick()
            return True

    def seek(self, time_ms: float) -> int:
        """
        Clamp and move the playhead without touching play/pause state.

        Returns the new scene index (-1 when nothing is loaded).
        """
        with self.lock:
            if not self.loaded:
                self.position.current_time_ms = 0.0
                return -1
            total = self.timeline.total_duration_ms
            clamped = max(0.0, min(float(time_ms), total))
            self.position.current_time_ms = clamped
            self.position.current_scene_index = self.timeline.locate(clamped)
            if self.state is ClockState.ENDED and clamped < total:
                self.state = ClockState.PAUSED
            if self.state is ClockState.PLAYING:
                # Deltas restart from the seek, not the last frame
                self.position.last_tick_timestamp = self.scheduler.now()
            return self.position.current_scene_index

    # -------------------------------------------------------------------------
    # Tick
    # -------------------------------------------------------------------------
    def _cancel_tick(self) -> None:
        if self._handle is not None:
            self.scheduler.cancel(self._handle)
            self._handle = None

    def _tick(self, timestamp: float) -> None:
        with self.lock:
            self._handle = None
            if self.state is not ClockState.PLAYING:
                return

            delta = max(0.0, timestamp - self.position.last_tick_timestamp)
            self.position.last_tick_timestamp = timestamp
            self.position.current_time_ms += delta

            if self.position.current_time_ms >= self.timeline.total_duration_ms:
                self._finish()
                return

            previous = self.position.current_scene_index
            new_index = self.timeline.advance(previous, self.position.current_time_ms)
            if new_index != previous:
                self.position.current_scene_index = new_index
                self._notify_scene_change(previous, new_index)

            if self.on_tick:
                try:
                    self.on_tick(self.position.current_time_ms)
                except Exception as e:
                    logger.error(f"Tick handler failed at {self.position.current_time_ms:.0f}ms: {e}")

            if self.state is ClockState.PLAYING:
                self._handle = self.scheduler.request_frame(self._tick)

    def _notify_scene_change(self, previous: int, new_index: int) -> None:
        if not self.on_scene_change:
            return
        try:
            self.on_scene_change(previous, new_index)
        except Exception as e:
            logger.error(f"Scene transition {previous} -> {new_index} failed: {e}")

    def _finish(self) -> None:
        self.state = ClockState.ENDED
        self.position.is_playing = False
        self.position.current_time_ms = self.timeline.total_duration_ms
        self.position.current_scene_index = self.timeline.last_index
        self._cancel_tick()
        logger.debug(f"Timeline ended at {self.timeline.total_duration_ms:.0f}ms")
        if self.on_end:
            self.on_end()

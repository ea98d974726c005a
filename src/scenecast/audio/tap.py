"""
Live Audio Tap

Mixes the player's audio channels into a recordable stream. A recording
runs its own thread that, every chunk interval, pulls as many frames from
each channel as wall-clock time has elapsed and publishes the summed block
to chunk listeners.

Usage:
    tap = MixdownTap()
    recording = tap.open(player.audio_channels)
    recording.on_chunk(chunks.append)
    recording.start()
    ...
    recording.stop()
"""

import threading
import time
from typing import Callable, List, Optional, Sequence

import numpy as np

from ..config import get_settings
from ..logger import logger

ChunkListener = Callable[[np.ndarray], None]


class MixRecording:
    """Handle for one live recording of a channel mix."""

    def __init__(
        self,
        channels: Sequence,
        sample_rate: int,
        n_channels: int,
        chunk_ms: int,
        clock: Callable[[], float] = time.perf_counter,
    ):
        self.channels = list(channels)
        self.sample_rate = sample_rate
        self.n_channels = n_channels
        self.chunk_ms = chunk_ms
        self._clock = clock
        self._listeners: List[ChunkListener] = []
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._last = 0.0
        self._carry = 0.0

    @property
    def recording(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def on_chunk(self, listener: ChunkListener) -> None:
        self._listeners.append(listener)

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError("Recording already started")
        self._last = self._clock()
        self._thread = threading.Thread(target=self._run, name="audio-tap", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Stop recording; the final partial chunk is published before returning."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join()

    def _run(self) -> None:
        interval = self.chunk_ms / 1000.0
        while not self._stop.wait(interval):
            self._capture_elapsed()
        self._capture_elapsed()

    def _capture_elapsed(self) -> None:
        now = self._clock()
        exact = (now - self._last) * self.sample_rate + self._carry
        frames = int(exact)
        self._carry = exact - frames
        self._last = now
        if frames <= 0:
            return
        chunk = self.mix(frames)
        for listener in self._listeners:
            try:
                listener(chunk)
            except Exception as e:
                logger.error(f"Audio chunk listener failed: {e}")

    def mix(self, frames: int) -> np.ndarray:
        """Sum one block from every channel, clipped to [-1, 1]."""
        mix = np.zeros((frames, self.n_channels), dtype=np.float32)
        for channel in self.channels:
            block = channel.pull(frames)
            if block.shape == mix.shape:
                mix += block
            else:
                logger.debug(f"Skipping audio block with shape {block.shape}, expected {mix.shape}")
        return np.clip(mix, -1.0, 1.0)


class MixdownTap:
    """Factory for MixRecording handles over pull()-capable channels."""

    def __init__(
        self,
        sample_rate: Optional[int] = None,
        channels: Optional[int] = None,
        chunk_ms: Optional[int] = None,
        clock: Callable[[], float] = time.perf_counter,
    ):
        capture = get_settings().capture
        self.sample_rate = sample_rate or capture.audio_sample_rate
        self.channels = channels or capture.audio_channels
        self.chunk_ms = chunk_ms or capture.audio_chunk_ms
        self._clock = clock

    def open(self, channels: Sequence) -> MixRecording:
        tappable = [c for c in channels if callable(getattr(c, "pull", None))]
        if len(tappable) < len(channels):
            logger.debug(f"{len(channels) - len(tappable)} audio channel(s) cannot be tapped and stay silent")
        return MixRecording(tappable, self.sample_rate, self.channels, self.chunk_ms, clock=self._clock)

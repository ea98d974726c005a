"""
Audio Recorder

Collects live-mix chunks between capture start and capture finish and
finalizes them into one 16-bit PCM WAV blob. Timing is independent of the
frame pipeline: the encoder aligns audio and video by duration.
"""

import io
import threading
import wave
from typing import List, Optional, Sequence

import numpy as np

from ..exceptions import CaptureError
from ..logger import logger
from .tap import MixdownTap, MixRecording


class AudioRecorder:
    def __init__(self, tap: MixdownTap):
        self.tap = tap
        self._recording: Optional[MixRecording] = None
        self._chunks: List[np.ndarray] = []
        self._lock = threading.Lock()

    @property
    def recording(self) -> bool:
        return self._recording is not None and self._recording.recording

    @property
    def chunk_count(self) -> int:
        with self._lock:
            return len(self._chunks)

    @property
    def duration_seconds(self) -> float:
        with self._lock:
            frames = sum(len(c) for c in self._chunks)
        return frames / self.tap.sample_rate

    def start(self, channels: Sequence) -> None:
        if self._recording is not None:
            raise CaptureError("Audio recorder already started")
        self._recording = self.tap.open(channels)
        self._recording.on_chunk(self._collect)
        self._recording.start()
        logger.debug("Audio recording started")

    def stop(self) -> None:
        if self._recording is None:
            return
        self._recording.stop()
        logger.debug(f"Audio recording stopped ({self.duration_seconds:.2f}s)")

    def _collect(self, chunk: np.ndarray) -> None:
        with self._lock:
            self._chunks.append(np.asarray(chunk, dtype=np.float32))

    def finalize(self) -> bytes:
        """Concatenate chunks into a WAV file. Empty bytes if nothing was recorded."""
        with self._lock:
            chunks = list(self._chunks)
        if not chunks:
            return b""

        samples = np.concatenate(chunks, axis=0)
        pcm = (np.clip(samples, -1.0, 1.0) * 32767.0).astype("<i2")

        buffer = io.BytesIO()
        with wave.open(buffer, "wb") as wf:
            wf.setnchannels(pcm.shape[1] if pcm.ndim > 1 else 1)
            wf.setsampwidth(2)
            wf.setframerate(self.tap.sample_rate)
            wf.writeframes(pcm.tobytes())
        return buffer.getvalue()

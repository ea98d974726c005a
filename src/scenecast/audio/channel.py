"""
Audio Channels

AudioChannel is the control surface the player needs: load / play / pause,
position and volume. ClockedAudioChannel is the headless implementation:
its position follows the wall clock while playing and, for recording, it
decodes its source with librosa and hands out sample blocks via pull().

Usage:
    channel = ClockedAudioChannel()
    channel.load("music.mp3")
    channel.play()
    block = channel.pull(4410)   # (frames, channels) float32
"""

import base64
import os
import tempfile
import threading
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Optional, Tuple
from urllib.parse import unquote, urlparse

import numpy as np
import requests

from ..config import get_settings
from ..exceptions import AudioFailure
from ..logger import logger

# Seconds of drift between the wall-clock position and the sample cursor
# tolerated before the cursor jumps
CURSOR_RESYNC_SECONDS = 0.2


class AudioChannel(ABC):
    """Control surface of one audio output."""

    @property
    @abstractmethod
    def src(self) -> Optional[str]:
        """URI currently loaded, or None."""

    @abstractmethod
    def load(self, uri: Optional[str]) -> None:
        """Load a new source (None unloads). Resets position to 0 and pauses."""

    @abstractmethod
    def play(self) -> None:
        """Start or continue playback. May raise AudioFailure."""

    @abstractmethod
    def pause(self) -> None:
        """Stop playback, keeping the position."""

    @property
    @abstractmethod
    def paused(self) -> bool:
        """True unless playing."""

    @property
    @abstractmethod
    def position(self) -> float:
        """Playback position in seconds."""

    @position.setter
    @abstractmethod
    def position(self, seconds: float) -> None:
        ...

    @property
    @abstractmethod
    def volume(self) -> float:
        """Linear gain 0.0 - 1.0."""

    @volume.setter
    @abstractmethod
    def volume(self, value: float) -> None:
        ...

    @property
    def has_source(self) -> bool:
        return bool(self.src)


# =============================================================================
# Decoding
# =============================================================================

def _materialize(uri: str, timeout: float) -> Tuple[Path, bool]:
    """Local path for a URI, and whether it is a temporary download."""
    parsed = urlparse(uri)
    if parsed.scheme in ("http", "https"):
        response = requests.get(uri, timeout=timeout)
        response.raise_for_status()
        payload = response.content
        suffix = Path(parsed.path).suffix
    elif parsed.scheme == "data":
        header, _, data = uri.partition(",")
        payload = base64.b64decode(data) if header.endswith(";base64") else unquote(data).encode("latin-1")
        suffix = ""
    elif parsed.scheme == "file":
        return Path(unquote(parsed.path)), False
    else:
        return Path(uri), False

    with tempfile.NamedTemporaryFile(suffix=suffix, delete=False) as tmp:
        tmp.write(payload)
        return Path(tmp.name), True


def decode_audio(uri: str, sample_rate: int, channels: int, timeout: float = 30.0) -> np.ndarray:
    """
    Decode an audio URI to a (frames, channels) float32 array.

    Raises:
        AudioFailure: source unreachable or undecodable
    """
    local: Optional[Path] = None
    is_temp = False
    try:
        import librosa

        local, is_temp = _materialize(uri, timeout)
        y, _ = librosa.load(str(local), sr=sample_rate, mono=(channels == 1))
    except Exception as e:
        raise AudioFailure(f"Cannot decode audio {uri[:80]}: {e}") from e
    finally:
        if local is not None and is_temp:
            try:
                os.unlink(local)
            except OSError:
                pass

    y = np.asarray(y, dtype=np.float32)
    if y.ndim == 1:
        y = y[:, np.newaxis]
    else:
        y = y.T
    if y.shape[1] == channels:
        return y
    if y.shape[1] == 1:
        return np.repeat(y, channels, axis=1)
    # Downmix to mono, then spread
    mono = y.mean(axis=1, keepdims=True)
    return np.repeat(mono, channels, axis=1)


# =============================================================================
# Headless channel
# =============================================================================

class ClockedAudioChannel(AudioChannel):
    """
    Audio channel without an output device.

    Position advances with the wall clock while playing (capped at the
    decoded duration once known). Samples are decoded lazily on the first
    pull(), so a channel that is never recorded never decodes.
    """

    def __init__(
        self,
        sample_rate: Optional[int] = None,
        channels: Optional[int] = None,
        clock: Callable[[], float] = time.perf_counter,
        decoder: Callable[..., np.ndarray] = decode_audio,
    ):
        capture = get_settings().capture
        self.sample_rate = sample_rate or capture.audio_sample_rate
        self.channels = channels or capture.audio_channels
        self._clock = clock
        self._decoder = decoder
        self._lock = threading.RLock()

        self._src: Optional[str] = None
        self._samples: Optional[np.ndarray] = None
        self._decode_failed = False
        self._playing = False
        self._anchor_position = 0.0
        self._anchor_time = 0.0
        self._volume = 1.0
        self._cursor: Optional[int] = None

    @property
    def src(self) -> Optional[str]:
        return self._src

    def load(self, uri: Optional[str]) -> None:
        with self._lock:
            self._src = uri or None
            self._samples = None
            self._decode_failed = False
            self._playing = False
            self._anchor_position = 0.0
            self._cursor = None

    def play(self) -> None:
        with self._lock:
            if not self._src:
                raise AudioFailure("No audio source loaded")
            if self._playing:
                return
            self._anchor_time = self._clock()
            self._playing = True
            self._cursor = None

    def pause(self) -> None:
        with self._lock:
            if self._playing:
                self._anchor_position = self.position
                self._playing = False

    @property
    def paused(self) -> bool:
        return not self._playing

    @property
    def duration(self) -> Optional[float]:
        """Seconds, once decoded."""
        if self._samples is None:
            return None
        return len(self._samples) / self.sample_rate

    @property
    def position(self) -> float:
        with self._lock:
            if not self._playing:
                return self._anchor_position
            pos = self._anchor_position + (self._clock() - self._anchor_time)
            duration = self.duration
            return min(pos, duration) if duration is not None else pos

    @position.setter
    def position(self, seconds: float) -> None:
        with self._lock:
            self._anchor_position = max(0.0, float(seconds))
            self._anchor_time = self._clock()
            self._cursor = None

    @property
    def volume(self) -> float:
        return self._volume

    @volume.setter
    def volume(self, value: float) -> None:
        self._volume = max(0.0, min(1.0, float(value)))

    def _ensure_decoded(self) -> Optional[np.ndarray]:
        if self._samples is None and not self._decode_failed and self._src:
            try:
                self._samples = self._decoder(
                    self._src, self.sample_rate, self.channels, get_settings().loader.request_timeout
                )
            except AudioFailure as e:
                logger.debug(f"Audio channel silent: {e}")
                self._decode_failed = True
        return self._samples

    def pull(self, frames: int) -> np.ndarray:
        """
        Next block of `frames` samples as heard at the current position,
        scaled by volume. Silence when paused or undecodable.
        """
        silence = np.zeros((max(0, frames), self.channels), dtype=np.float32)
        with self._lock:
            if frames <= 0 or not self._playing:
                return silence
            samples = self._ensure_decoded()
            if samples is None:
                return silence

            target = int(self.position * self.sample_rate) - frames
            if self._cursor is None or abs(self._cursor - target) > CURSOR_RESYNC_SECONDS * self.sample_rate:
                self._cursor = max(0, target)

            block = samples[self._cursor:self._cursor + frames]
            self._cursor += frames
            if len(block):
                silence[:len(block)] = block
            return silence * self._volume

import itertools
import threading
from typing import Dict, List, Optional

import numpy as np
import pytest

from scenecast.audio.channel import AudioChannel
from scenecast.config import Settings
from scenecast.core.player import ScenePlayer
from scenecast.core.scheduler import FrameScheduler
from scenecast.exceptions import AudioFailure, RenderFailure
from scenecast.render.renderer import Renderer, VisualState


class ManualScheduler(FrameScheduler):
    """Frames fire only when the test calls advance()."""

    def __init__(self, start_ms: float = 1000.0):
        self.now_ms = start_ms
        self.pending: Dict[int, object] = {}
        self._handles = itertools.count(1)

    def now(self) -> float:
        return self.now_ms

    def request_frame(self, callback) -> int:
        handle = next(self._handles)
        self.pending[handle] = callback
        return handle

    def cancel(self, handle: int) -> None:
        self.pending.pop(handle, None)

    def advance(self, ms: float) -> int:
        """Move the clock and fire the frames pending before the move."""
        self.now_ms += ms
        batch = self.pending
        self.pending = {}
        for callback in batch.values():
            callback(self.now_ms)
        return len(batch)

    def run(self, step_ms: float, max_frames: int = 10000) -> int:
        """Advance by `step_ms` until nothing is pending."""
        frames = 0
        while self.pending and frames < max_frames:
            self.advance(step_ms)
            frames += 1
        return frames


class SteppingScheduler(FrameScheduler):
    """Background thread firing frames back to back on a virtual clock."""

    def __init__(self, step_ms: float = 20.0):
        self.step_ms = step_ms
        self.now_ms = 0.0
        self._pending: Dict[int, object] = {}
        self._handles = itertools.count(1)
        self._cond = threading.Condition()
        self._closed = False
        self._thread = threading.Thread(target=self._loop, daemon=True)
        self._thread.start()

    def now(self) -> float:
        return self.now_ms

    def request_frame(self, callback) -> int:
        with self._cond:
            handle = next(self._handles)
            self._pending[handle] = callback
            self._cond.notify()
            return handle

    def cancel(self, handle: int) -> None:
        with self._cond:
            self._pending.pop(handle, None)

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._cond.notify_all()
        self._thread.join(timeout=2)

    def _loop(self) -> None:
        while True:
            with self._cond:
                self._cond.wait_for(lambda: self._pending or self._closed)
                if self._closed:
                    return
                batch = self._pending
                self._pending = {}
                self.now_ms += self.step_ms
            for callback in batch.values():
                callback(self.now_ms)


class FakeAudioChannel(AudioChannel):
    """Channel whose position only moves when a test sets it."""

    def __init__(self, fail_play: bool = False):
        self._src: Optional[str] = None
        self._position = 0.0
        self._volume = 1.0
        self.playing = False
        self.fail_play = fail_play
        self.calls: List[str] = []
        self.position_writes = 0

    @property
    def src(self):
        return self._src

    def load(self, uri):
        self.calls.append(f"load:{uri}")
        self._src = uri
        self._position = 0.0
        self.playing = False

    def play(self):
        self.calls.append("play")
        if self.fail_play:
            raise AudioFailure("autoplay blocked")
        self.playing = True

    def pause(self):
        self.calls.append("pause")
        self.playing = False

    @property
    def paused(self):
        return not self.playing

    @property
    def position(self):
        return self._position

    @position.setter
    def position(self, seconds):
        self.position_writes += 1
        self._position = seconds

    @property
    def volume(self):
        return self._volume

    @volume.setter
    def volume(self, value):
        self._volume = value

    def pull(self, frames: int) -> np.ndarray:
        value = 0.25 if self.playing else 0.0
        return np.full((frames, 2), value, dtype=np.float32)


class FakeRenderer(Renderer):
    """Records renders; rasterize returns a deterministic fake image."""

    def __init__(self, fail_markup: Optional[set] = None):
        self.rendered: List[int] = []
        self.rasterized: List[VisualState] = []
        self.fail_markup = fail_markup or set()
        self._state = VisualState(markup="", caption=None, width=64, height=36)

    def render(self, scene, show_captions):
        self.rendered.append(scene.start_time_ms)
        caption = scene.speech if show_captions and scene.speech else None
        self._state = VisualState(markup=scene.html, caption=caption, width=64, height=36)

    def snapshot(self):
        return self._state

    def rasterize(self, state):
        if state.markup in self.fail_markup:
            raise RenderFailure(f"cannot draw {state.markup}")
        self.rasterized.append(state)
        return f"IMG[{state.markup}|{state.caption}]".encode()


class FakeRecording:
    def __init__(self, sample_rate: int):
        self.sample_rate = sample_rate
        self.listeners = []
        self.started = False
        self.stopped = False

    @property
    def recording(self):
        return self.started and not self.stopped

    def on_chunk(self, listener):
        self.listeners.append(listener)

    def start(self):
        self.started = True

    def stop(self):
        if self.stopped:
            return
        self.stopped = True
        chunk = np.full((self.sample_rate // 10, 2), 0.1, dtype=np.float32)
        for listener in self.listeners:
            listener(chunk)


class FakeTap:
    """Emits one 100ms chunk when the recording stops."""

    def __init__(self, sample_rate: int = 8000):
        self.sample_rate = sample_rate
        self.channels = 2
        self.recordings: List[FakeRecording] = []

    def open(self, channels):
        recording = FakeRecording(self.sample_rate)
        self.recordings.append(recording)
        return recording


@pytest.fixture
def settings(tmp_path, monkeypatch):
    monkeypatch.setenv("OUTPUT_DIR", str(tmp_path / "out"))
    monkeypatch.setenv("TEMP_DIR", str(tmp_path / "tmp"))
    monkeypatch.setenv("CAPTURE_FPS", "10")
    return Settings()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def renderer():
    return FakeRenderer()


@pytest.fixture
def channels():
    return FakeAudioChannel(), FakeAudioChannel()


@pytest.fixture
def make_player(settings, scheduler, renderer, channels):
    def _make(document=None, **kwargs):
        player = ScenePlayer(
            kwargs.pop("renderer", renderer),
            background_channel=channels[0],
            scene_channel=channels[1],
            scheduler=kwargs.pop("scheduler", scheduler),
            settings=settings,
            **kwargs,
        )
        if document is not None:
            player.load(document)
        return player
    return _make

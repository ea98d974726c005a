"""
Scene Player

Plays a scenes document as a timed presentation and exposes the same
surface as a media element:

    load(), play(), pause(), seek_to(ms)
    current_time (get/set), duration, paused, ended
    set_captions(visible), volume, muted
    events: loadedmetadata, play, pause, timeupdate, ended, error

Usage:
    player = ScenePlayer(CardRenderer(), src="scenes.json")
    player.on("ended", lambda total_ms: print("done"))
    player.load()
    player.play()
"""

from typing import Any, Callable, Optional, Tuple

from ..audio.channel import AudioChannel, ClockedAudioChannel
from ..audio.sync import AudioSyncController
from ..config import Settings, get_settings
from ..exceptions import LoadError
from ..logger import logger
from ..render.renderer import Renderer
from ..sources import Source, SourceLoader
from .clock import ClockState, PlaybackClock
from .events import EventEmitter
from .models import ProcessedScene, VideoDocument
from .scheduler import FrameScheduler, ThreadedFrameScheduler
from .timeline import SceneTimeline


class ScenePlayer:
    EVENTS = ("loadedmetadata", "play", "pause", "timeupdate", "ended", "error")

    def __init__(
        self,
        renderer: Renderer,
        background_channel: Optional[AudioChannel] = None,
        scene_channel: Optional[AudioChannel] = None,
        scheduler: Optional[FrameScheduler] = None,
        loader: Optional[SourceLoader] = None,
        settings: Optional[Settings] = None,
        src: Optional[Source] = None,
    ):
        self.settings = settings or get_settings()
        playback = self.settings.playback

        self.renderer = renderer
        self.loader = loader or SourceLoader(timeout=self.settings.loader.request_timeout)
        self._owns_scheduler = scheduler is None
        self.scheduler = scheduler or ThreadedFrameScheduler(playback.tick_interval_ms)
        self.audio = AudioSyncController(
            background_channel or ClockedAudioChannel(),
            scene_channel or ClockedAudioChannel(),
            tolerance=playback.audio_resync_tolerance,
        )
        self.events = EventEmitter()
        self.clock = PlaybackClock(
            self.scheduler,
            on_scene_change=self._handle_scene_transition,
            on_tick=self._handle_tick,
            on_end=self._handle_end,
        )

        self.src = src
        self.document: Optional[VideoDocument] = None
        self.timeline: Optional[SceneTimeline] = None
        self._show_captions = playback.show_captions

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------
    def on(self, event: str, listener: Callable[..., None]) -> Callable[..., None]:
        return self.events.on(event, listener)

    def off(self, event: str, listener: Callable[..., None]) -> None:
        self.events.off(event, listener)

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------
    @property
    def is_loaded(self) -> bool:
        return self.clock.loaded

    @property
    def current_time(self) -> float:
        """Playhead in milliseconds."""
        return self.clock.current_time_ms

    @current_time.setter
    def current_time(self, ms: float) -> None:
        self.seek_to(ms)

    @property
    def duration(self) -> float:
        """Total duration in milliseconds (0 before load)."""
        return self.clock.total_duration_ms

    @property
    def paused(self) -> bool:
        return not self.clock.is_playing

    @property
    def ended(self) -> bool:
        return self.clock.state is ClockState.ENDED

    @property
    def state(self) -> ClockState:
        return self.clock.state

    @property
    def current_scene_index(self) -> int:
        return self.clock.current_scene_index

    @property
    def current_scene(self) -> Optional[ProcessedScene]:
        idx = self.clock.current_scene_index
        if self.timeline is None or idx < 0:
            return None
        return self.timeline[idx]

    @property
    def show_captions(self) -> bool:
        return self._show_captions

    @property
    def audio_channels(self) -> Tuple[AudioChannel, AudioChannel]:
        return self.audio.channels

    @property
    def volume(self) -> float:
        return self.audio.volume

    @volume.setter
    def volume(self, value: float) -> None:
        self.audio.volume = value

    @property
    def muted(self) -> bool:
        return self.audio.muted

    @muted.setter
    def muted(self, value: bool) -> None:
        self.audio.muted = value

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------
    def load(self, source: Optional[Source] = None) -> Optional[VideoDocument]:
        """
        Load `source` (or `src`), build the timeline and seek to 0.

        Returns None when there is no source at all.

        Raises:
            LoadError: after firing an 'error' event; the player is left as it was
        """
        if source is not None:
            self.src = source
        if self.src is None or self.src == "":
            return None

        self.pause()
        try:
            document = self.loader.load(self.src)
        except LoadError as e:
            logger.error(f"Load failed: {e}")
            self.events.emit("error", e)
            raise
        self._apply_document(document)
        return document

    def _apply_document(self, document: VideoDocument) -> None:
        playback = self.settings.playback
        timeline = SceneTimeline.build(
            document.scenes,
            ms_per_word=playback.ms_per_word,
            min_auto_ms=playback.min_auto_duration_ms,
            default_ms=playback.default_duration_ms,
        )
        with self.clock.lock:
            self.document = document
            self.timeline = timeline
            self.clock.load(timeline)
            self.audio.reset(document.audio)
            self.seek_to(0)
        logger.info(f"   ✅ Loaded {len(timeline)} scenes ({timeline.total_duration_ms / 1000:.1f}s)")
        self.events.emit("loadedmetadata", timeline.total_duration_ms)

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------
    def play(self) -> bool:
        """
        Start playback. No-op (False) without a document or when already playing.

        Playing after the end restarts from 0.
        """
        with self.clock.lock:
            if self.ended:
                self.seek_to(0)
            if not self.clock.play():
                return False
            self.audio.sync_to_position(self.current_scene, self.current_time, playing=True)
        self.events.emit("play")
        return True

    def pause(self) -> bool:
        """Stop ticking and both audio channels. Returns False if not playing."""
        with self.clock.lock:
            was_playing = self.clock.pause()
            self.audio.stop()
        if was_playing:
            self.events.emit("pause")
        return was_playing

    def seek_to(self, ms: float) -> float:
        """Clamp, relocate the scene, resync audio, re-render. Keeps play state."""
        with self.clock.lock:
            if not self.clock.loaded:
                return 0.0
            self.clock.seek(ms)
            self.audio.sync_to_position(self.current_scene, self.current_time, self.clock.is_playing)
            self._render_current_scene()
            current = self.current_time
        self.events.emit("timeupdate", current)
        return current

    def set_captions(self, visible: bool) -> None:
        self._show_captions = bool(visible)
        with self.clock.lock:
            self._render_current_scene()

    def close(self) -> None:
        self.pause()
        if self._owns_scheduler:
            self.scheduler.close()

    # -------------------------------------------------------------------------
    # Clock callbacks (run with the clock lock held)
    # -------------------------------------------------------------------------
    def _handle_scene_transition(self, previous_index: int, new_index: int) -> None:
        previous = self.timeline[previous_index] if previous_index >= 0 else None
        scene = self.timeline[new_index]
        logger.debug(f"Scene {previous_index} -> {new_index} at {self.current_time:.0f}ms")
        self.audio.on_scene_change(previous, scene, self.current_time, playing=True)
        self._render_current_scene()

    def _handle_tick(self, current_ms: float) -> None:
        self.events.emit("timeupdate", current_ms)

    def _handle_end(self) -> None:
        self.audio.stop()
        self.events.emit("pause")
        self.seek_to(self.duration)
        self.events.emit("ended", self.duration)

    def _render_current_scene(self) -> None:
        scene = self.current_scene
        if scene is None:
            return
        try:
            self.renderer.render(scene, self._show_captions)
        except Exception as e:
            logger.warning(f"   ⚠️  Scene {self.current_scene_index} failed to render: {e}")
            self.events.emit("error", e)

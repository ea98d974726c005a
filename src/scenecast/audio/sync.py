"""
Audio Sync Controller

Keeps the background track and the per-scene track aligned with the
visible scene.

Background channel:
    - a pauseBackground scene suspends it and remembers where it stopped
      ("paused-by-scene")
    - the next scene without the flag resumes from that exact point
    - a seek repositions it to the absolute timeline offset

Scene channel:
    - always carries the active scene's own audio, swapped when the URI
      changes, offset by (time - scene start)
    - only repositioned when drift exceeds the tolerance, to avoid stutter

Channel failures (autoplay refusal, undecodable media) are logged at
debug level and never interrupt playback; the sync state is updated
regardless so later transitions still behave.
"""

from typing import Optional, Tuple

from ..config import get_settings
from ..core.models import AudioSyncState, ProcessedScene
from ..exceptions import AudioFailure
from ..logger import logger
from .channel import AudioChannel


class AudioSyncController:
    def __init__(
        self,
        background: AudioChannel,
        scene_channel: AudioChannel,
        tolerance: Optional[float] = None,
    ):
        self.background = background
        self.scene_channel = scene_channel
        self.tolerance = tolerance if tolerance is not None else get_settings().playback.audio_resync_tolerance
        self.state = AudioSyncState()
        self._volume = 1.0
        self._muted = False

    @property
    def channels(self) -> Tuple[AudioChannel, AudioChannel]:
        return (self.background, self.scene_channel)

    # -------------------------------------------------------------------------
    # Document lifecycle
    # -------------------------------------------------------------------------
    def reset(self, background_uri: Optional[str]) -> None:
        """New document: load (or unload) the background track, clear the scene track."""
        self.stop()
        self.state = AudioSyncState()
        self._safe(self.background.load, background_uri)
        self._safe(self.scene_channel.load, None)
        self._apply_volume()

    def stop(self) -> None:
        """Pause both channels and forget any scene suspension."""
        self._safe(self.background.pause)
        self._safe(self.scene_channel.pause)
        self.state.paused_by_scene = False

    # -------------------------------------------------------------------------
    # Synchronization
    # -------------------------------------------------------------------------
    def sync_to_position(self, scene: Optional[ProcessedScene], time_ms: float, playing: bool) -> None:
        """Align both channels after a seek or on playback start."""
        if scene is None:
            return
        if self.background.has_source:
            seconds = time_ms / 1000.0
            if scene.pause_background:
                self._safe(self.background.pause)
                self.state.resume_position = seconds
                self.state.paused_by_scene = True
            else:
                self._safe(self._set_position, self.background, seconds)
                if playing:
                    self._safe(self.background.play)
                else:
                    self._safe(self.background.pause)
                self.state.paused_by_scene = False
        self._sync_scene_channel(scene, time_ms, playing)

    def on_scene_change(
        self,
        previous: Optional[ProcessedScene],
        scene: ProcessedScene,
        time_ms: float,
        playing: bool,
    ) -> None:
        """Apply suspension/resume rules when playback crosses into `scene`."""
        if self.background.has_source:
            if scene.pause_background:
                if not self.state.paused_by_scene:
                    self.state.resume_position = self.background.position
                    self._safe(self.background.pause)
                    self.state.paused_by_scene = True
            elif self.state.paused_by_scene:
                self._safe(self._set_position, self.background, self.state.resume_position)
                if playing:
                    self._safe(self.background.play)
                self.state.paused_by_scene = False
            elif playing and self.background.paused:
                self._safe(self.background.play)
        self._sync_scene_channel(scene, time_ms, playing)

    def _sync_scene_channel(self, scene: ProcessedScene, time_ms: float, playing: bool) -> None:
        channel = self.scene_channel
        if not scene.audio:
            self._safe(channel.pause)
            return
        if channel.src != scene.audio:
            self._safe(channel.load, scene.audio)
        target = max(0.0, (time_ms - scene.start_time_ms) / 1000.0)
        if abs(channel.position - target) > self.tolerance:
            self._safe(self._set_position, channel, target)
        if playing:
            self._safe(channel.play)
        else:
            self._safe(channel.pause)

    # -------------------------------------------------------------------------
    # Volume
    # -------------------------------------------------------------------------
    @property
    def volume(self) -> float:
        return self._volume

    @volume.setter
    def volume(self, value: float) -> None:
        self._volume = max(0.0, min(1.0, float(value)))
        self._apply_volume()

    @property
    def muted(self) -> bool:
        return self._muted

    @muted.setter
    def muted(self, value: bool) -> None:
        # The stored volume survives muting and is restored on unmute
        self._muted = bool(value)
        self._apply_volume()

    def _apply_volume(self) -> None:
        effective = 0.0 if self._muted else self._volume
        for channel in self.channels:
            self._safe(setattr, channel, "volume", effective)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------
    @staticmethod
    def _set_position(channel: AudioChannel, seconds: float) -> None:
        channel.position = seconds

    @staticmethod
    def _safe(fn, *args) -> None:
        try:
            fn(*args)
        except AudioFailure as e:
            logger.debug(f"Audio channel call ignored: {e}")

"""
Video Exporter

Captures a ScenePlayer's presentation in real time and encodes it to a
standalone video file.

Flow:
    seek to 0 -> start encoder thread + audio recording -> play
    every timeupdate: sampler fills elapsed grid slots -> queue -> encoder
    ended (or explicit pause/cancel): close queue, stop recording
    drain encoder -> two-phase mux -> write output

Usage:
    exporter = VideoExporter(player)
    path = exporter.capture_and_encode("out.mp4", progress=CLIProgress())
"""

import threading
import uuid
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, Union

from ..audio.recorder import AudioRecorder
from ..audio.tap import MixdownTap
from ..config import Settings, get_settings
from ..core.player import ScenePlayer
from ..exceptions import CaptureError, ExportCancelled
from ..logger import log_phase, log_step, log_success, logger
from ..progress import (
    PHASE_CAPTURE,
    PHASE_DONE,
    PHASE_ENCODE,
    ProgressCallback,
    ProgressUpdate,
    normalize_callback,
)
from .encoder import FrameEncoder
from .frame_queue import FrameQueue
from .muxer import Muxer
from .sampler import FrameSampler
from .workspace import EncoderWorkspace


class VideoExporter:
    def __init__(
        self,
        player: ScenePlayer,
        tap: Optional[MixdownTap] = None,
        settings: Optional[Settings] = None,
        fps: Optional[int] = None,
        workspace_factory: Callable[[], EncoderWorkspace] = EncoderWorkspace,
    ):
        self.player = player
        self.settings = settings or get_settings()
        self.fps = fps or self.settings.capture.fps
        self.tap = tap or MixdownTap()
        self.workspace_factory = workspace_factory

        self.sampler: Optional[FrameSampler] = None
        self.encoder: Optional[FrameEncoder] = None
        self.recorder: Optional[AudioRecorder] = None
        self._queue: Optional[FrameQueue] = None
        self._capture_done = threading.Event()
        self._capturing = False
        self._cancelled = False
        self._progress: ProgressCallback = normalize_callback(None)
        self._last_percent = -1

    @property
    def capturing(self) -> bool:
        return self._capturing

    def cancel(self) -> None:
        """Abort a running export: stop playback and let the encoder drain."""
        self._cancelled = True
        self.player.pause()
        self._finish_capture("cancelled")

    # -------------------------------------------------------------------------
    # Entry point
    # -------------------------------------------------------------------------
    def capture_and_encode(
        self,
        output_path: Optional[Union[str, Path]] = None,
        progress: Optional[Callable] = None,
    ) -> Path:
        """
        Play the loaded document once, capture it and write an MP4.

        Returns:
            Path of the written file

        Raises:
            CaptureError: nothing loaded, or an export already running
            ExportCancelled: cancel() was called
            EncoderFailure: frame writing or either encode phase failed
        """
        if not self.player.is_loaded:
            raise CaptureError("Nothing to export: no document loaded")
        if self._capturing:
            raise CaptureError("An export is already running")

        output = Path(output_path) if output_path else self._default_output_path()
        self._progress = normalize_callback(progress)
        self._cancelled = False
        self._capture_done.clear()
        self._last_percent = -1

        capture = self.settings.capture
        duration = self.player.duration
        self._queue = FrameQueue()
        self.sampler = FrameSampler(
            self.fps,
            duration,
            self.player.renderer.snapshot,
            self._queue,
            signature=self.player.renderer.signature,
        )
        workspace = self.workspace_factory()
        self.encoder = FrameEncoder(self._queue, self.player.renderer, workspace, capture.frame_name)
        self.recorder = AudioRecorder(self.tap)

        log_phase(f"Capturing {duration / 1000:.1f}s at {self.fps} fps ({self.sampler.total_frames} frames)")
        try:
            self.player.pause()
            self.player.seek_to(0)
            self._subscribe()
            self._capturing = True

            self.encoder.start()
            self.recorder.start(self.player.audio_channels)
            if not self.player.play():
                raise CaptureError("Playback did not start")
            log_step("Recording frames and audio", "⏺")

            self._capture_done.wait()
            self.recorder.stop()
            self._report(100, "Captured", phase=PHASE_CAPTURE)

            stats = self.encoder.join()
            logger.info(
                f"   🖼️  {stats.written} frames written "
                f"({stats.serialized} rendered, {stats.reused} reused, {stats.dropped} dropped)"
            )
            if self._cancelled:
                raise ExportCancelled("Export cancelled")

            audio = self.recorder.finalize()
            self._report(0, "Encoding video", phase=PHASE_ENCODE)
            muxer = Muxer(workspace, self.fps, capture.frame_pattern, self.settings.encoding)
            data = muxer.mux(self.sampler.next_index, audio)

            output.parent.mkdir(parents=True, exist_ok=True)
            output.write_bytes(data)
            self._report(100, "Done", phase=PHASE_DONE)
            log_success(f"Exported {output} ({len(data) / 1024:.0f} KB)")
            return output
        finally:
            self._unsubscribe()
            self._finish_capture("exit")
            if self.recorder is not None:
                self.recorder.stop()
            if self.encoder is not None and self.encoder.running:
                self.encoder.join(raise_errors=False)
            workspace.close()

    # -------------------------------------------------------------------------
    # Player events
    # -------------------------------------------------------------------------
    def _subscribe(self) -> None:
        self.player.on("timeupdate", self._on_timeupdate)
        self.player.on("pause", self._on_pause)
        self.player.on("ended", self._on_ended)

    def _unsubscribe(self) -> None:
        self.player.off("timeupdate", self._on_timeupdate)
        self.player.off("pause", self._on_pause)
        self.player.off("ended", self._on_ended)

    def _on_timeupdate(self, current_ms: float) -> None:
        if not self._capturing:
            return
        try:
            self.sampler.on_tick(current_ms)
        except CaptureError:
            # Queue closed by cancel() from another thread mid-tick
            return
        total = self.sampler.total_frames
        if total:
            percent = int(self.sampler.next_index * 100 / total)
            if percent != self._last_percent:
                self._last_percent = percent
                self._report(
                    percent,
                    "Capturing",
                    current_item=f"frame {self.sampler.next_index}/{total}",
                    phase=PHASE_CAPTURE,
                )

    def _on_pause(self) -> None:
        # The end-of-timeline pause is followed by 'ended'
        if self.player.ended:
            return
        self._finish_capture("paused")

    def _on_ended(self, total_ms: float) -> None:
        self._finish_capture("ended")

    def _finish_capture(self, reason: str) -> None:
        if not self._capturing:
            return
        self._capturing = False
        if self._queue is not None:
            self._queue.close()
        logger.debug(f"Capture finished ({reason})")
        self._capture_done.set()

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------
    def _report(self, percent: int, message: str, **kwargs) -> None:
        try:
            self._progress(ProgressUpdate(percent=percent, message=message, **kwargs))
        except Exception as e:
            logger.debug(f"Progress callback failed: {e}")

    def _default_output_path(self) -> Path:
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return self.settings.paths.output_dir / f"scenecast_{stamp}_{uuid.uuid4().hex[:6]}.mp4"

"""
Frame Encoder

Consumer side of the capture pipeline. Drains the frame queue on its own
thread in strict FIFO order, serializes each distinct visual state once,
and writes every frame to the encoder workspace under its frame index.

Consecutive jobs with the same content signature reuse the previous
image bytes verbatim. A frame that fails to serialize is logged and
skipped; the export continues with a hole the muxer back-fills.
"""

import threading
from dataclasses import dataclass
from typing import Callable, List, Optional

from ..core.models import CaptureJob
from ..exceptions import EncoderFailure, RenderFailure
from ..logger import logger
from ..render.renderer import Renderer
from .frame_queue import FrameQueue
from .workspace import EncoderWorkspace


@dataclass
class EncoderStats:
    written: int = 0
    serialized: int = 0
    reused: int = 0
    dropped: int = 0


class FrameEncoder:
    def __init__(
        self,
        frame_queue: FrameQueue,
        renderer: Renderer,
        workspace: EncoderWorkspace,
        frame_name: Callable[[int], str],
    ):
        self.queue = frame_queue
        self.renderer = renderer
        self.workspace = workspace
        self.frame_name = frame_name
        self.stats = EncoderStats()
        self.written_indices: List[int] = []
        self._previous_signature: Optional[str] = None
        self._previous_bytes: Optional[bytes] = None
        self._thread: Optional[threading.Thread] = None
        self._error: Optional[BaseException] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError("Frame encoder already started")
        self._thread = threading.Thread(target=self.run, name="frame-encoder", daemon=True)
        self._thread.start()

    def run(self) -> None:
        """Consume until the queue is closed and empty."""
        try:
            for job in self.queue:
                self.process(job)
        except Exception as e:
            logger.error(f"Frame encoder stopped: {e}")
            self._error = e

    def join(self, timeout: Optional[float] = None, raise_errors: bool = True) -> EncoderStats:
        """
        Wait for the queue to drain.

        Raises:
            EncoderFailure: if the consumer loop died (e.g. workspace write error)
        """
        if self._thread is not None:
            self._thread.join(timeout)
        if raise_errors and self._error is not None:
            raise EncoderFailure(f"Frame encoding failed: {self._error}") from self._error
        return self.stats

    def process(self, job: CaptureJob) -> bool:
        """Write one job. Returns False if its frame was dropped."""
        if self._previous_bytes is not None and job.content_signature == self._previous_signature:
            data = self._previous_bytes
            self.stats.reused += 1
        else:
            try:
                data = self.renderer.rasterize(job.visual_state)
            except Exception as e:
                failure = e if isinstance(e, RenderFailure) else RenderFailure(str(e), frame_index=job.frame_index)
                logger.warning(f"   ⚠️  Frame {job.frame_index} dropped: {failure}")
                self.stats.dropped += 1
                return False
            self.stats.serialized += 1
            self._previous_signature = job.content_signature
            self._previous_bytes = data

        self.workspace.write_file(self.frame_name(job.frame_index), data)
        self.written_indices.append(job.frame_index)
        self.stats.written += 1
        return True

"""
Export Progress

An export moves through phases (capture -> encode -> done); every report is
a ProgressUpdate carrying the phase, a percent within it and a short
message. Sinks are interchangeable callables.

Usage:
    from scenecast.progress import CLIProgress

    exporter.capture_and_encode("out.mp4", progress=CLIProgress())
"""

import sys
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Optional, TextIO

PHASE_CAPTURE = "capture"
PHASE_ENCODE = "encode"
PHASE_DONE = "done"


@dataclass
class ProgressUpdate:
    percent: int = 0
    message: str = ""
    current_item: Optional[str] = None  # e.g. "frame 12/30"
    phase: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Fields that are set, for JSON status payloads."""
        return {k: v for k, v in asdict(self).items() if v is not None}


class ProgressCallback(ABC):
    @abstractmethod
    def __call__(self, update: ProgressUpdate) -> None:
        ...

    def update(self, percent: int, message: str = "", **kwargs) -> None:
        self(ProgressUpdate(percent=percent, message=message, **kwargs))


class CLIProgress(ProgressCallback):
    """
    Redraws one terminal line per phase; a new phase starts a new line.
    """

    def __init__(self, stream: Optional[TextIO] = None, bar_width: int = 24):
        self.stream = stream
        self.bar_width = bar_width
        self._phase: Optional[str] = None

    def __call__(self, update: ProgressUpdate) -> None:
        out = self.stream or sys.stdout
        if self._phase is not None and update.phase != self._phase:
            out.write("\n")
        self._phase = update.phase

        percent = max(0, min(100, update.percent))
        filled = self.bar_width * percent // 100
        bar = "█" * filled + "░" * (self.bar_width - filled)
        item = f" ({update.current_item})" if update.current_item else ""
        out.write(f"\r   [{bar}] {percent:3d}% {update.message}{item}\033[K")
        if update.phase == PHASE_DONE:
            out.write("\n")
        out.flush()


class LogProgress(ProgressCallback):
    """Logs each phase change and every `step` percent within a phase."""

    def __init__(self, logger=None, step: int = 10):
        self._logger = logger
        self.step = step
        self._phase: Optional[str] = None
        self._next_percent = 0

    def __call__(self, update: ProgressUpdate) -> None:
        if update.phase != self._phase:
            self._phase = update.phase
            self._next_percent = 0
        if update.percent < self._next_percent:
            return
        self._next_percent = (update.percent // self.step + 1) * self.step

        log = self._logger
        if log is None:
            from .logger import logger as log
        item = f" [{update.current_item}]" if update.current_item else ""
        log.info(f"   📊 {update.phase or 'progress'}: {update.percent}% {update.message}{item}")


class NullProgress(ProgressCallback):
    def __call__(self, update: ProgressUpdate) -> None:
        pass


class FunctionProgress(ProgressCallback):
    """Adapts a plain `fn(update)` callable."""

    def __init__(self, fn: Callable[[ProgressUpdate], None]):
        self._fn = fn

    def __call__(self, update: ProgressUpdate) -> None:
        self._fn(update)


def normalize_callback(callback: Optional[Callable]) -> ProgressCallback:
    """None -> NullProgress, plain callables wrapped, sinks returned as is."""
    if callback is None:
        return NullProgress()
    if isinstance(callback, ProgressCallback):
        return callback
    return FunctionProgress(callback)

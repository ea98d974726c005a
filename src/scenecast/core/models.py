"""
Data models for scene playback and capture.

SceneSpec / VideoDocument are the parsed input, ProcessedScene is the
timeline-positioned scene, TimelineState and AudioSyncState are the mutable
player state, CaptureJob is the sampler -> encoder message.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from ..exceptions import LoadError

AUTO_DURATION = "auto"

Duration = Union[str, float]


def _parse_duration(value: Any) -> Duration:
    """Normalize a raw duration value to AUTO_DURATION or seconds."""
    if value is None or value == "" or value == AUTO_DURATION:
        return AUTO_DURATION
    if isinstance(value, bool):
        raise LoadError(f"Invalid scene duration: {value!r}")
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            raise LoadError(f"Invalid scene duration: {value!r}")
    if not isinstance(value, (int, float)):
        raise LoadError(f"Invalid scene duration: {value!r}")
    try:
        value = float(value)
    except OverflowError:
        raise LoadError(f"Scene duration out of range: {value!r}")
    if not math.isfinite(value):
        raise LoadError(f"Scene duration must be finite: {value!r}")
    if value < 0:
        raise LoadError(f"Scene duration must not be negative: {value!r}")
    # A zero duration counts as unset
    if value == 0:
        return AUTO_DURATION
    return value


def _optional_str(data: Dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise LoadError(f"Scene field '{key}' must be a string, got {type(value).__name__}")
    return value


@dataclass(frozen=True)
class SceneSpec:
    """One timed segment of the presentation, as authored."""
    html: str = ""
    speech: Optional[str] = None
    audio: Optional[str] = None
    duration: Duration = AUTO_DURATION
    pause_background: bool = False

    @property
    def is_auto(self) -> bool:
        return self.duration == AUTO_DURATION

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SceneSpec":
        if not isinstance(data, dict):
            raise LoadError(f"Scene must be an object, got {type(data).__name__}")
        html = data.get("html") or ""
        if not isinstance(html, str):
            raise LoadError("Scene field 'html' must be a string")
        return cls(
            html=html,
            speech=_optional_str(data, "speech"),
            audio=_optional_str(data, "audio"),
            duration=_parse_duration(data.get("duration")),
            pause_background=bool(data.get("pauseBackground", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "html": self.html,
            "speech": self.speech,
            "audio": self.audio,
            "duration": self.duration,
            "pauseBackground": self.pause_background,
        }


@dataclass(frozen=True)
class ProcessedScene:
    """A SceneSpec placed on the timeline as the half-open interval [start, end)."""
    spec: SceneSpec
    start_time_ms: float
    end_time_ms: float

    @property
    def html(self) -> str:
        return self.spec.html

    @property
    def speech(self) -> Optional[str]:
        return self.spec.speech

    @property
    def audio(self) -> Optional[str]:
        return self.spec.audio

    @property
    def pause_background(self) -> bool:
        return self.spec.pause_background

    @property
    def duration_ms(self) -> float:
        return self.end_time_ms - self.start_time_ms

    def contains(self, time_ms: float) -> bool:
        return self.start_time_ms <= time_ms < self.end_time_ms


@dataclass(frozen=True)
class VideoDocument:
    """Parsed source document: scenes plus optional background track."""
    scenes: List[SceneSpec]
    audio: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "VideoDocument":
        if not isinstance(data, dict):
            raise LoadError("Document must be a JSON object")
        raw_scenes = data.get("scenes")
        if not isinstance(raw_scenes, list):
            raise LoadError("Document has no 'scenes' list")
        if not raw_scenes:
            raise LoadError("Document contains no scenes")
        return cls(
            scenes=[SceneSpec.from_dict(s) for s in raw_scenes],
            audio=_optional_str(data, "audio"),
        )


@dataclass
class TimelineState:
    """Mutable playback position, owned by the player."""
    current_time_ms: float = 0.0
    current_scene_index: int = -1
    is_playing: bool = False
    last_tick_timestamp: float = 0.0


@dataclass
class AudioSyncState:
    """Background channel suspension bookkeeping."""
    paused_by_scene: bool = False
    resume_position: float = 0.0  # Seconds into the background track


@dataclass(frozen=True)
class CaptureJob:
    """A snapshot scheduled for one slot of the ideal frame grid."""
    frame_index: int
    visual_state: Any
    content_signature: str
    timestamp_ms: float = field(default=0.0, compare=False)

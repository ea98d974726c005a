"""
Timeline engine: scene models, timeline math, playback clock and player.

The player lives in scenecast.core.player; it is not re-exported here to
keep this package importable from the audio and render layers.
"""

from .models import (
    AUTO_DURATION,
    AudioSyncState,
    CaptureJob,
    ProcessedScene,
    SceneSpec,
    TimelineState,
    VideoDocument,
)
from .timeline import SceneTimeline, build_timeline, locate, scene_duration_ms, word_count

__all__ = [
    "AUTO_DURATION",
    "AudioSyncState",
    "CaptureJob",
    "ProcessedScene",
    "SceneSpec",
    "TimelineState",
    "VideoDocument",
    "SceneTimeline",
    "build_timeline",
    "locate",
    "scene_duration_ms",
    "word_count",
]

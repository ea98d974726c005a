"""Audio channels, background/scene synchronization and live-mix recording."""

from .channel import AudioChannel, ClockedAudioChannel
from .recorder import AudioRecorder
from .sync import AudioSyncController
from .tap import MixdownTap, MixRecording

__all__ = [
    "AudioChannel",
    "ClockedAudioChannel",
    "AudioSyncController",
    "MixdownTap",
    "MixRecording",
    "AudioRecorder",
]

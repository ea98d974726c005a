"""
Centralized Configuration for scenecast

Single Source of Truth for paths, playback constants, capture and encoding
settings. Every field defaults from an environment variable.

Usage:
    from scenecast.config import settings

    fps = settings.capture.fps
    preset = settings.encoding.preset
"""

import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .exceptions import ConfigurationError


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() == "true"


# =============================================================================
# Path Configuration
# =============================================================================
@dataclass
class PathConfig:
    """Filesystem locations for exports and encoder scratch space."""

    output_dir: Path = field(default_factory=lambda: Path(os.environ.get("OUTPUT_DIR", "./output")))
    temp_dir: Path = field(default_factory=lambda: Path(os.environ.get("TEMP_DIR", tempfile.gettempdir())))

    def ensure_directories(self) -> None:
        """Create directories if they don't exist."""
        for path in [self.output_dir, self.temp_dir]:
            path.mkdir(parents=True, exist_ok=True)


# =============================================================================
# Playback Configuration
# =============================================================================
@dataclass
class PlaybackConfig:
    """Timeline and audio-sync constants."""

    ms_per_word: float = field(default_factory=lambda: float(os.environ.get("MS_PER_WORD", "350")))
    min_auto_duration_ms: float = field(default_factory=lambda: float(os.environ.get("MIN_AUTO_DURATION_MS", "2000")))
    default_duration_ms: float = field(default_factory=lambda: float(os.environ.get("DEFAULT_SCENE_DURATION_MS", "2000")))
    # Seconds; per-scene audio is only repositioned beyond this drift
    audio_resync_tolerance: float = field(default_factory=lambda: float(os.environ.get("AUDIO_RESYNC_TOLERANCE", "0.2")))
    tick_interval_ms: float = field(default_factory=lambda: float(os.environ.get("TICK_INTERVAL_MS", "16")))
    show_captions: bool = field(default_factory=lambda: _env_bool("SHOW_CAPTIONS", "true"))


# =============================================================================
# Capture Configuration
# =============================================================================
@dataclass
class CaptureConfig:
    """Frame grid, still image and audio recording settings."""

    fps: int = field(default_factory=lambda: int(os.environ.get("CAPTURE_FPS", "10")))
    width: int = field(default_factory=lambda: int(os.environ.get("CAPTURE_WIDTH", "1280")))
    height: int = field(default_factory=lambda: int(os.environ.get("CAPTURE_HEIGHT", "720")))
    jpeg_quality: int = field(default_factory=lambda: int(os.environ.get("JPEG_QUALITY", "80")))
    frame_pattern: str = field(default_factory=lambda: os.environ.get("FRAME_PATTERN", "frame_%05d.jpg"))
    audio_sample_rate: int = field(default_factory=lambda: int(os.environ.get("AUDIO_SAMPLE_RATE", "44100")))
    audio_channels: int = field(default_factory=lambda: int(os.environ.get("AUDIO_CHANNELS", "2")))
    audio_chunk_ms: int = field(default_factory=lambda: int(os.environ.get("AUDIO_CHUNK_MS", "100")))

    def frame_name(self, index: int) -> str:
        """Workspace filename for a frame index."""
        return self.frame_pattern % index


# =============================================================================
# Encoding Configuration
# =============================================================================
@dataclass
class EncodingConfig:
    """FFmpeg settings for the two-phase encode."""

    ffmpeg_binary: str = field(default_factory=lambda: os.environ.get("FFMPEG_BIN", "ffmpeg"))
    codec: str = field(default_factory=lambda: os.environ.get("OUTPUT_CODEC", "libx264"))
    preset: str = field(default_factory=lambda: os.environ.get("FFMPEG_PRESET", "medium"))
    pix_fmt: str = field(default_factory=lambda: os.environ.get("OUTPUT_PIX_FMT", "yuv420p"))
    crf: int = field(default_factory=lambda: int(os.environ.get("FINAL_CRF", "23")))
    audio_codec: str = field(default_factory=lambda: os.environ.get("AUDIO_CODEC", "aac"))
    audio_bitrate: str = field(default_factory=lambda: os.environ.get("AUDIO_BITRATE", "192k"))


# =============================================================================
# Loader Configuration
# =============================================================================
@dataclass
class LoaderConfig:
    """Source document fetching."""

    request_timeout: float = field(default_factory=lambda: float(os.environ.get("SOURCE_TIMEOUT", "30")))


# =============================================================================
# Main Settings Class
# =============================================================================
@dataclass
class Settings:
    """
    Aggregated settings.

    Usage:
        from scenecast.config import get_settings

        settings = get_settings()
        if settings.playback.show_captions:
            ...
    """

    paths: PathConfig = field(default_factory=PathConfig)
    playback: PlaybackConfig = field(default_factory=PlaybackConfig)
    capture: CaptureConfig = field(default_factory=CaptureConfig)
    encoding: EncodingConfig = field(default_factory=EncodingConfig)
    loader: LoaderConfig = field(default_factory=LoaderConfig)

    def __post_init__(self):
        """Validate settings after initialization."""
        if self.capture.fps <= 0:
            raise ConfigurationError(f"CAPTURE_FPS must be positive, got {self.capture.fps}")
        if self.capture.width <= 0 or self.capture.height <= 0:
            raise ConfigurationError(
                f"Capture size must be positive, got {self.capture.width}x{self.capture.height}"
            )
        if not 1 <= self.capture.jpeg_quality <= 100:
            raise ConfigurationError(f"JPEG_QUALITY must be 1..100, got {self.capture.jpeg_quality}")
        if isinstance(self.paths.output_dir, str):
            self.paths.output_dir = Path(self.paths.output_dir)
        if isinstance(self.paths.temp_dir, str):
            self.paths.temp_dir = Path(self.paths.temp_dir)


# =============================================================================
# Global Settings Instance (Singleton)
# =============================================================================
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance (lazy initialization)."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings() -> Settings:
    """Force reload of settings from environment."""
    global _settings
    _settings = Settings()
    return _settings


# Convenience alias
settings = get_settings()

"""
scenecast Exception Hierarchy

Structured exception types for loading, playback and export.
All exceptions inherit from SceneCastError for easy catching.

Usage:
    from scenecast.exceptions import LoadError, EncoderFailure

    try:
        player.load("scenes.json")
    except LoadError as e:
        logger.error(f"Could not load scenes: {e}")
"""

from typing import List, Optional


class SceneCastError(Exception):
    """Base exception for all scenecast errors."""
    pass


# =============================================================================
# Loading
# =============================================================================

class LoadError(SceneCastError):
    """Scenes document is malformed or unreachable."""

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.source = source


# =============================================================================
# Rendering / Audio (absorbed locally, logged)
# =============================================================================

class RenderFailure(SceneCastError):
    """A single frame could not be snapshotted or serialized."""

    def __init__(self, message: str, frame_index: Optional[int] = None):
        super().__init__(message)
        self.frame_index = frame_index


class AudioFailure(SceneCastError):
    """Audio channel refused to play or could not decode its source."""
    pass


# =============================================================================
# Capture / Export
# =============================================================================

class CaptureError(SceneCastError):
    """Capture pipeline used in an invalid state."""
    pass


class ExportCancelled(CaptureError):
    """capture_and_encode was cancelled before muxing."""
    pass


class EncoderFailure(SceneCastError):
    """External encoder run failed. Fatal to the current export."""

    def __init__(self, message: str, command: Optional[List[str]] = None, stderr: Optional[str] = None):
        super().__init__(message)
        self.command = command
        self.stderr = stderr


# =============================================================================
# Configuration
# =============================================================================

class ConfigurationError(SceneCastError):
    """Invalid configuration value."""
    pass

"""
scenecast - timed scene presentations and their video capture

Playback:
    from scenecast import ScenePlayer, CardRenderer

    player = ScenePlayer(CardRenderer(), src="scenes.json")
    player.load()
    player.play()

Export:
    from scenecast import VideoExporter

    path = VideoExporter(player).capture_and_encode("out.mp4")

Timeline math:
    from scenecast.core.timeline import SceneTimeline

    timeline = SceneTimeline.build(document.scenes)
"""

from ._version import __version__
from .capture.exporter import VideoExporter
from .core.player import ScenePlayer
from .core.timeline import SceneTimeline
from .render.renderer import CardRenderer
from .sources import SourceLoader

__all__ = [
    "__version__",
    "ScenePlayer",
    "SceneTimeline",
    "SourceLoader",
    "CardRenderer",
    "VideoExporter",
]

"""
Example: Basic Export

Loads a scenes document and captures it to an MP4 in real time.
"""

from scenecast import CardRenderer, ScenePlayer, VideoExporter
from scenecast.progress import CLIProgress

player = ScenePlayer(CardRenderer(), src="examples/welcome.json")
player.load()

exporter = VideoExporter(player, fps=10)
path = exporter.capture_and_encode("./output/welcome.mp4", progress=CLIProgress())
print(f"Wrote {path}")
player.close()

"""
Example: Player Events

Plays a document headlessly and prints media-element style events.
"""

import threading

from scenecast import CardRenderer, ScenePlayer

done = threading.Event()
player = ScenePlayer(CardRenderer(), src="examples/welcome.json")

player.on("loadedmetadata", lambda total_ms: print(f"duration: {total_ms / 1000:.1f}s"))
player.on("play", lambda: print("play"))
player.on("pause", lambda: print("pause"))
player.on("ended", lambda total_ms: done.set())

player.load()
player.seek_to(1500)
print(f"scene after seek: {player.current_scene_index}")

player.play()
done.wait()
player.close()

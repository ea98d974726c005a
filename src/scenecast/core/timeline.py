"""
Scene Timeline

Turns a scene list with partly implicit durations into contiguous absolute
millisecond intervals, and maps timestamps back to scene indices.

Duration rule:
    - explicit duration (seconds)  -> duration * 1000
    - "auto" with speech           -> max(2000, words * 350)
    - "auto" without speech        -> 2000

Usage:
    from scenecast.core.timeline import SceneTimeline

    timeline = SceneTimeline.build(document.scenes)
    idx = timeline.locate(4200)
"""

from bisect import bisect_right
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from .models import ProcessedScene, SceneSpec

DEFAULT_MS_PER_WORD = 350.0
DEFAULT_MIN_AUTO_DURATION_MS = 2000.0
DEFAULT_SCENE_DURATION_MS = 2000.0


def word_count(text: str) -> int:
    """Number of whitespace-delimited non-empty tokens."""
    return len(text.split())


def scene_duration_ms(
    scene: SceneSpec,
    ms_per_word: float = DEFAULT_MS_PER_WORD,
    min_auto_ms: float = DEFAULT_MIN_AUTO_DURATION_MS,
    default_ms: float = DEFAULT_SCENE_DURATION_MS,
) -> float:
    """Derived duration of a single scene in milliseconds."""
    if not scene.is_auto:
        return float(scene.duration) * 1000.0
    if scene.speech:
        return max(min_auto_ms, word_count(scene.speech) * ms_per_word)
    return default_ms


@dataclass(frozen=True)
class SceneTimeline:
    """Ordered, gap-free scene intervals covering [0, total_duration_ms)."""
    scenes: Tuple[ProcessedScene, ...]
    total_duration_ms: float

    @classmethod
    def build(
        cls,
        scenes: Sequence[SceneSpec],
        ms_per_word: float = DEFAULT_MS_PER_WORD,
        min_auto_ms: float = DEFAULT_MIN_AUTO_DURATION_MS,
        default_ms: float = DEFAULT_SCENE_DURATION_MS,
    ) -> "SceneTimeline":
        processed: List[ProcessedScene] = []
        cursor = 0.0
        for spec in scenes:
            duration = scene_duration_ms(spec, ms_per_word, min_auto_ms, default_ms)
            start = cursor
            cursor += duration
            processed.append(ProcessedScene(spec=spec, start_time_ms=start, end_time_ms=cursor))
        return cls(scenes=tuple(processed), total_duration_ms=cursor)

    def __len__(self) -> int:
        return len(self.scenes)

    def __getitem__(self, index: int) -> ProcessedScene:
        return self.scenes[index]

    @property
    def last_index(self) -> int:
        return len(self.scenes) - 1

    def locate(self, time_ms: float) -> int:
        """
        Index of the scene whose interval contains time_ms.

        Timestamps at or past the end map to the last scene, negative ones
        to the first.

        Raises:
            ValueError: if the timeline has no scenes
        """
        if not self.scenes:
            raise ValueError("Cannot locate a timestamp in an empty timeline")
        if time_ms >= self.total_duration_ms:
            return self.last_index
        starts = [s.start_time_ms for s in self.scenes]
        return max(0, bisect_right(starts, time_ms) - 1)

    def advance(self, from_index: int, time_ms: float) -> int:
        """
        Forward-only scan from a known index for the first interval ending
        after time_ms. Valid while time only moves forward.
        """
        idx = max(0, from_index)
        while idx < self.last_index and time_ms >= self.scenes[idx].end_time_ms:
            idx += 1
        return idx


def build_timeline(scenes: Sequence[SceneSpec], **kwargs) -> Tuple[List[ProcessedScene], float]:
    """Functional form: (processed scenes, total duration ms)."""
    timeline = SceneTimeline.build(scenes, **kwargs)
    return list(timeline.scenes), timeline.total_duration_ms


def locate(processed_scenes: Sequence[ProcessedScene], time_ms: float) -> int:
    """Functional form of SceneTimeline.locate over a processed scene list."""
    if not processed_scenes:
        raise ValueError("Cannot locate a timestamp in an empty timeline")
    timeline = SceneTimeline(tuple(processed_scenes), processed_scenes[-1].end_time_ms)
    return timeline.locate(time_ms)

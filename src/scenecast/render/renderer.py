"""
Scene Renderer

A Renderer displays the active scene and exposes its visual state as an
immutable snapshot (VisualState) plus a way to turn a snapshot into a
still image. The capture pipeline only compares snapshot signatures and
asks for images; it never looks inside.

CardRenderer is the headless default: markup is reduced to its text and
drawn as a centered title card with OpenCV, the narration shown as a
caption bar along the bottom edge.

Usage:
    renderer = CardRenderer(width=1280, height=720)
    renderer.render(scene, show_captions=True)
    state = renderer.snapshot()
    jpeg = renderer.rasterize(state)
"""

import hashlib
import threading
import unicodedata
from abc import ABC, abstractmethod
from dataclasses import dataclass
from html.parser import HTMLParser
from typing import Any, List, Optional, Tuple

import cv2
import numpy as np

from ..config import get_settings
from ..core.models import ProcessedScene
from ..exceptions import RenderFailure

Color = Tuple[int, int, int]

BLOCK_TAGS = {"p", "div", "br", "li", "h1", "h2", "h3", "h4", "h5", "h6", "section", "article", "tr"}
SKIP_TAGS = {"script", "style", "head", "title"}


@dataclass(frozen=True)
class VisualState:
    """Immutable snapshot of what the surface shows."""
    markup: str
    caption: Optional[str]
    width: int
    height: int

    @property
    def signature(self) -> str:
        """Equal only for snapshots that render to identical pixels."""
        key = f"{self.width}x{self.height}\0{self.markup}\0{self.caption or ''}"
        return hashlib.sha1(key.encode("utf-8")).hexdigest()


# =============================================================================
# Markup -> text
# =============================================================================

class _TextExtractor(HTMLParser):
    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.lines: List[str] = [""]
        self._skip_depth = 0

    def handle_starttag(self, tag, attrs):
        if tag in SKIP_TAGS:
            self._skip_depth += 1
        elif tag in BLOCK_TAGS:
            self._break()

    def handle_endtag(self, tag):
        if tag in SKIP_TAGS:
            self._skip_depth = max(0, self._skip_depth - 1)
        elif tag in BLOCK_TAGS:
            self._break()

    def handle_data(self, data):
        if self._skip_depth:
            return
        self.lines[-1] += data

    def _break(self):
        if self.lines[-1].strip():
            self.lines.append("")


def markup_to_text(markup: str) -> List[str]:
    """Visible text of a markup fragment, one entry per block, whitespace collapsed."""
    parser = _TextExtractor()
    parser.feed(markup or "")
    parser.close()
    return [" ".join(line.split()) for line in parser.lines if line.strip()]


def _ascii(text: str) -> str:
    # Hershey fonts only cover ASCII
    return unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")


# =============================================================================
# Renderer interface
# =============================================================================

class Renderer(ABC):
    """Visual surface for one scene at a time."""

    @abstractmethod
    def render(self, scene: ProcessedScene, show_captions: bool) -> None:
        """Display `scene`; captions drawn only when requested and present."""

    @abstractmethod
    def snapshot(self) -> Any:
        """Opaque, immutable copy of the current visual state."""

    @abstractmethod
    def rasterize(self, state: Any) -> bytes:
        """Encode a snapshot as a still image. Raises RenderFailure."""

    def signature(self, state: Any) -> str:
        return state.signature


class CardRenderer(Renderer):
    def __init__(
        self,
        width: Optional[int] = None,
        height: Optional[int] = None,
        jpeg_quality: Optional[int] = None,
        background: Color = (255, 255, 255),
        foreground: Color = (20, 20, 20),
    ):
        capture = get_settings().capture
        self.width = width or capture.width
        self.height = height or capture.height
        self.jpeg_quality = jpeg_quality or capture.jpeg_quality
        self.background = background
        self.foreground = foreground
        self._lock = threading.Lock()
        self._state = VisualState(markup="", caption=None, width=self.width, height=self.height)

    def render(self, scene: ProcessedScene, show_captions: bool) -> None:
        caption = scene.speech if show_captions and scene.speech else None
        state = VisualState(markup=scene.html or "", caption=caption, width=self.width, height=self.height)
        with self._lock:
            self._state = state

    def snapshot(self) -> VisualState:
        with self._lock:
            return self._state

    def rasterize(self, state: VisualState) -> bytes:
        try:
            canvas = self.draw(state)
            ok, buffer = cv2.imencode(".jpg", canvas, [cv2.IMWRITE_JPEG_QUALITY, self.jpeg_quality])
        except cv2.error as e:
            raise RenderFailure(f"OpenCV failed to draw frame: {e}") from e
        if not ok:
            raise RenderFailure("JPEG encoding returned no data")
        return buffer.tobytes()

    # -------------------------------------------------------------------------
    # Drawing
    # -------------------------------------------------------------------------
    def draw(self, state: VisualState) -> np.ndarray:
        """BGR canvas for a snapshot."""
        canvas = np.full((state.height, state.width, 3), self.background, dtype=np.uint8)
        scale = state.width / 1280.0

        lines: List[str] = []
        for block in markup_to_text(state.markup):
            lines.extend(self._wrap(_ascii(block), 1.2 * scale, int(state.width * 0.85)))
        self._draw_centered(canvas, lines, 1.2 * scale, self.foreground, max(1, int(2 * scale)))

        if state.caption:
            self._draw_caption(canvas, _ascii(state.caption), scale)
        return canvas

    @staticmethod
    def _wrap(text: str, font_scale: float, max_width: int) -> List[str]:
        words = text.split()
        lines: List[str] = []
        current = ""
        for word in words:
            candidate = f"{current} {word}".strip()
            (w, _), _ = cv2.getTextSize(candidate, cv2.FONT_HERSHEY_SIMPLEX, font_scale, 2)
            if w <= max_width or not current:
                current = candidate
            else:
                lines.append(current)
                current = word
        if current:
            lines.append(current)
        return lines

    def _draw_centered(self, canvas: np.ndarray, lines: List[str], font_scale: float, color: Color, thickness: int) -> None:
        if not lines:
            return
        height, width = canvas.shape[:2]
        line_height = int(48 * font_scale)
        top = (height - line_height * len(lines)) // 2 + line_height
        for i, line in enumerate(lines):
            (w, _), _ = cv2.getTextSize(line, cv2.FONT_HERSHEY_SIMPLEX, font_scale, thickness)
            origin = ((width - w) // 2, top + i * line_height)
            cv2.putText(canvas, line, origin, cv2.FONT_HERSHEY_SIMPLEX, font_scale, color, thickness, cv2.LINE_AA)

    def _draw_caption(self, canvas: np.ndarray, caption: str, scale: float) -> None:
        height, width = canvas.shape[:2]
        font_scale = 0.8 * scale
        lines = self._wrap(caption, font_scale, int(width * 0.8))
        line_height = int(34 * scale)
        pad = int(10 * scale)
        box_height = line_height * len(lines) + pad * 2
        bottom = height - int(24 * scale)
        top = bottom - box_height

        # rgba(0, 0, 0, 0.8) backdrop
        overlay = canvas.copy()
        cv2.rectangle(overlay, (int(width * 0.08), top), (int(width * 0.92), bottom), (0, 0, 0), -1)
        cv2.addWeighted(overlay, 0.8, canvas, 0.2, 0, dst=canvas)

        for i, line in enumerate(lines):
            (w, _), _ = cv2.getTextSize(line, cv2.FONT_HERSHEY_SIMPLEX, font_scale, 1)
            origin = ((width - w) // 2, top + pad + (i + 1) * line_height - int(8 * scale))
            cv2.putText(canvas, line, origin, cv2.FONT_HERSHEY_SIMPLEX, font_scale, (255, 255, 255), 1, cv2.LINE_AA)

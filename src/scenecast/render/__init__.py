from .renderer import CardRenderer, Renderer, VisualState, markup_to_text

__all__ = ["Renderer", "CardRenderer", "VisualState", "markup_to_text"]

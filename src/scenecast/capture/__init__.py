"""Capture-and-encode pipeline: frame grid sampling, encoding and muxing."""

from .encoder import FrameEncoder
from .exporter import VideoExporter
from .frame_queue import FrameQueue
from .muxer import Muxer
from .sampler import FrameSampler, frame_count, frame_grid
from .workspace import EncoderWorkspace

__all__ = [
    "FrameQueue",
    "FrameSampler",
    "FrameEncoder",
    "EncoderWorkspace",
    "Muxer",
    "VideoExporter",
    "frame_count",
    "frame_grid",
]

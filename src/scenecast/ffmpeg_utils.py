"""
FFmpeg argument builders for the two export phases.

Phase 1 turns the numbered frame files into a video-only stream at a fixed
rate; phase 2 copies that stream next to the recorded audio. Every builder
returns plain argument lists; build_ffmpeg_cmd() adds the binary and the
global flags when the workspace runs them.
"""

from dataclasses import dataclass
from typing import List

from .config import EncodingConfig


def build_ffmpeg_cmd(
    args: List[str],
    binary: str = "ffmpeg",
    *,
    overwrite: bool = True,
    quiet: bool = True,
) -> List[str]:
    """
    Prefix `args` with the binary and global flags they don't already set.

    quiet adds `-hide_banner -loglevel error` so stderr holds only errors.
    """
    head = [binary]
    if overwrite and "-y" not in args and "-n" not in args:
        head.append("-y")
    if quiet:
        if "-hide_banner" not in args:
            head.append("-hide_banner")
        if "-loglevel" not in args:
            head += ["-loglevel", "error"]
    return head + list(args)


@dataclass(frozen=True)
class FrameSequenceInput:
    """Numbered still images read at a fixed rate, starting at `start_number`."""
    pattern: str
    fps: int
    start_number: int = 0

    def to_args(self) -> List[str]:
        return [
            "-framerate", str(self.fps),
            "-start_number", str(self.start_number),
            "-i", self.pattern,
        ]


@dataclass
class VideoEncodingParams:
    codec: str = "libx264"
    preset: str = "medium"
    crf: int = 23
    pix_fmt: str = "yuv420p"

    @classmethod
    def from_config(cls, encoding: EncodingConfig) -> "VideoEncodingParams":
        return cls(codec=encoding.codec, preset=encoding.preset, crf=encoding.crf, pix_fmt=encoding.pix_fmt)

    def to_args(self) -> List[str]:
        return ["-c:v", self.codec, "-preset", self.preset, "-crf", str(self.crf), "-pix_fmt", self.pix_fmt]


def build_frames_to_video_args(
    frames: FrameSequenceInput,
    frame_count: int,
    params: VideoEncodingParams,
    output: str,
) -> List[str]:
    """Phase 1: exactly `frame_count` frames, no audio track."""
    return frames.to_args() + ["-frames:v", str(frame_count)] + params.to_args() + ["-an", output]


def build_mux_args(
    video: str,
    audio: str,
    output: str,
    audio_codec: str = "aac",
    audio_bitrate: str = "192k",
) -> List[str]:
    """
    Phase 2: video stream copied untouched, audio encoded, output cut to
    the shorter of the two.
    """
    return [
        "-i", video,
        "-i", audio,
        "-map", "0:v:0",
        "-map", "1:a:0",
        "-c:v", "copy",
        "-c:a", audio_codec,
        "-b:a", audio_bitrate,
        "-shortest",
        output,
    ]

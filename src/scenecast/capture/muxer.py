"""
Muxer

Two-phase finalize through the external encoder:

    1. frames at a fixed rate -> video-only intermediate, using the exact
       number of frames produced
    2. intermediate (video copied, not re-encoded) + recorded audio -> final
       container, truncated to the shorter stream

Per-frame images and intermediates are deleted on every exit path.
"""

from typing import List, Optional

from ..config import EncodingConfig, get_settings
from ..exceptions import EncoderFailure
from ..ffmpeg_utils import (
    FrameSequenceInput,
    VideoEncodingParams,
    build_frames_to_video_args,
    build_mux_args,
)
from ..logger import logger
from .workspace import EncoderWorkspace

INTERMEDIATE_NAME = "video_only.mp4"
AUDIO_NAME = "audio.wav"
OUTPUT_NAME = "output.mp4"


class Muxer:
    def __init__(
        self,
        workspace: EncoderWorkspace,
        fps: int,
        frame_pattern: str,
        encoding: Optional[EncodingConfig] = None,
    ):
        self.workspace = workspace
        self.fps = fps
        self.frame_pattern = frame_pattern
        self.encoding = encoding or get_settings().encoding

    def frame_name(self, index: int) -> str:
        return self.frame_pattern % index

    def mux(self, frame_count: int, audio: Optional[bytes] = None) -> bytes:
        """
        Encode `frame_count` frames, add `audio` if any, return the container bytes.

        Raises:
            EncoderFailure: no frames, or either encoder phase failed
        """
        if frame_count <= 0:
            raise EncoderFailure("No frames were captured")
        try:
            self.backfill_missing_frames(frame_count)
            self.encode_video(frame_count)
            if audio:
                self.workspace.write_file(AUDIO_NAME, audio)
                self.mux_audio()
                return self.workspace.read_file(OUTPUT_NAME)
            logger.warning("   ⚠️  No audio was recorded; exporting video only")
            return self.workspace.read_file(INTERMEDIATE_NAME)
        finally:
            self.cleanup(frame_count)

    def backfill_missing_frames(self, frame_count: int) -> List[int]:
        """
        Fill holes left by dropped frames with the nearest earlier frame
        (the first later one for leading holes). Returns filled indices.
        """
        present = [i for i in range(frame_count) if self.workspace.exists(self.frame_name(i))]
        if not present:
            raise EncoderFailure("No frame could be rendered")
        if len(present) == frame_count:
            return []

        filled = []
        source = present[0]
        present_set = set(present)
        for index in range(frame_count):
            if index in present_set:
                source = index
                continue
            self.workspace.copy_file(self.frame_name(source), self.frame_name(index))
            filled.append(index)
        logger.warning(f"   ⚠️  Back-filled {len(filled)} missing frame(s)")
        return filled

    def encode_video(self, frame_count: int) -> None:
        """Phase 1: image sequence -> video-only stream."""
        args = build_frames_to_video_args(
            FrameSequenceInput(self.frame_pattern, self.fps),
            frame_count,
            VideoEncodingParams.from_config(self.encoding),
            INTERMEDIATE_NAME,
        )
        logger.info(f"   🎞️  Encoding {frame_count} frames at {self.fps} fps")
        self.workspace.run(args)

    def mux_audio(self) -> None:
        """Phase 2: copy video, encode audio, stop at the shorter stream."""
        args = build_mux_args(
            INTERMEDIATE_NAME,
            AUDIO_NAME,
            OUTPUT_NAME,
            audio_codec=self.encoding.audio_codec,
            audio_bitrate=self.encoding.audio_bitrate,
        )
        logger.info("   🔊 Muxing recorded audio")
        self.workspace.run(args)

    def cleanup(self, frame_count: int) -> None:
        for index in range(frame_count):
            self.workspace.delete_file(self.frame_name(index))
        for name in (INTERMEDIATE_NAME, AUDIO_NAME, OUTPUT_NAME):
            self.workspace.delete_file(name)

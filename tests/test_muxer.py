"""
Tests for the two-phase Muxer: argument layout, back-fill and cleanup.
"""

import subprocess
from pathlib import Path

import pytest

from scenecast.capture.muxer import AUDIO_NAME, INTERMEDIATE_NAME, OUTPUT_NAME, Muxer
from scenecast.capture.workspace import EncoderWorkspace
from scenecast.config import EncodingConfig
from scenecast.exceptions import EncoderFailure

PATTERN = "frame_%05d.jpg"


class FakeFFmpeg:
    """Stands in for run_command: records args and writes the output file."""

    def __init__(self, fail_on=None):
        self.calls = []
        self.fail_on = fail_on

    def __call__(self, cmd, cwd=None, **kwargs):
        self.calls.append(cmd)
        output = cmd[-1]
        if self.fail_on and output == self.fail_on:
            return subprocess.CompletedProcess(cmd, 1, stdout="", stderr="encoder exploded")
        (Path(cwd) / output).write_bytes(f"video:{len(self.calls)}".encode())
        return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")


@pytest.fixture
def workspace(tmp_path):
    return EncoderWorkspace(tmp_path / "ws")


@pytest.fixture
def ffmpeg(monkeypatch):
    fake = FakeFFmpeg()
    monkeypatch.setattr("scenecast.capture.workspace.run_command", fake)
    return fake


@pytest.fixture
def muxer(workspace):
    encoding = EncodingConfig(codec="libx264", preset="fast", pix_fmt="yuv420p", crf=23,
                              audio_codec="aac", audio_bitrate="192k")
    return Muxer(workspace, fps=10, frame_pattern=PATTERN, encoding=encoding)


def write_frames(workspace, indices):
    for i in indices:
        workspace.write_file(PATTERN % i, f"jpeg{i}".encode())


def test_two_phase_arguments(workspace, ffmpeg, muxer):
    write_frames(workspace, range(20))
    data = muxer.mux(20, b"RIFFwav")

    assert data == b"video:2"
    assert len(ffmpeg.calls) == 2
    encode, mux = ffmpeg.calls

    i = encode.index("-framerate")
    assert encode[i:i + 6] == ["-framerate", "10", "-start_number", "0", "-i", PATTERN]
    assert encode[encode.index("-frames:v") + 1] == "20"
    assert encode[encode.index("-c:v") + 1] == "libx264"
    assert encode[encode.index("-pix_fmt") + 1] == "yuv420p"
    assert encode[-1] == INTERMEDIATE_NAME

    assert mux[mux.index("-c:v") + 1] == "copy"
    assert mux[mux.index("-c:a") + 1] == "aac"
    assert "-shortest" in mux
    assert mux[-1] == OUTPUT_NAME
    assert [mux[i + 1] for i, a in enumerate(mux) if a == "-i"] == [INTERMEDIATE_NAME, AUDIO_NAME]


def test_cleans_up_after_success(workspace, ffmpeg, muxer):
    write_frames(workspace, range(5))
    muxer.mux(5, b"RIFFwav")
    assert workspace.list_files() == []


def test_cleans_up_after_failure(workspace, monkeypatch, muxer):
    monkeypatch.setattr("scenecast.capture.workspace.run_command", FakeFFmpeg(fail_on=OUTPUT_NAME))
    write_frames(workspace, range(5))
    with pytest.raises(EncoderFailure) as exc:
        muxer.mux(5, b"RIFFwav")
    assert exc.value.stderr == "encoder exploded"
    assert workspace.list_files() == []


def test_without_audio_returns_intermediate(workspace, ffmpeg, muxer):
    write_frames(workspace, range(3))
    assert muxer.mux(3, b"") == b"video:1"
    assert len(ffmpeg.calls) == 1


def test_zero_frames(workspace, ffmpeg, muxer):
    with pytest.raises(EncoderFailure):
        muxer.mux(0, b"RIFF")
    assert ffmpeg.calls == []


def test_backfill_holes(workspace, muxer):
    write_frames(workspace, [2, 3, 5])
    filled = muxer.backfill_missing_frames(7)
    assert filled == [0, 1, 4, 6]
    assert workspace.read_file(PATTERN % 0) == b"jpeg2"
    assert workspace.read_file(PATTERN % 1) == b"jpeg2"
    assert workspace.read_file(PATTERN % 4) == b"jpeg3"
    assert workspace.read_file(PATTERN % 6) == b"jpeg5"


def test_backfill_nothing_to_fill(workspace, muxer):
    write_frames(workspace, range(4))
    assert muxer.backfill_missing_frames(4) == []


def test_backfill_without_any_frame(workspace, ffmpeg, muxer):
    with pytest.raises(EncoderFailure, match="No frame"):
        muxer.mux(3, b"RIFF")
    assert ffmpeg.calls == []

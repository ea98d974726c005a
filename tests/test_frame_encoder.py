"""
Tests for FrameEncoder: FIFO draining, dedup and per-frame failure handling.
"""

import pytest

from scenecast.capture.encoder import FrameEncoder
from scenecast.capture.frame_queue import FrameQueue
from scenecast.capture.workspace import EncoderWorkspace
from scenecast.core.models import CaptureJob
from scenecast.exceptions import EncoderFailure
from scenecast.render.renderer import VisualState

from conftest import FakeRenderer


def frame_name(index):
    return f"frame_{index:05d}.jpg"


def state(markup):
    return VisualState(markup=markup, caption=None, width=8, height=8)


def jobs_for(*markups):
    return [
        CaptureJob(frame_index=i, visual_state=state(m), content_signature=state(m).signature)
        for i, m in enumerate(markups)
    ]


@pytest.fixture
def workspace(tmp_path):
    with EncoderWorkspace(tmp_path / "ws") as ws:
        yield ws


@pytest.fixture
def renderer():
    return FakeRenderer()


def run_encoder(jobs, renderer, workspace):
    q = FrameQueue()
    encoder = FrameEncoder(q, renderer, workspace, frame_name)
    encoder.start()
    for j in jobs:
        q.put(j)
    q.close()
    return encoder, encoder.join(timeout=5)


def test_identical_states_serialized_once(renderer, workspace):
    encoder, stats = run_encoder(jobs_for("a", "a", "a", "b"), renderer, workspace)
    assert [s.markup for s in renderer.rasterized] == ["a", "b"]
    assert stats.serialized == 2
    assert stats.reused == 2
    assert workspace.read_file(frame_name(2)) == workspace.read_file(frame_name(0))
    assert encoder.written_indices == [0, 1, 2, 3]


def test_non_consecutive_repeat_is_serialized_again(renderer, workspace):
    _, stats = run_encoder(jobs_for("a", "b", "a"), renderer, workspace)
    assert stats.serialized == 3


def test_failed_frame_is_skipped(workspace):
    renderer = FakeRenderer(fail_markup={"bad"})
    encoder, stats = run_encoder(jobs_for("a", "bad", "c"), renderer, workspace)
    assert stats.dropped == 1
    assert encoder.written_indices == [0, 2]
    assert not workspace.exists(frame_name(1))
    assert workspace.exists(frame_name(2))


def test_write_error_surfaces_on_join(renderer, tmp_path):
    class ReadOnly(EncoderWorkspace):
        def write_file(self, name, data):
            raise OSError("disk full")

    ws = ReadOnly(tmp_path / "ro")
    q = FrameQueue()
    encoder = FrameEncoder(q, renderer, ws, frame_name)
    encoder.start()
    q.put(jobs_for("a")[0])
    q.close()
    with pytest.raises(EncoderFailure, match="disk full"):
        encoder.join(timeout=5)
    # Suppressed variant used during teardown
    assert encoder.join(raise_errors=False).written == 0


def test_start_twice_rejected(renderer, workspace):
    encoder = FrameEncoder(FrameQueue(), renderer, workspace, frame_name)
    encoder.start()
    with pytest.raises(RuntimeError):
        encoder.start()
    encoder.queue.close()
    encoder.join(timeout=5)

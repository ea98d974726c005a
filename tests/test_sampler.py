"""
Tests for the ideal frame grid and catch-up sampling.
"""

import pytest

from scenecast.capture.frame_queue import FrameQueue
from scenecast.capture.sampler import FrameSampler, frame_count, frame_grid
from scenecast.render.renderer import VisualState


class TestFrameGrid:
    def test_ten_fps_two_seconds(self):
        assert frame_count(2000, 10) == 20

    def test_partial_frame_rounds_up(self):
        assert frame_count(2050, 10) == 21
        assert frame_count(3000, 30) == 90

    def test_float_noise_is_absorbed(self):
        """0.1 + 0.2 seconds is still exactly 3 frames at 10fps."""
        assert frame_count((0.1 + 0.2) * 1000, 10) == 3

    def test_degenerate(self):
        assert frame_count(0, 10) == 0
        assert frame_count(1000, 0) == 0

    def test_grid_timestamps(self):
        assert frame_grid(500, 10) == pytest.approx([0, 100, 200, 300, 400])


class Surface:
    def __init__(self):
        self.markup = "a"
        self.snapshots = 0

    def snapshot(self):
        self.snapshots += 1
        return VisualState(markup=self.markup, caption=None, width=8, height=8)


@pytest.fixture
def surface():
    return Surface()


@pytest.fixture
def frame_queue():
    return FrameQueue()


def drain(q):
    q.close()
    return list(q)


def test_never_lagging_clock_gives_one_job_per_slot(surface, frame_queue):
    """Ticks faster than the grid: every slot filled once, distinct indices."""
    sampler = FrameSampler(10, 2000, surface.snapshot, frame_queue)
    t = 0.0
    while t <= 2100:
        sampler.on_tick(t)
        t += 16
    jobs = drain(frame_queue)
    assert [j.frame_index for j in jobs] == list(range(20))
    assert sampler.complete
    assert sampler.enqueued == 20


def test_catch_up_fills_all_elapsed_slots(surface, frame_queue):
    """A stall from 0.05s to 0.45s fills indices 1..4 with one snapshot."""
    sampler = FrameSampler(10, 2000, surface.snapshot, frame_queue)
    assert sampler.on_tick(50) == 1
    surface.markup = "b"
    assert sampler.on_tick(450) == 4
    jobs = drain(frame_queue)

    assert [j.frame_index for j in jobs] == [0, 1, 2, 3, 4]
    assert surface.snapshots == 2
    late = jobs[1:]
    assert len({j.content_signature for j in late}) == 1
    assert all(j.visual_state is late[0].visual_state for j in late)
    assert all(j.timestamp_ms == 450 for j in late)


def test_no_slot_elapsed_means_no_snapshot(surface, frame_queue):
    sampler = FrameSampler(10, 1000, surface.snapshot, frame_queue)
    sampler.on_tick(0)
    assert sampler.on_tick(50) == 0
    assert surface.snapshots == 1


def test_never_exceeds_grid(surface, frame_queue):
    sampler = FrameSampler(10, 1000, surface.snapshot, frame_queue)
    sampler.on_tick(5000)
    sampler.on_tick(6000)
    assert sampler.next_index == 10
    assert len(drain(frame_queue)) == 10


def test_snapshot_failure_consumes_slots(frame_queue):
    def broken():
        raise RuntimeError("surface gone")

    sampler = FrameSampler(10, 1000, broken, frame_queue)
    assert sampler.on_tick(250) == 0
    assert sampler.next_index == 3
    assert sampler.enqueued == 0
    assert frame_queue.put_count == 0


def test_custom_signature(surface, frame_queue):
    sampler = FrameSampler(10, 1000, surface.snapshot, frame_queue, signature=lambda s: "fixed")
    sampler.on_tick(0)
    assert drain(frame_queue)[0].content_signature == "fixed"

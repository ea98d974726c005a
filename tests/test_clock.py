"""
Tests for the PlaybackClock state machine and tick loop.
"""

import pytest

from scenecast.core.clock import ClockState, PlaybackClock
from scenecast.core.models import SceneSpec
from scenecast.core.timeline import SceneTimeline


def make_timeline(*seconds):
    return SceneTimeline.build([SceneSpec(html=f"s{i}", duration=float(s)) for i, s in enumerate(seconds)])


@pytest.fixture
def recorder():
    return {"changes": [], "ticks": [], "ends": 0}


@pytest.fixture
def clock(scheduler, recorder):
    def on_end():
        recorder["ends"] += 1

    return PlaybackClock(
        scheduler,
        on_scene_change=lambda prev, new: recorder["changes"].append((prev, new)),
        on_tick=recorder["ticks"].append,
        on_end=on_end,
    )


class TestTransitions:
    def test_play_without_timeline_is_noop(self, clock, scheduler):
        assert clock.play() is False
        assert clock.state is ClockState.IDLE
        assert not scheduler.pending

    def test_play_twice_is_noop(self, clock, scheduler):
        clock.load(make_timeline(1))
        assert clock.play() is True
        assert clock.play() is False
        assert len(scheduler.pending) == 1

    def test_pause_cancels_tick(self, clock, scheduler):
        clock.load(make_timeline(1))
        clock.play()
        assert clock.pause() is True
        assert clock.state is ClockState.PAUSED
        assert not scheduler.pending
        assert clock.pause() is False

    def test_load_resets_position(self, clock, scheduler):
        clock.load(make_timeline(1, 1))
        clock.play()
        scheduler.advance(1500)
        clock.load(make_timeline(2))
        assert clock.state is ClockState.IDLE
        assert clock.current_time_ms == 0
        assert clock.current_scene_index == 0
        assert not scheduler.pending


class TestTick:
    def test_variable_deltas_accumulate(self, clock, scheduler, recorder):
        """Time advances by the real delta of every frame."""
        clock.load(make_timeline(5))
        clock.play()
        for delta in (16, 33, 7, 120):
            scheduler.advance(delta)
        assert clock.current_time_ms == pytest.approx(176)
        assert recorder["ticks"] == pytest.approx([16, 49, 56, 176])

    def test_scene_change_reported_once(self, clock, scheduler, recorder):
        clock.load(make_timeline(1, 1, 1))
        clock.play()
        scheduler.advance(900)
        scheduler.advance(200)
        scheduler.advance(100)
        assert recorder["changes"] == [(0, 1)]
        assert clock.current_scene_index == 1

    def test_long_frame_skips_scenes(self, clock, scheduler, recorder):
        """A single slow frame jumps straight to the right scene."""
        clock.load(make_timeline(1, 1, 1))
        clock.play()
        scheduler.advance(2500)
        assert recorder["changes"] == [(0, 2)]

    def test_end_reached_exactly_once(self, clock, scheduler, recorder):
        clock.load(make_timeline(1, 2))
        clock.play()
        scheduler.run(step_ms=70)
        assert recorder["ends"] == 1
        assert clock.state is ClockState.ENDED
        assert clock.current_time_ms == 3000
        assert clock.current_scene_index == 1
        assert not scheduler.pending
        # No tick handler call for the final frame
        assert all(t < 3000 for t in recorder["ticks"])

    def test_tick_after_pause_is_ignored(self, clock, scheduler):
        clock.load(make_timeline(1))
        clock.play()
        stale = next(iter(scheduler.pending.values()))
        clock.pause()
        stale(scheduler.now() + 500)
        assert clock.current_time_ms == 0

    def test_failing_tick_handler_keeps_ticking(self, scheduler):
        def boom(_):
            raise RuntimeError("listener bug")

        clock = PlaybackClock(scheduler, on_tick=boom)
        clock.load(make_timeline(1))
        clock.play()
        scheduler.advance(100)
        assert clock.is_playing
        assert len(scheduler.pending) == 1


class TestSeek:
    def test_seek_clamps(self, clock):
        clock.load(make_timeline(1, 1))
        assert clock.seek(-100) == 0
        assert clock.current_time_ms == 0
        assert clock.seek(5000) == 1
        assert clock.current_time_ms == 2000

    def test_seek_without_timeline(self, clock):
        assert clock.seek(100) == -1
        assert clock.current_time_ms == 0

    def test_seek_keeps_play_state(self, clock, scheduler):
        clock.load(make_timeline(2))
        clock.play()
        clock.seek(1000)
        assert clock.is_playing
        scheduler.advance(50)
        # Delta is measured from the seek, not the previous frame
        assert clock.current_time_ms == pytest.approx(1050)

    def test_seek_out_of_ended(self, clock, scheduler):
        clock.load(make_timeline(1))
        clock.play()
        scheduler.run(step_ms=400)
        assert clock.state is ClockState.ENDED
        clock.seek(200)
        assert clock.state is ClockState.PAUSED
        clock.seek(1000)
        assert clock.state is ClockState.PAUSED

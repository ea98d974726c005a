"""
Tests for the sampler -> encoder FrameQueue.
"""

import queue
import threading

import pytest

from scenecast.capture.frame_queue import FrameQueue
from scenecast.core.models import CaptureJob
from scenecast.exceptions import CaptureError


def job(i):
    return CaptureJob(frame_index=i, visual_state=None, content_signature=str(i))


def test_fifo_order():
    q = FrameQueue()
    for i in range(5):
        q.put(job(i))
    q.close()
    assert [j.frame_index for j in q] == [0, 1, 2, 3, 4]


def test_get_after_close_and_drain_returns_none():
    q = FrameQueue()
    q.put(job(0))
    q.close()
    assert q.get().frame_index == 0
    assert q.get() is None
    # Sentinel stays for further consumers
    assert q.get() is None


def test_get_timeout_raises_empty():
    q = FrameQueue()
    with pytest.raises(queue.Empty):
        q.get(timeout=0.01)


def test_put_after_close_rejected():
    q = FrameQueue()
    q.close()
    q.close()
    with pytest.raises(CaptureError):
        q.put(job(0))


def test_len_and_put_count():
    q = FrameQueue()
    q.put(job(0))
    q.put(job(1))
    q.close()
    assert len(q) == 2
    q.get()
    assert len(q) == 1
    assert q.put_count == 2
    assert q.closed


def test_consumer_thread_sees_everything():
    """A concurrent consumer drains all jobs put before close, in order."""
    q = FrameQueue()
    seen = []
    consumer = threading.Thread(target=lambda: seen.extend(j.frame_index for j in q))
    consumer.start()
    for i in range(200):
        q.put(job(i))
    q.close()
    consumer.join(timeout=5)
    assert not consumer.is_alive()
    assert seen == list(range(200))

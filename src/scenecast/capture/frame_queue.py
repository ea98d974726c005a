"""
Frame Queue

FIFO hand-off between the real-time sampler and the frame encoder.
put() never blocks; get() blocks until a job arrives or the producer has
closed the queue. close() enqueues an explicit end-of-stream sentinel, so
consumers drain everything that was put before it and then stop.
"""

import queue
import threading
from collections import deque
from typing import Deque, Iterator, Optional, Union

from ..core.models import CaptureJob
from ..exceptions import CaptureError

_END_OF_STREAM = object()


class FrameQueue:
    def __init__(self):
        self._items: Deque[Union[CaptureJob, object]] = deque()
        self._cond = threading.Condition()
        self._closed = False
        self._put_count = 0

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def put_count(self) -> int:
        """Jobs ever enqueued."""
        return self._put_count

    def __len__(self) -> int:
        with self._cond:
            return sum(1 for item in self._items if item is not _END_OF_STREAM)

    def put(self, job: CaptureJob) -> None:
        with self._cond:
            if self._closed:
                raise CaptureError("Frame queue is closed")
            self._items.append(job)
            self._put_count += 1
            self._cond.notify()

    def close(self) -> None:
        """Mark the producer finished. Idempotent."""
        with self._cond:
            if self._closed:
                return
            self._closed = True
            self._items.append(_END_OF_STREAM)
            self._cond.notify_all()

    def get(self, timeout: Optional[float] = None) -> Optional[CaptureJob]:
        """
        Next job in FIFO order, or None once closed and drained.

        Raises:
            queue.Empty: if `timeout` elapses first
        """
        with self._cond:
            if not self._cond.wait_for(lambda: bool(self._items), timeout=timeout):
                raise queue.Empty
            item = self._items.popleft()
            if item is _END_OF_STREAM:
                # Leave the sentinel for any other consumer
                self._items.appendleft(item)
                return None
            return item

    def __iter__(self) -> Iterator[CaptureJob]:
        while True:
            job = self.get()
            if job is None:
                return
            yield job

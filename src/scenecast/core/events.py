"""
Minimal synchronous event emitter.

Listeners run on the emitting thread in registration order. A failing
listener is logged and does not stop the others or the emitter.
"""

import threading
from typing import Any, Callable, Dict, List

from ..logger import logger

Listener = Callable[..., None]


class EventEmitter:
    def __init__(self):
        self._listeners: Dict[str, List[Listener]] = {}
        self._lock = threading.Lock()

    def on(self, event: str, listener: Listener) -> Listener:
        with self._lock:
            self._listeners.setdefault(event, []).append(listener)
        return listener

    def off(self, event: str, listener: Listener) -> None:
        with self._lock:
            listeners = self._listeners.get(event, [])
            if listener in listeners:
                listeners.remove(listener)

    def once(self, event: str, listener: Listener) -> Listener:
        def wrapper(*args: Any) -> None:
            self.off(event, wrapper)
            listener(*args)
        return self.on(event, wrapper)

    def listener_count(self, event: str) -> int:
        with self._lock:
            return len(self._listeners.get(event, []))

    def emit(self, event: str, *args: Any) -> int:
        """Call every listener of `event`. Returns how many were called."""
        with self._lock:
            listeners = list(self._listeners.get(event, []))
        for listener in listeners:
            try:
                listener(*args)
            except Exception as e:
                logger.error(f"Listener for '{event}' failed: {e}")
        return len(listeners)

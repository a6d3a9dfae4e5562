"""Millisecond clock that never runs backwards within the process."""

import threading
import time

_lock = threading.Lock()
_last_ms = 0


def now_ms() -> int:
    """Return wall-clock milliseconds, clamped to be non-decreasing."""
    global _last_ms
    current = int(time.time() * 1000)
    with _lock:
        if current < _last_ms:
            current = _last_ms
        _last_ms = current
    return current

"""
Sliding-window rate limiting per client host.

Suggestions are fetched on every keystroke, so each (client, route) key keeps
only the timestamps inside its window, and a key whose window has gone quiet
is evicted. Keys are kept least recently used first, which makes eviction a
walk from the front that stops at the first live window.
"""
import time
from collections import OrderedDict, deque
from typing import Deque, Tuple

from fastapi import HTTPException

_clock = time.monotonic

# "client:key" -> (window seconds, request timestamps), least recently used first
_windows: "OrderedDict[str, Tuple[float, Deque[float]]]" = OrderedDict()


def _evict_idle(now: float) -> None:
    while _windows:
        window_seconds, stamps = next(iter(_windows.values()))
        if stamps and stamps[-1] > now - window_seconds:
            break
        _windows.popitem(last=False)


def check_rate_limit(
    client_id: str,
    key: str,
    max_per_window: int,
    window_seconds: float = 60,
) -> None:
    """Raise 429 once client_id has made max_per_window calls to key in the last window_seconds."""
    now = _clock()
    _evict_idle(now)
    k = f"{client_id}:{key}"
    _, stamps = _windows.pop(k, (window_seconds, deque()))
    cutoff = now - window_seconds
    while stamps and stamps[0] <= cutoff:
        stamps.popleft()
    limited = len(stamps) >= max_per_window
    if not limited:
        stamps.append(now)
    _windows[k] = (window_seconds, stamps)
    if limited:
        raise HTTPException(
            status_code=429,
            detail="Too many requests. Please try again in a minute.",
        )


def reset() -> None:
    _windows.clear()

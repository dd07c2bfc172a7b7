"""Splits an audio timeline into fixed-length chunks."""

import math
from typing import List

from .models import ChunkRange

DEFAULT_WINDOW_SECONDS = 30

def segment(duration_seconds: float, window_seconds: float = DEFAULT_WINDOW_SECONDS) -> List[ChunkRange]:
    """
    Partitions [0, duration_seconds] into consecutive windows.

    Args:
        duration_seconds: Total audio duration in seconds.
        window_seconds: Length of every chunk except possibly the last.

    Returns:
        ceil(duration / window) ChunkRange objects, 1-indexed. The last one
        ends exactly at duration_seconds. Empty when the duration is 0.

    Raises:
        ValueError: If the window is not positive or the duration is negative
                    or not finite.
    """
    if not window_seconds > 0 or math.isinf(window_seconds):
        raise ValueError(f"Window size must be a positive number of seconds, got {window_seconds}")
    if not duration_seconds >= 0 or math.isinf(duration_seconds):
        raise ValueError(f"Duration must be a finite, non-negative number of seconds, got {duration_seconds}")

    count = math.ceil(duration_seconds / window_seconds)
    chunks = []
    for i in range(count):
        start = i * window_seconds
        if start >= duration_seconds: # float division overshoot
            break
        end = min((i + 1) * window_seconds, duration_seconds)
        chunks.append(ChunkRange(index=i + 1, start_seconds=start, end_seconds=end))
    return chunks

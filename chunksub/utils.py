"""Utility functions for ChunkSub."""

import math
import os
import logging
from typing import Optional
from .exceptions import FileSystemError

logger = logging.getLogger(__name__)

UNKNOWN_REMAINING_TIME = "--:--"

def ensure_dir_exists(dir_path: str) -> None:
    """
    Ensures that a directory exists. Creates it if it doesn't.

    Args:
        dir_path: The path to the directory.

    Raises:
        FileSystemError: If the directory cannot be created due to permissions
                         or if the path exists but is not a directory.
    """
    if not dir_path:
        raise ValueError("Directory path cannot be empty.")
    try:
        if not os.path.exists(dir_path):
            os.makedirs(dir_path)
            logger.info(f"Created directory: {dir_path}")
        elif not os.path.isdir(dir_path):
            raise FileSystemError(f"Path exists but is not a directory: {dir_path}")
    except OSError as e:
        logger.error(f"Error creating or accessing directory {dir_path}: {e}", exc_info=True)
        raise FileSystemError(f"Could not create or access directory {dir_path}: {e}") from e

def format_remaining_time(seconds: float) -> str:
    """
    Formats an estimated remaining time as MM:SS.

    Args:
        seconds: Remaining time in seconds.

    Returns:
        Formatted time string, or '--:--' when the estimate is NaN,
        infinite or negative.
    """
    if seconds is None or math.isnan(seconds) or math.isinf(seconds) or seconds < 0:
        return UNKNOWN_REMAINING_TIME
    minutes = int(seconds // 60)
    remaining_seconds = int(math.floor(seconds % 60 + 0.5))
    if remaining_seconds == 60: # 59.5 rounds up into the next minute
        minutes += 1
        remaining_seconds = 0
    return f"{minutes:02d}:{remaining_seconds:02d}"

def caption_file_name(source_name: Optional[str], extension: str = "vtt") -> str:
    """
    Builds the download name for a caption file from the source file name.

    'movie.final.mp4' -> 'movie.final.vtt'. Falls back to 'video' as the
    base name when no source name is known.
    """
    base_name = os.path.splitext(os.path.basename(source_name or ""))[0] or "video"
    return f"{base_name}.{extension}"

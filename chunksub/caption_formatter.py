"""Handles formatting transcribed chunks into WebVTT caption tracks."""

import logging
from dataclasses import dataclass
from typing import Iterable, List

from .models import Cue
from .exceptions import FormattingError

logger = logging.getLogger(__name__)

VTT_HEADER = "WEBVTT"
VTT_MIME_TYPE = "text/vtt"

def format_time_vtt(seconds: float) -> str:
    """
    Formats seconds into VTT time format HH:MM:SS.mmm.

    Args:
        seconds: Time in seconds from the start of the media.

    Returns:
        Formatted time string. Hours are not wrapped at 24.
    """
    if seconds < 0:
        seconds = 0.0 # Ensure non-negative time
    milliseconds = round(seconds * 1000)
    hrs = milliseconds // 3600000
    milliseconds %= 3600000
    mins = milliseconds // 60000
    milliseconds %= 60000
    secs = milliseconds // 1000
    milliseconds %= 1000
    return f"{hrs:02d}:{mins:02d}:{secs:02d}.{milliseconds:03d}"

def to_document_text(cues: Iterable[Cue]) -> str:
    """Renders the WEBVTT header followed by one timestamp line and text block per cue."""
    blocks = [f"{VTT_HEADER}\n\n"]
    for cue in cues:
        blocks.append(f"{format_time_vtt(cue.start_time)} --> {format_time_vtt(cue.end_time)}\n{cue.text}\n\n")
    return "".join(blocks)

class CaptionDocument:
    """Ordered, non-overlapping cues collected while a run progresses."""

    def __init__(self):
        self._cues: List[Cue] = []

    def add_cue(self, start_time: float, end_time: float, text: str) -> Cue:
        """
        Appends a cue after the last one.

        Raises:
            FormattingError: If the cue is empty, has no duration, or starts
                             before the previous cue ends.
        """
        if not text:
            raise FormattingError("Cue text must not be empty.")
        if end_time <= start_time:
            raise FormattingError(f"Cue end ({end_time}) must be after its start ({start_time}).")
        if self._cues and start_time < self._cues[-1].end_time:
            raise FormattingError(
                f"Cue starting at {start_time} overlaps previous cue ending at {self._cues[-1].end_time}."
            )
        cue = Cue(start_time=start_time, end_time=end_time, text=text)
        self._cues.append(cue)
        return cue

    @property
    def cues(self) -> List[Cue]:
        return list(self._cues)

    @property
    def is_empty(self) -> bool:
        return not self._cues

    def clear(self) -> None:
        self._cues.clear()

    def __len__(self) -> int:
        return len(self._cues)

    def to_document_text(self) -> str:
        return to_document_text(self._cues)

@dataclass(frozen=True)
class CaptionTrack:
    """What a player needs to attach the captions as a live subtitle track."""
    content: str
    label: str
    srclang: str
    kind: str = "subtitles"
    mime_type: str = VTT_MIME_TYPE
    default: bool = True

def write_vtt(document_text: str, output_path: str) -> None:
    """
    Writes a caption document to disk as UTF-8.

    Raises:
        FormattingError: If the file cannot be written.
    """
    try:
        with open(output_path, 'w', encoding='utf-8') as f:
            f.write(document_text)
        logger.info(f"Wrote caption file: {output_path}")
    except IOError as e:
        logger.error(f"Failed to write VTT file to {output_path}: {e}", exc_info=True)
        raise FormattingError(f"Could not write VTT file: {e}") from e

"""Data models for ChunkSub."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

import numpy as np

@dataclass
class SampleBuffer:
    """Decoded audio held in memory, one row of float samples per channel."""
    sample_rate: int
    channels: np.ndarray # shape (channel_count, frames), float32

    def __post_init__(self):
        if self.sample_rate <= 0:
            raise ValueError(f"Sample rate must be positive, got {self.sample_rate}")
        if self.channels.ndim != 2 or self.channels.shape[0] < 1:
            raise ValueError("Sample buffer needs a (channels, frames) array with at least one channel")

    @property
    def channel_count(self) -> int:
        return int(self.channels.shape[0])

    @property
    def frame_count(self) -> int:
        return int(self.channels.shape[1])

    @property
    def duration_seconds(self) -> float:
        return self.frame_count / self.sample_rate

@dataclass(frozen=True)
class ChunkRange:
    """A 1-indexed window [start_seconds, end_seconds) of the audio timeline."""
    index: int
    start_seconds: float
    end_seconds: float

    @property
    def duration_seconds(self) -> float:
        return self.end_seconds - self.start_seconds

@dataclass(frozen=True)
class ChunkAudioPayload:
    """One chunk rendered as a WAV file and encoded for transport."""
    sample_rate: int
    channel_count: int
    encoded_bytes: str
    mime_type: str = "audio/wav"

@dataclass
class TranscriptionResult:
    """Text returned for one chunk. Empty text means no caption for the interval."""
    chunk: ChunkRange
    text: str

@dataclass(frozen=True)
class Cue:
    """Represents a single timed caption."""
    start_time: float
    end_time: float
    text: str

class RunStatus(Enum):
    """States of a generation run. The last four are terminal."""
    IDLE = "idle"
    LOADED = "loaded"
    RUNNING = "running"
    COMPLETED = "completed"
    EMPTY = "empty"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (RunStatus.COMPLETED, RunStatus.EMPTY, RunStatus.CANCELLED, RunStatus.FAILED)

@dataclass
class GenerationRunState:
    """Bookkeeping for the single active run of a session."""
    status: RunStatus = RunStatus.IDLE
    start_timestamp: Optional[float] = None
    current_chunk_index: int = 0
    total_chunks: int = 0

    def reset(self) -> None:
        self.status = RunStatus.IDLE
        self.start_timestamp = None
        self.current_chunk_index = 0
        self.total_chunks = 0

@dataclass
class RunOutcome:
    """Terminal result of a run: its status, the cues kept, and a display message."""
    status: RunStatus
    cues: List[Cue] = field(default_factory=list)
    message: str = ""
    chunks_processed: int = 0
    error: Optional[Exception] = None

    @property
    def has_captions(self) -> bool:
        return bool(self.cues)

"""Pytest configuration and fixtures."""

from __future__ import annotations

from typing import Callable, Dict, List, Optional, Union

import numpy as np
import pytest

from chunksub.models import SampleBuffer
from chunksub.transcriber import Transcriber


class FakeClock:
    """Manually advanced replacement for time.monotonic."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeTranscriber(Transcriber):
    """Scripted provider that records every call.

    ``responses`` maps a 1-based call number to the text to return or an
    exception to raise; calls without an entry return ``default_text``.
    ``on_call`` runs after each call is recorded, before it returns.
    """

    def __init__(
        self,
        default_text: str = "hello",
        responses: Optional[Dict[int, Union[str, Exception]]] = None,
        on_call: Optional[Callable[[int], None]] = None,
    ) -> None:
        self.default_text = default_text
        self.responses = responses or {}
        self.on_call = on_call
        self.calls: List[dict] = []

    def transcribe(self, audio_text: str, mime_type: str, instruction: str) -> str:
        self.calls.append({"audio_text": audio_text, "mime_type": mime_type, "instruction": instruction})
        number = len(self.calls)
        if self.on_call is not None:
            self.on_call(number)
        response = self.responses.get(number, self.default_text)
        if isinstance(response, Exception):
            raise response
        return response


def make_buffer(seconds: float, sample_rate: int = 100, channel_count: int = 1, value: float = 0.0) -> SampleBuffer:
    """Build a constant-valued buffer; a low sample rate keeps payloads small."""
    frames = int(round(seconds * sample_rate))
    channels = np.full((channel_count, frames), value, dtype=np.float32)
    return SampleBuffer(sample_rate=sample_rate, channels=channels)


class FakeDecoder:
    """Stands in for AudioDecoder without invoking ffmpeg."""

    def __init__(self, buffer: Optional[SampleBuffer] = None, error: Optional[Exception] = None) -> None:
        self.buffer = buffer
        self.error = error
        self.decoded: List[str] = []

    def _result(self, source: str) -> SampleBuffer:
        self.decoded.append(source)
        if self.error is not None:
            raise self.error
        return self.buffer

    def decode(self, file_bytes: bytes, suffix: str = "") -> SampleBuffer:
        return self._result(f"<bytes{suffix}>")

    def decode_file(self, media_filepath: str) -> SampleBuffer:
        return self._result(media_filepath)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def buffer_65s() -> SampleBuffer:
    return make_buffer(65.0)

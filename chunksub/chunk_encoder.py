"""Renders audio chunks as 16-bit PCM WAV payloads for the transcription provider."""

import base64
import logging
import math
import struct

import numpy as np

from .models import SampleBuffer, ChunkRange, ChunkAudioPayload

logger = logging.getLogger(__name__)

WAV_MIME_TYPE = "audio/wav"
WAV_HEADER_SIZE = 44
BITS_PER_SAMPLE = 16
# Slice size for the base64 pass. Must stay a multiple of 3 so that the
# encoded slices concatenate into the same text as a single-shot encoding.
ENCODE_CHUNK_SIZE = 3 * 0x2000

def slice_frames(buffer: SampleBuffer, chunk: ChunkRange) -> np.ndarray:
    """
    Cuts the frames belonging to a chunk out of the sample buffer.

    Frames past the end of the buffer are zero-filled so the slice always
    holds ceil(duration * sample_rate) frames.

    Returns:
        A (channels, frames) float32 array.
    """
    rate = buffer.sample_rate
    start_frame = math.floor(chunk.start_seconds * rate)
    frame_count = math.ceil((chunk.end_seconds - chunk.start_seconds) * rate)

    samples = np.zeros((buffer.channel_count, frame_count), dtype=np.float32)
    available = buffer.channels[:, start_frame:start_frame + frame_count]
    samples[:, :available.shape[1]] = available
    return samples

def quantize(samples: np.ndarray) -> np.ndarray:
    """Converts float samples to int16: clamp to [-1, 1], then scale by 32768 below zero and 32767 otherwise."""
    clipped = np.clip(np.asarray(samples, dtype=np.float64), -1.0, 1.0)
    scaled = np.where(clipped < 0, clipped * 32768.0, clipped * 32767.0)
    return np.trunc(scaled).astype("<i2")

def render_wav(samples: np.ndarray, sample_rate: int) -> bytes:
    """
    Writes a canonical 44-byte RIFF/WAVE header followed by interleaved
    little-endian 16-bit frames.

    Args:
        samples: A (channels, frames) array of float samples.
        sample_rate: Samples per second per channel.

    Returns:
        The complete WAV file as bytes.
    """
    channel_count, frame_count = samples.shape
    block_align = channel_count * BITS_PER_SAMPLE // 8
    data_size = frame_count * block_align

    header = struct.pack(
        "<4sI4s4sIHHIIHH4sI",
        b"RIFF",
        WAV_HEADER_SIZE - 8 + data_size,
        b"WAVE",
        b"fmt ",
        16,               # fmt chunk size
        1,                # PCM
        channel_count,
        sample_rate,
        sample_rate * block_align,
        block_align,
        BITS_PER_SAMPLE,
        b"data",
        data_size,
    )
    # Transposing to (frames, channels) gives the interleaved byte order.
    frames = quantize(samples).T
    return header + np.ascontiguousarray(frames).tobytes()

def to_transport_text(data: bytes, chunk_size: int = ENCODE_CHUNK_SIZE) -> str:
    """Base64-encodes data one fixed-size slice at a time."""
    if chunk_size <= 0 or chunk_size % 3:
        raise ValueError(f"Chunk size must be a positive multiple of 3, got {chunk_size}")
    parts = []
    view = memoryview(data)
    for offset in range(0, len(data), chunk_size):
        parts.append(base64.b64encode(view[offset:offset + chunk_size]).decode("ascii"))
    return "".join(parts)

def encode(buffer: SampleBuffer, chunk: ChunkRange) -> ChunkAudioPayload:
    """
    Renders one chunk of the sample buffer into a transport-ready WAV payload.

    Args:
        buffer: The decoded audio of the whole file.
        chunk: The time range to render.

    Returns:
        A ChunkAudioPayload whose encoded_bytes is the base64 text of the WAV.
    """
    samples = slice_frames(buffer, chunk)
    wav_bytes = render_wav(samples, buffer.sample_rate)
    logger.debug(
        f"Encoded chunk {chunk.index} ({chunk.start_seconds:.2f}s-{chunk.end_seconds:.2f}s): "
        f"{samples.shape[1]} frames, {len(wav_bytes)} bytes"
    )
    return ChunkAudioPayload(
        sample_rate=buffer.sample_rate,
        channel_count=buffer.channel_count,
        encoded_bytes=to_transport_text(wav_bytes),
        mime_type=WAV_MIME_TYPE,
    )

"""Decodes the audio track of video/audio files into memory using ffmpeg."""

import ffmpeg
import os
import logging
import tempfile
import numpy as np
from typing import Optional, Tuple

from .exceptions import DecodeError
from .models import SampleBuffer
from .utils import ensure_dir_exists

logger = logging.getLogger(__name__)

class AudioDecoder:
    """Turns a media file into a SampleBuffer at its native rate and channel layout."""

    def __init__(self, ffmpeg_path: Optional[str] = None, ffprobe_path: Optional[str] = None, temp_dir: Optional[str] = None):
        """
        Initializes the AudioDecoder.

        Args:
            ffmpeg_path: Optional path to the ffmpeg executable.
                         If None, assumes ffmpeg is in the system PATH.
            ffprobe_path: Optional path to the ffprobe executable.
            temp_dir: Directory used to spool uploaded bytes to disk.
                      If None, the system temp directory is used.
        """
        self.ffmpeg_cmd = ffmpeg_path or 'ffmpeg'
        self.ffprobe_cmd = ffprobe_path or 'ffprobe'
        self.temp_dir = temp_dir
        logger.info(f"Using ffmpeg command: {self.ffmpeg_cmd}")

    def decode(self, file_bytes: bytes, suffix: str = "") -> SampleBuffer:
        """
        Decodes an in-memory media file.

        The bytes are written to a temporary file first, since containers such
        as MP4 keep their index at the end and cannot be read from a pipe.

        Args:
            file_bytes: Raw content of the uploaded file.
            suffix: Optional file extension hint (e.g. '.mp4').

        Returns:
            The decoded SampleBuffer.

        Raises:
            DecodeError: If the bytes hold no decodable audio track.
        """
        if not file_bytes:
            raise DecodeError("Input file is empty.")
        if self.temp_dir:
            ensure_dir_exists(self.temp_dir)

        fd, temp_path = tempfile.mkstemp(prefix="chunksub_", suffix=suffix, dir=self.temp_dir)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(file_bytes)
            return self.decode_file(temp_path)
        finally:
            try:
                os.remove(temp_path)
            except OSError as e:
                logger.warning(f"Could not remove temporary file {temp_path}: {e}")

    def decode_file(self, media_filepath: str) -> SampleBuffer:
        """
        Decodes the first audio stream of a media file.

        Args:
            media_filepath: Path to the input video or audio file.

        Returns:
            SampleBuffer with float32 samples in [-1, 1].

        Raises:
            FileNotFoundError: If the input file does not exist.
            DecodeError: If ffprobe/ffmpeg fail or no audio stream is present.
        """
        logger.info(f"Starting audio decode for: {media_filepath}")
        if not os.path.exists(media_filepath):
            raise FileNotFoundError(f"Input media file not found: {media_filepath}")

        sample_rate, channel_count = self._probe_audio_stream(media_filepath)
        logger.debug(f"Audio stream: {sample_rate} Hz, {channel_count} channel(s)")

        try:
            # f32le keeps full precision and needs no header parsing;
            # ar/ac pin the output layout to what the probe reported.
            raw, _ = (
                ffmpeg
                .input(media_filepath)
                .output('pipe:', format='f32le', acodec='pcm_f32le', ac=channel_count, ar=sample_rate)
                .run(cmd=self.ffmpeg_cmd, capture_stdout=True, capture_stderr=True)
            )
        except ffmpeg.Error as e:
            stderr_output = e.stderr.decode('utf-8', errors='replace') if e.stderr else "No stderr output"
            logger.error(f"ffmpeg stderr: {stderr_output}")
            raise DecodeError(f"ffmpeg failed to decode audio: {stderr_output}") from e
        except OSError as e:
            logger.error(f"Could not run ffmpeg ({self.ffmpeg_cmd}): {e}")
            raise DecodeError(f"Could not run ffmpeg: {e}") from e

        samples = np.frombuffer(raw, dtype='<f4')
        usable = len(samples) - len(samples) % channel_count
        if usable == 0:
            raise DecodeError(f"No audio samples decoded from {media_filepath}")

        # Interleaved frames -> one row per channel
        channels = samples[:usable].reshape(-1, channel_count).T.astype(np.float32)
        buffer = SampleBuffer(sample_rate=sample_rate, channels=channels)
        logger.info(f"Decoded {buffer.duration_seconds:.2f}s of audio ({buffer.frame_count} frames)")
        return buffer

    def _probe_audio_stream(self, media_filepath: str) -> Tuple[int, int]:
        """Returns (sample_rate, channel_count) of the first audio stream."""
        try:
            info = ffmpeg.probe(media_filepath, cmd=self.ffprobe_cmd)
        except ffmpeg.Error as e:
            stderr_output = e.stderr.decode('utf-8', errors='replace') if e.stderr else "No stderr output"
            logger.error(f"ffprobe failed for {media_filepath}: {stderr_output}")
            raise DecodeError(f"Unsupported or unreadable media file: {stderr_output}") from e
        except OSError as e:
            logger.error(f"Could not run ffprobe ({self.ffprobe_cmd}): {e}")
            raise DecodeError(f"Could not run ffprobe: {e}") from e

        audio_streams = [s for s in info.get('streams', []) if s.get('codec_type') == 'audio']
        if not audio_streams:
            raise DecodeError(f"No audio track found in {media_filepath}")

        stream = audio_streams[0]
        try:
            sample_rate = int(stream['sample_rate'])
            channel_count = int(stream['channels'])
        except (KeyError, TypeError, ValueError) as e:
            raise DecodeError(f"Audio stream in {media_filepath} has no usable sample rate/channel layout") from e
        if sample_rate <= 0 or channel_count < 1:
            raise DecodeError(f"Invalid audio stream parameters: {sample_rate} Hz, {channel_count} channel(s)")
        return sample_rate, channel_count

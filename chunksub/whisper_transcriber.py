"""Local speech-to-text provider using OpenAI's Whisper model."""

import base64
import binascii
import logging
import os
import tempfile
from typing import Optional

import torch
import whisper

from .exceptions import RemoteCallError
from .transcriber import Transcriber

logger = logging.getLogger(__name__)

class WhisperTranscriber(Transcriber):
    """Implements chunk transcription with a locally loaded Whisper model."""

    def __init__(
        self,
        model_name: str = "medium",
        device: str = "cuda",
        fp16: bool = True,
        language: Optional[str] = None,
        temp_dir: Optional[str] = None,
    ):
        """
        Initializes the WhisperTranscriber.

        Args:
            model_name: The name of the Whisper model to use (e.g., "base", "medium").
            device: The device to run the model on ("cuda" or "cpu").
            fp16: Whether to use float16 precision (faster on compatible GPUs).
            language: Language code to decode in. None lets Whisper detect it.
            temp_dir: Directory for the per-chunk WAV files Whisper reads.

        Raises:
            ValueError: If the specified device is invalid.
            RemoteCallError: If the model fails to load.
        """
        self.model_name = model_name
        self.device = device
        self.fp16 = fp16
        self.language = language
        self.temp_dir = temp_dir

        if self.device == "cuda" and not torch.cuda.is_available():
            logger.warning("CUDA device requested but not available. Falling back to CPU.")
            self.device = "cpu"
        elif self.device not in ["cuda", "cpu"]:
            raise ValueError(f"Invalid device specified: {self.device}. Choose 'cuda' or 'cpu'.")

        logger.info(f"Initializing WhisperTranscriber with model '{self.model_name}' on device '{self.device}' (FP16: {self.fp16})")
        try:
            self.model = whisper.load_model(self.model_name, device=self.device)
            logger.info(f"Whisper model '{self.model_name}' loaded successfully.")
        except Exception as e:
            logger.error(f"Failed to load Whisper model '{self.model_name}': {e}", exc_info=True)
            raise RemoteCallError(f"Failed to load Whisper model '{self.model_name}': {e}") from e

    def transcribe(self, audio_text: str, mime_type: str, instruction: str) -> str:
        """
        Transcribes one base64-encoded WAV chunk.

        Whisper takes a language code rather than a free-text prompt, so the
        instruction is only logged.
        """
        logger.debug(f"Whisper chunk transcription ({mime_type}); instruction ignored: {instruction!r}")
        try:
            wav_bytes = base64.b64decode(audio_text, validate=True)
        except (binascii.Error, ValueError) as e:
            raise RemoteCallError(f"Chunk payload is not valid base64: {e}") from e

        fd, chunk_path = tempfile.mkstemp(prefix="chunksub_chunk_", suffix=".wav", dir=self.temp_dir)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(wav_bytes)
            result = self.model.transcribe(
                chunk_path,
                language=self.language,
                fp16=self.fp16 if self.device == "cuda" else False, # FP16 only works on CUDA
                verbose=False,
            )
        except Exception as e:
            logger.error(f"Error during Whisper transcription: {e}", exc_info=True)
            raise RemoteCallError(f"Whisper transcription failed: {e}") from e
        finally:
            try:
                os.remove(chunk_path)
            except OSError:
                logger.warning(f"Could not clean up chunk file: {chunk_path}")

        segments = result.get('segments') or []
        return " ".join(seg['text'].strip() for seg in segments if seg.get('text'))

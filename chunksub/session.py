"""Holds the state of one loaded video: upload, decoded audio, run and captions."""

import logging
import os
from typing import Callable, Optional

from .audio_decoder import AudioDecoder
from .cancellation import CancellationToken
from .caption_formatter import CaptionDocument, CaptionTrack, write_vtt
from .exceptions import ChunkSubError, DecodeError, EmptyResultError
from .models import SampleBuffer, GenerationRunState, RunOutcome, RunStatus
from .orchestrator import TranscriptionOrchestrator
from .transcriber import Transcriber, default_instruction
from .utils import caption_file_name, ensure_dir_exists

logger = logging.getLogger(__name__)

STATUS_MESSAGES = {
    RunStatus.IDLE: "",
    RunStatus.LOADED: "Video loaded. Start caption generation when ready.",
}

class CaptionSession:
    """
    Presentation-independent controller for a single video.

    Only one run can be active at a time. Loading a new file or resetting
    first forces an active run into CANCELLED.
    """

    def __init__(
        self,
        transcriber: Transcriber,
        config: Optional[dict] = None,
        decoder_factory: Optional[Callable[[], AudioDecoder]] = None,
        status_callback: Optional[Callable[[str], None]] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.config = config or {}
        self.transcriber = transcriber
        self.status_callback = status_callback
        self._decoder_factory = decoder_factory or (lambda: AudioDecoder(
            ffmpeg_path=self.config.get('ffmpeg_path'),
            ffprobe_path=self.config.get('ffprobe_path'),
            temp_dir=self.config.get('temp_dir'),
        ))
        self._decoder: Optional[AudioDecoder] = None

        self.language = self.config.get('language', 'ja')
        orchestrator_kwargs = {}
        if clock is not None:
            orchestrator_kwargs['clock'] = clock
        self.orchestrator = TranscriptionOrchestrator(
            transcriber,
            window_seconds=self.config.get('chunk_seconds', 30),
            instruction=self.config.get('instruction') or default_instruction(self.language),
            **orchestrator_kwargs,
        )

        self.token = CancellationToken()
        self.run_state = GenerationRunState()
        self.status = ""
        self.file_name: Optional[str] = None
        self._file_bytes: Optional[bytes] = None
        self._file_path: Optional[str] = None
        self._buffer: Optional[SampleBuffer] = None
        self.document: Optional[CaptionDocument] = None
        self.last_outcome: Optional[RunOutcome] = None
        self._generation = 0

    def _set_status(self, message: str) -> None:
        self.status = message
        if self.status_callback is not None:
            self.status_callback(message)

    @property
    def decoder(self) -> AudioDecoder:
        """The decoding context, created on first use and kept for the session."""
        if self._decoder is None:
            self._decoder = self._decoder_factory()
        return self._decoder

    @property
    def is_running(self) -> bool:
        return self.run_state.status == RunStatus.RUNNING

    @property
    def has_upload(self) -> bool:
        return self._file_bytes is not None or self._file_path is not None

    def load(self, path: str) -> None:
        """Registers a media file on disk as the current upload."""
        if not os.path.isfile(path):
            raise FileNotFoundError(f"Input media file not found: {path}")
        self.reset()
        self._file_path = path
        self.file_name = os.path.basename(path)
        self._loaded()

    def load_bytes(self, data: bytes, file_name: str) -> None:
        """Registers in-memory file content (e.g. an upload) as the current upload."""
        self.reset()
        self._file_bytes = data
        self.file_name = file_name
        self._loaded()

    def _loaded(self) -> None:
        self.run_state.status = RunStatus.LOADED
        logger.info(f"Loaded media: {self.file_name}")
        self._set_status(STATUS_MESSAGES[RunStatus.LOADED])

    def _decode(self, generation: int) -> SampleBuffer:
        if self._buffer is not None:
            return self._buffer
        file_path, file_bytes = self._file_path, self._file_bytes
        self._set_status("Decoding audio data...")
        if file_path is not None:
            buffer = self.decoder.decode_file(file_path)
        else:
            suffix = os.path.splitext(self.file_name or "")[1]
            buffer = self.decoder.decode(file_bytes, suffix=suffix)
        if generation == self._generation:
            self._buffer = buffer
        return buffer

    def _run_status_callback(self, generation: int) -> Callable[[str], None]:
        def report(message: str) -> None:
            if generation == self._generation:
                self._set_status(message)
        return report

    def generate(self) -> RunOutcome:
        """
        Runs caption generation for the loaded file.

        Every call gets its own token and run state. If the session is reset
        or a new file is loaded while the run is in flight, the run is
        cancelled and its outcome never reaches the session.

        Returns:
            The terminal RunOutcome. Decode and provider failures are reported
            as FAILED outcomes rather than raised.

        Raises:
            ChunkSubError: If no file is loaded or a run is already active.
        """
        if not self.has_upload:
            raise ChunkSubError("No video file loaded.")
        if self.is_running:
            raise ChunkSubError("A caption generation run is already active.")

        generation = self._generation
        token = CancellationToken()
        state = GenerationRunState(status=RunStatus.RUNNING)
        self.token = token
        self.run_state = state
        self.document = None
        self._set_status("Starting caption generation...")

        try:
            buffer = self._decode(generation)
        except (DecodeError, FileNotFoundError) as e:
            logger.error(f"Could not decode {self.file_name}: {e}")
            state.status = RunStatus.FAILED
            outcome = RunOutcome(status=RunStatus.FAILED, message="Could not read audio from this file.", error=e)
            if generation == self._generation:
                self._set_status(outcome.message)
                self.last_outcome = outcome
            return outcome

        outcome = self.orchestrator.run(buffer, token, state, status_callback=self._run_status_callback(generation))
        if generation != self._generation:
            # Reset or a new upload happened while this run was in flight.
            logger.info(f"Discarding outcome of superseded run ({outcome.status.value}).")
            return outcome
        if outcome.status in (RunStatus.COMPLETED, RunStatus.CANCELLED) and outcome.has_captions:
            self.document = CaptionDocument()
            for cue in outcome.cues:
                self.document.add_cue(cue.start_time, cue.end_time, cue.text)
        self.last_outcome = outcome
        return outcome

    def cancel(self) -> None:
        """Asks the active run to stop at its next chunk boundary."""
        if not self.is_running:
            return
        self.token.cancel()
        self._set_status("Cancelling...")

    def reset(self) -> None:
        """Cancels any active run and forgets the upload, audio and captions."""
        if self.is_running:
            self.token.cancel()
            logger.info("Active run cancelled by reset.")
        self._generation += 1
        self.token = CancellationToken()
        self.run_state = GenerationRunState()
        self.file_name = None
        self._file_bytes = None
        self._file_path = None
        self._buffer = None
        self.document = None
        self.last_outcome = None
        self._set_status(STATUS_MESSAGES[RunStatus.IDLE])

    def document_text(self) -> str:
        if self.document is None or self.document.is_empty:
            if self.last_outcome is not None and self.last_outcome.status == RunStatus.EMPTY:
                raise EmptyResultError("The last run produced no captions.")
            raise ChunkSubError("No caption file to download.")
        return self.document.to_document_text()

    def caption_track(self) -> CaptionTrack:
        """Descriptor for attaching the finished captions to a player."""
        return CaptionTrack(
            content=self.document_text(),
            label=self.config.get('track_label') or f"{self.language} (AI)",
            srclang=self.language,
        )

    def download_name(self) -> str:
        return caption_file_name(self.file_name)

    def save(self, output_dir: str) -> str:
        """Writes the captions as <base name>.vtt into output_dir and returns the path."""
        text = self.document_text()
        ensure_dir_exists(output_dir)
        output_path = os.path.join(output_dir, self.download_name())
        write_vtt(text, output_path)
        return output_path

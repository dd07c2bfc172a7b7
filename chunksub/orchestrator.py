"""Drives the sequential chunk-by-chunk transcription of a decoded audio buffer."""

import logging
import time
from typing import Callable, Optional

from . import chunk_encoder
from .cancellation import CancellationToken
from .caption_formatter import CaptionDocument
from .exceptions import RemoteCallError
from .models import SampleBuffer, ChunkRange, GenerationRunState, RunOutcome, RunStatus, TranscriptionResult
from .segmenter import segment, DEFAULT_WINDOW_SECONDS
from .transcriber import Transcriber, default_instruction
from .utils import format_remaining_time

logger = logging.getLogger(__name__)

StatusCallback = Callable[[str], None]

def normalize_text(text: Optional[str]) -> str:
    """Trims provider output and folds line breaks into single spaces."""
    if not text:
        return ""
    return text.strip().replace("\r\n", " ").replace("\r", " ").replace("\n", " ")

class TranscriptionOrchestrator:
    """
    Sends every chunk of a SampleBuffer to the transcriber, one at a time,
    and collects the non-empty results into a CaptionDocument.

    A run moves IDLE -> RUNNING -> one of COMPLETED, EMPTY, CANCELLED or
    FAILED. Cancellation is polled at chunk boundaries, including after the
    last chunk; a request already in flight always finishes.
    """

    def __init__(
        self,
        transcriber: Transcriber,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        instruction: Optional[str] = None,
        clock: Callable[[], float] = time.monotonic,
        status_callback: Optional[StatusCallback] = None,
    ):
        """
        Initializes the TranscriptionOrchestrator.

        Args:
            transcriber: The provider used for every chunk.
            window_seconds: Fixed chunk length for the run.
            instruction: Text sent with each chunk. Defaults to a Japanese
                         transcription request.
            clock: Seconds source used for elapsed/remaining estimates.
            status_callback: Receives a human-readable status on every
                             chunk boundary and terminal state.
        """
        self.transcriber = transcriber
        self.window_seconds = window_seconds
        self.instruction = instruction or default_instruction("ja")
        self.clock = clock
        self.status_callback = status_callback

    def _report(self, message: str, callback: Optional[StatusCallback]) -> None:
        logger.info(message)
        if callback is not None:
            callback(message)

    def _progress_message(self, state: GenerationRunState) -> str:
        i, total = state.current_chunk_index, state.total_chunks
        if i <= 1:
            return f"Generating captions... (chunk {i}/{total})"
        elapsed = self.clock() - state.start_timestamp
        average_per_chunk = elapsed / (i - 1)
        remaining_chunks = total - (i - 1)
        etr = format_remaining_time(average_per_chunk * remaining_chunks)
        return f"Generating captions... (chunk {i}/{total}) - about {etr} remaining"

    def _transcribe_chunk(self, buffer: SampleBuffer, chunk: ChunkRange) -> TranscriptionResult:
        payload = chunk_encoder.encode(buffer, chunk)
        try:
            text = self.transcriber.transcribe(payload.encoded_bytes, payload.mime_type, self.instruction)
        except RemoteCallError:
            raise
        except Exception as e:
            raise RemoteCallError(f"Transcription provider failed on chunk {chunk.index}: {e}") from e
        return TranscriptionResult(chunk=chunk, text=normalize_text(text))

    def run(self, buffer: SampleBuffer, token: CancellationToken, state: GenerationRunState,
            status_callback: Optional[StatusCallback] = None) -> RunOutcome:
        """
        Executes one generation run over the whole buffer.

        Each call collects its cues in its own CaptionDocument, so a run that
        is still finishing never touches the cues of a later one.

        Args:
            buffer: The decoded audio.
            token: Cancellation flag, checked before each chunk and once more
                   after the last one.
            state: The run state of this run, reset and updated in place.
            status_callback: Receives this run's status messages instead of
                             the orchestrator-wide callback.

        Returns:
            A RunOutcome. Partial cues are kept on CANCELLED; FAILED carries
            no cues.
        """
        report = status_callback or self.status_callback
        document = CaptionDocument()
        state.reset()
        chunks = segment(buffer.duration_seconds, self.window_seconds)
        state.status = RunStatus.RUNNING
        state.total_chunks = len(chunks)
        state.start_timestamp = self.clock()
        logger.info(
            f"Starting run: {buffer.duration_seconds:.2f}s of audio in {len(chunks)} chunk(s) of {self.window_seconds}s"
        )

        processed = 0
        for chunk in chunks:
            if token.cancelled:
                return self._finish(state, document, RunStatus.CANCELLED, processed,
                                    f"Caption generation cancelled after {processed}/{len(chunks)} chunk(s).", report)

            state.current_chunk_index = chunk.index
            self._report(self._progress_message(state), report)

            try:
                result = self._transcribe_chunk(buffer, chunk)
            except RemoteCallError as e:
                logger.error(f"Chunk {chunk.index}/{len(chunks)} failed: {e}")
                document.clear()
                return self._finish(state, document, RunStatus.FAILED, processed,
                                    "An error occurred while generating captions. Please try again.", report, error=e)

            processed += 1
            if result.text:
                document.add_cue(chunk.start_seconds, chunk.end_seconds, result.text)
            else:
                logger.debug(f"Chunk {chunk.index} returned no text, no cue emitted.")

        # Cancel requested while the final chunk was in flight.
        if token.cancelled:
            return self._finish(state, document, RunStatus.CANCELLED, processed,
                                f"Caption generation cancelled after {processed}/{len(chunks)} chunk(s).", report)
        if document.is_empty:
            return self._finish(state, document, RunStatus.EMPTY, processed, "No captions could be generated.", report)
        return self._finish(state, document, RunStatus.COMPLETED, processed, "Caption generation complete.", report)

    def _finish(self, state: GenerationRunState, document: CaptionDocument, status: RunStatus, processed: int,
                message: str, report: Optional[StatusCallback], error: Optional[Exception] = None) -> RunOutcome:
        state.status = status
        self._report(message, report)
        return RunOutcome(
            status=status,
            cues=document.cues,
            message=message,
            chunks_processed=processed,
            error=error,
        )

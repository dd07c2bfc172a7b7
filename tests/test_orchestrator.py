"""Tests for chunksub.orchestrator."""

from __future__ import annotations

import base64

import pytest

from chunksub.cancellation import CancellationToken
from chunksub.exceptions import RemoteCallError
from chunksub.models import Cue, GenerationRunState, RunStatus
from chunksub.orchestrator import TranscriptionOrchestrator, normalize_text

from conftest import FakeTranscriber, make_buffer


def _run(transcriber, buffer, clock=None, token=None, **kwargs):
    messages = []
    kwargs.setdefault("window_seconds", 30)
    if clock is not None:
        kwargs["clock"] = clock
    orchestrator = TranscriptionOrchestrator(transcriber, status_callback=messages.append, **kwargs)
    state = GenerationRunState()
    outcome = orchestrator.run(buffer, token or CancellationToken(), state)
    return outcome, state, messages


class TestNormalizeText:
    """Test suite for provider text clean-up."""

    @pytest.mark.parametrize(
        "raw, expected",
        [("  hello  ", "hello"), ("line one\nline two", "line one line two"), ("a\r\nb", "a b"), ("\n\n", ""), (None, "")],
    )
    def test_normalize_text(self, raw, expected: str) -> None:
        """Whitespace is trimmed and line breaks become spaces."""
        assert normalize_text(raw) == expected


class TestOrchestratorRun:
    """Test suite for the sequential chunk loop."""

    def test_run__65_seconds_yields_three_cues(self, buffer_65s, fake_clock) -> None:
        """Every chunk of a 65s input becomes a cue with the echoed text."""
        transcriber = FakeTranscriber(default_text="echo")

        outcome, state, _ = _run(transcriber, buffer_65s, clock=fake_clock)

        assert outcome.status == RunStatus.COMPLETED
        assert outcome.cues == [Cue(0, 30, "echo"), Cue(30, 60, "echo"), Cue(60, 65, "echo")]
        assert outcome.chunks_processed == 3
        assert state.status == RunStatus.COMPLETED
        assert state.total_chunks == 3
        assert len(transcriber.calls) == 3

    def test_run__sends_wav_payload_and_instruction(self, buffer_65s) -> None:
        """Each call carries a base64 WAV and the configured instruction."""
        transcriber = FakeTranscriber()

        _run(transcriber, buffer_65s, instruction="Transcribe in English.")

        call = transcriber.calls[-1]
        assert call["mime_type"] == "audio/wav"
        assert call["instruction"] == "Transcribe in English."
        wav = base64.b64decode(call["audio_text"])
        # last chunk: 5 s at 100 Hz mono
        assert len(wav) == 44 + 500 * 2

    def test_run__skips_empty_text(self, buffer_65s) -> None:
        """Chunks with blank text produce no cue but still count as processed."""
        transcriber = FakeTranscriber(default_text="spoken", responses={2: "  \n "})

        outcome, _, _ = _run(transcriber, buffer_65s)

        assert outcome.status == RunStatus.COMPLETED
        assert [(c.start_time, c.end_time) for c in outcome.cues] == [(0, 30), (60, 65)]
        assert outcome.chunks_processed == 3

    def test_run__all_empty_is_reported_as_empty(self, buffer_65s) -> None:
        """A run with zero cues ends EMPTY, not FAILED."""
        outcome, state, messages = _run(FakeTranscriber(default_text=""), buffer_65s)

        assert outcome.status == RunStatus.EMPTY
        assert outcome.cues == []
        assert outcome.error is None
        assert state.status == RunStatus.EMPTY
        assert messages[-1] == "No captions could be generated."

    def test_run__zero_duration_has_no_chunks(self) -> None:
        """Empty audio never calls the provider."""
        transcriber = FakeTranscriber()

        outcome, state, _ = _run(transcriber, make_buffer(0.0))

        assert outcome.status == RunStatus.EMPTY
        assert transcriber.calls == []
        assert state.total_chunks == 0

    def test_run__normalizes_multiline_text(self) -> None:
        """Line breaks in provider output are folded into one caption line."""
        outcome, _, _ = _run(FakeTranscriber(default_text=" first\nsecond \n"), make_buffer(10.0))

        assert outcome.cues[0].text == "first second"


class TestOrchestratorCancellation:
    """Test suite for cooperative cancellation at chunk boundaries."""

    def test_run__cancel_after_second_chunk_keeps_two_chunks(self) -> None:
        """Chunks 3 and 4 are never sent once the flag is set during chunk 2."""
        token = CancellationToken()
        transcriber = FakeTranscriber(
            default_text="text",
            on_call=lambda number: token.cancel() if number == 2 else None,
        )

        outcome, state, messages = _run(transcriber, make_buffer(120.0), token=token)

        assert outcome.status == RunStatus.CANCELLED
        assert len(transcriber.calls) == 2
        assert outcome.cues == [Cue(0, 30, "text"), Cue(30, 60, "text")]
        assert outcome.chunks_processed == 2
        assert state.status == RunStatus.CANCELLED
        assert "cancelled" in messages[-1]

    def test_run__cancel_before_start_sends_nothing(self) -> None:
        """A token cancelled up front stops before the first chunk."""
        token = CancellationToken()
        token.cancel()
        transcriber = FakeTranscriber()

        outcome, _, _ = _run(transcriber, make_buffer(60.0), token=token)

        assert outcome.status == RunStatus.CANCELLED
        assert outcome.cues == []
        assert transcriber.calls == []

    def test_run__cancel_with_empty_chunks_keeps_fewer_cues(self) -> None:
        """Empty chunk text before cancellation simply means fewer cues."""
        token = CancellationToken()
        transcriber = FakeTranscriber(
            default_text="text",
            responses={1: ""},
            on_call=lambda number: token.cancel() if number == 2 else None,
        )

        outcome, _, _ = _run(transcriber, make_buffer(120.0), token=token)

        assert outcome.status == RunStatus.CANCELLED
        assert outcome.cues == [Cue(30, 60, "text")]

    def test_run__cancel_during_last_chunk_is_cancelled(self) -> None:
        """A cancel that arrives while the final chunk is in flight still ends CANCELLED."""
        token = CancellationToken()
        transcriber = FakeTranscriber(
            default_text="text",
            on_call=lambda number: token.cancel() if number == 3 else None,
        )

        outcome, state, messages = _run(transcriber, make_buffer(65.0), token=token)

        assert outcome.status == RunStatus.CANCELLED
        assert outcome.cues == [Cue(0, 30, "text"), Cue(30, 60, "text"), Cue(60, 65, "text")]
        assert outcome.chunks_processed == 3
        assert state.status == RunStatus.CANCELLED
        assert messages[-1] == "Caption generation cancelled after 3/3 chunk(s)."


class TestOrchestratorFailure:
    """Test suite for provider failures."""

    def test_run__failure_on_second_chunk_aborts_and_discards(self) -> None:
        """A failing chunk 2 of 4 ends FAILED with no cues and no further calls."""
        error = RemoteCallError("quota exceeded")
        transcriber = FakeTranscriber(default_text="text", responses={2: error})

        outcome, state, messages = _run(transcriber, make_buffer(120.0))

        assert outcome.status == RunStatus.FAILED
        assert outcome.cues == []
        assert outcome.error is error
        assert outcome.chunks_processed == 1
        assert len(transcriber.calls) == 2
        assert state.status == RunStatus.FAILED
        assert "error" in messages[-1]

    def test_run__unexpected_provider_exception_is_wrapped(self) -> None:
        """Any exception from the provider fails the run as a RemoteCallError."""
        transcriber = FakeTranscriber(responses={1: RuntimeError("socket closed")})

        outcome, _, _ = _run(transcriber, make_buffer(45.0))

        assert outcome.status == RunStatus.FAILED
        assert isinstance(outcome.error, RemoteCallError)
        assert isinstance(outcome.error.__cause__, RuntimeError)
        assert len(transcriber.calls) == 1

    def test_run__new_run_starts_clean_after_failure(self) -> None:
        """Stale cues from a previous run never leak into the next one."""
        transcriber = FakeTranscriber(default_text="text", responses={2: RemoteCallError("boom")})
        orchestrator = TranscriptionOrchestrator(transcriber, window_seconds=30)
        state = GenerationRunState()

        orchestrator.run(make_buffer(90.0), CancellationToken(), state)
        outcome = orchestrator.run(make_buffer(30.0), CancellationToken(), state)

        assert outcome.status == RunStatus.COMPLETED
        assert outcome.cues == [Cue(0, 30, "text")]

    def test_run__overlapping_runs_keep_separate_cues(self) -> None:
        """A run started from inside another run's provider call does not share its cues."""
        orchestrator_holder = {}
        inner = {}

        def start_inner_run(number: int) -> None:
            if number == 1:
                inner["outcome"] = orchestrator_holder["o"].run(
                    make_buffer(30.0), CancellationToken(), GenerationRunState()
                )

        transcriber = FakeTranscriber(default_text="text", on_call=start_inner_run)
        orchestrator = TranscriptionOrchestrator(transcriber, window_seconds=30)
        orchestrator_holder["o"] = orchestrator

        outcome = orchestrator.run(make_buffer(60.0), CancellationToken(), GenerationRunState())

        assert inner["outcome"].cues == [Cue(0, 30, "text")]
        assert outcome.status == RunStatus.COMPLETED
        assert outcome.cues == [Cue(0, 30, "text"), Cue(30, 60, "text")]

    def test_run__status_callback_per_run(self) -> None:
        """A callback passed to run() receives that run's messages instead of the default one."""
        default_messages = []
        run_messages = []
        orchestrator = TranscriptionOrchestrator(
            FakeTranscriber(), window_seconds=30, status_callback=default_messages.append
        )

        orchestrator.run(make_buffer(30.0), CancellationToken(), GenerationRunState(),
                         status_callback=run_messages.append)

        assert default_messages == []
        assert run_messages[-1] == "Caption generation complete."


class TestOrchestratorProgress:
    """Test suite for progress and remaining-time reporting."""

    def test_run__reports_eta_from_average_chunk_time(self, fake_clock) -> None:
        """Chunk 1 has no estimate; later chunks extrapolate the average time per chunk."""
        transcriber = FakeTranscriber(on_call=lambda number: fake_clock.advance(10))

        _, _, messages = _run(transcriber, make_buffer(120.0), clock=fake_clock)

        progress = [m for m in messages if m.startswith("Generating")]
        assert progress[0] == "Generating captions... (chunk 1/4)"
        # chunk 2: 10s elapsed over 1 chunk, 3 chunks left -> 30s
        assert progress[1] == "Generating captions... (chunk 2/4) - about 00:30 remaining"
        # chunk 4: 30s over 3 chunks, 1 chunk left -> 10s
        assert progress[3] == "Generating captions... (chunk 4/4) - about 00:10 remaining"

    def test_run__tracks_current_chunk(self) -> None:
        """The run state follows the chunk being processed."""
        seen = []
        state_holder = {}

        def record(number: int) -> None:
            seen.append(state_holder["state"].current_chunk_index)

        transcriber = FakeTranscriber(on_call=record)
        orchestrator = TranscriptionOrchestrator(transcriber, window_seconds=30)
        state = GenerationRunState()
        state_holder["state"] = state

        orchestrator.run(make_buffer(65.0), CancellationToken(), state)

        assert seen == [1, 2, 3]

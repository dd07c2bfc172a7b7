"""Speech-to-text providers that turn one encoded audio chunk into text."""

import logging
import os
from abc import ABC, abstractmethod
from typing import Optional

import requests

from .exceptions import ConfigurationError, RemoteCallError

logger = logging.getLogger(__name__)

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"

class Transcriber(ABC):
    """Abstract base class for transcription services."""

    @abstractmethod
    def transcribe(self, audio_text: str, mime_type: str, instruction: str) -> str:
        """
        Transcribes one chunk of audio.

        Args:
            audio_text: The audio file, base64 encoded.
            mime_type: Mime type of the encoded audio (e.g. 'audio/wav').
            instruction: Natural-language instruction sent with the audio.

        Returns:
            The transcribed text, possibly empty.

        Raises:
            RemoteCallError: If the provider fails for any reason.
        """
        pass

class GeminiTranscriber(Transcriber):
    """Transcribes audio with the Gemini generateContent REST endpoint."""

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_GEMINI_MODEL,
        base_url: str = GEMINI_BASE_URL,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Initializes the GeminiTranscriber.

        Args:
            api_key: Gemini API key.
            model: Model name used for every request.
            base_url: API root, overridable for proxies and tests.
            timeout: Optional per-request timeout in seconds. None waits
                     indefinitely, so a hung call blocks the run.
            session: Optional requests.Session to reuse connections.

        Raises:
            ConfigurationError: If no API key is given.
        """
        if not api_key:
            raise ConfigurationError("A Gemini API key is required (config 'gemini_api_key' or env GEMINI_API_KEY/API_KEY).")
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        logger.info(f"Initializing GeminiTranscriber with model '{self.model}'")

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    def transcribe(self, audio_text: str, mime_type: str, instruction: str) -> str:
        body = {
            "contents": [{
                "parts": [
                    {"inlineData": {"mimeType": mime_type, "data": audio_text}},
                    {"text": instruction},
                ]
            }]
        }
        logger.debug(f"POST {self.endpoint} ({len(audio_text)} base64 chars)")
        try:
            response = self.session.post(
                self.endpoint,
                json=body,
                headers={"x-goog-api-key": self.api_key},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Request to Gemini failed: {e}")
            raise RemoteCallError(f"Request to transcription service failed: {e}") from e

        if response.status_code != 200:
            logger.error(f"Gemini returned status {response.status_code}: {response.text[:500]}")
            raise RemoteCallError(f"Transcription service returned HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise RemoteCallError(f"Transcription service returned invalid JSON: {e}") from e
        return self._extract_text(payload)

    @staticmethod
    def _extract_text(payload: dict) -> str:
        """Joins the text parts of the first candidate. A candidate without parts yields ''."""
        candidates = payload.get("candidates") if isinstance(payload, dict) else None
        if not candidates:
            feedback = payload.get("promptFeedback") if isinstance(payload, dict) else None
            raise RemoteCallError(f"Transcription service returned no candidates (feedback: {feedback})")
        parts = (candidates[0].get("content") or {}).get("parts") or []
        return "".join(part.get("text", "") for part in parts if isinstance(part, dict))

def default_instruction(language: str) -> str:
    return f"Transcribe this audio into text in the language '{language}'."

def create_transcriber(config: dict) -> Transcriber:
    """
    Builds the transcriber selected by config['provider'].

    Raises:
        ConfigurationError: For an unknown provider or missing credentials.
    """
    provider = str(config.get('provider', 'gemini')).lower()
    if provider == 'gemini':
        api_key = config.get('gemini_api_key') or os.environ.get('GEMINI_API_KEY') or os.environ.get('API_KEY')
        return GeminiTranscriber(
            api_key=api_key,
            model=config.get('gemini_model', DEFAULT_GEMINI_MODEL),
            timeout=config.get('request_timeout'),
        )
    if provider == 'whisper':
        # Heavy import, only needed for the local provider
        from .whisper_transcriber import WhisperTranscriber
        device = config.get('device', 'cuda')
        return WhisperTranscriber(
            model_name=config.get('whisper_model', 'medium'),
            device=device,
            fp16=config.get('whisper_fp16', True) if device == 'cuda' else False,
            language=config.get('language'),
            temp_dir=config.get('temp_dir'),
        )
    raise ConfigurationError(f"Unsupported transcription provider '{provider}' specified in config.")

# /core/speech.py

from typing import Iterator, Optional

from openai import OpenAI, OpenAIError

from core.config import settings
from core.errors import NarrationError, ValidationError
from core.logger import get_logger

logger = get_logger(__name__)

CHUNK_SIZE = 4096

MEDIA_TYPES = {
    "mp3": "audio/mpeg",
    "opus": "audio/ogg",
    "aac": "audio/aac",
    "flac": "audio/flac",
    "wav": "audio/wav",
    "pcm": "audio/pcm",
}


def media_type_for(audio_format: str) -> str:
    return MEDIA_TYPES.get(audio_format, "application/octet-stream")


class SpeechSynthesizer:
    """Text-to-speech for story chapters, backed by the OpenAI speech endpoint."""

    def __init__(self, client: Optional[OpenAI] = None):
        self._client = client

    def _get_client(self) -> OpenAI:
        if self._client is None:
            self._client = OpenAI(
                api_key=settings.OPENAI_API_KEY or None,
                timeout=settings.LLM_TIMEOUT_SECONDS,
                max_retries=settings.LLM_MAX_RETRIES,
            )
        return self._client

    def stream(self, text: str, voice: Optional[str] = None, audio_format: Optional[str] = None) -> Iterator[bytes]:
        """
        Requests the audio up front so that failures surface before any byte is sent,
        then hands back an iterator over the encoded audio in fixed-size chunks.
        """
        if not text or not text.strip():
            raise ValidationError("Text is required")
        audio_format = audio_format or settings.TTS_FORMAT
        if audio_format not in MEDIA_TYPES:
            raise ValidationError(
                f"Unsupported audio format '{audio_format}'",
                details={"supported": sorted(MEDIA_TYPES)},
            )

        try:
            response = self._get_client().audio.speech.create(
                model=settings.TTS_MODEL,
                voice=voice or settings.TTS_VOICE,
                input=text,
                response_format=audio_format,
            )
        except OpenAIError as e:
            logger.error("Speech synthesis failed", exc_info=True)
            raise NarrationError(f"Speech synthesis failed: {e}") from e

        logger.info("Speech synthesized", extra={"characters": len(text), "format": audio_format})
        return response.iter_bytes(CHUNK_SIZE)

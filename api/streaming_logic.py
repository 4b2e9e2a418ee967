# /api/streaming_logic.py

from fastapi.responses import StreamingResponse

from core.speech import SpeechSynthesizer, media_type_for
from core.config import settings


def stream_story_audio(speech: SpeechSynthesizer, text: str, voice: str = None, audio_format: str = None):
    """
    Synthesizes the narration before the response starts, so a failed request still
    gets a JSON error; the audio body is then streamed in chunks.
    """
    audio_format = audio_format or settings.TTS_FORMAT
    chunks = speech.stream(text, voice=voice, audio_format=audio_format)
    return StreamingResponse(
        chunks,
        media_type=media_type_for(audio_format),
        headers={"Cache-Control": "no-cache"},
    )

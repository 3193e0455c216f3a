"""
Speech-to-text for meeting recordings (OpenAI Whisper)
"""
import logging
from dataclasses import dataclass
from typing import Optional

import openai
from openai import AsyncOpenAI

from oneonone.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

# Languages Whisper accepts as an explicit hint; anything else is auto-detected
SUPPORTED_LANGUAGES = {
    "af", "ar", "hy", "az", "be", "bs", "bg", "ca", "zh", "hr", "cs", "da", "nl", "en", "et",
    "fi", "fr", "gl", "de", "el", "he", "hi", "hu", "is", "id", "it", "ja", "kk", "ko", "lv",
    "lt", "mk", "ms", "mr", "mi", "ne", "no", "fa", "pl", "pt", "ro", "ru", "sr", "sk", "sl",
    "es", "sw", "sv", "tl", "ta", "th", "tr", "uk", "ur", "vi", "cy",
}


@dataclass
class Transcription:
    text: str
    language: str
    duration_seconds: int


class TranscriptionService:
    def __init__(self):
        api_key = settings.OPENAI_API_KEY or None
        self.model = settings.WHISPER_MODEL
        self._available = bool(api_key)
        self.client = AsyncOpenAI(api_key=api_key) if self._available else None

    @property
    def is_available(self) -> bool:
        return self._available

    async def transcribe(self, audio: bytes, filename: str, language: Optional[str] = None) -> Transcription:
        if not self._available or self.client is None:
            raise RuntimeError("Transcription service not configured: OPENAI_API_KEY is not set")

        kwargs = {
            "model": self.model,
            "file": (filename, audio),
            "response_format": "verbose_json",
        }
        if language and language != "auto" and language in SUPPORTED_LANGUAGES:
            kwargs["language"] = language

        logger.info(f"Transcribing {filename} ({len(audio)} bytes), language={kwargs.get('language', 'auto')}")
        try:
            result = await self.client.audio.transcriptions.create(**kwargs)
        except openai.AuthenticationError:
            raise RuntimeError("OpenAI API authentication failed; check OPENAI_API_KEY")
        except openai.RateLimitError:
            raise RuntimeError("OpenAI rate limit exceeded. Please try again later.")
        except openai.BadRequestError as e:
            raise RuntimeError(f"Invalid audio file: {e.message}")

        return Transcription(
            text=result.text,
            language=getattr(result, "language", None) or language or "en",
            duration_seconds=int(getattr(result, "duration", None) or 0),
        )


# Singleton instance
transcription_service = TranscriptionService()

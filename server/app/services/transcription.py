"""Voice transcription via the OpenAI audio API."""
from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Optional

from openai import OpenAI

from .translation import TranslationDirection

from ..config import settings

logger = logging.getLogger(__name__)

MAX_AUDIO_BYTES = 25 * 1024 * 1024
SMALL_AUDIO_BYTES = 1000

SUSPICIOUS_PATTERNS = (
    re.compile(r"^[\s.,!?\-]*$"),
    re.compile(r"^(um|uh|hmm|er)[\s.,!?]*$", re.IGNORECASE),
)


class AudioTooLarge(ValueError):
    pass


class NoSpeechDetected(ValueError):
    pass


@dataclass(frozen=True)
class AudioUpload:
    filename: str
    content_type: str
    data: bytes


def normalize_upload(filename: Optional[str], content_type: Optional[str], data: bytes) -> AudioUpload:
    """Pick a file name and MIME type the transcription endpoint accepts."""

    name = filename or "recording"
    mime = content_type or ""
    for kind in ("mp4", "webm", "wav"):
        if kind in mime:
            extension = f".{kind}"
            return AudioUpload(
                filename=name if name.endswith(extension) else f"recording{extension}",
                content_type=f"audio/{kind}",
                data=data,
            )
    return AudioUpload(filename="recording.mp4", content_type="audio/mp4", data=data)


def transcription_prompt(direction: TranslationDirection) -> str:
    return (
        f"This is clear {direction.source_name} speech. Transcribe every word exactly as spoken, "
        "including any incomplete sentences or natural speech patterns."
    )


def looks_suspicious(transcript: str) -> bool:
    stripped = transcript.strip()
    return any(pattern.match(stripped) for pattern in SUSPICIOUS_PATTERNS)


class TranscriptionService:
    """Wraps gpt-4o-transcribe with language hints from the translation direction."""

    def __init__(self, client: OpenAI, *, model: Optional[str] = None) -> None:
        self._client = client
        self._model = model or settings.transcription_model

    async def transcribe(self, upload: AudioUpload, direction: TranslationDirection) -> str:
        """Convert the uploaded audio into a text transcript."""

        if len(upload.data) > MAX_AUDIO_BYTES:
            raise AudioTooLarge("Audio file too large. Maximum size is 25MB.")
        if len(upload.data) < SMALL_AUDIO_BYTES:
            logger.warning("Very small audio file (%d bytes) for %s", len(upload.data), direction.key)

        logger.info(
            "Transcribing %s (%s, %d bytes) with %s, language=%s",
            upload.filename,
            upload.content_type,
            len(upload.data),
            self._model,
            direction.source,
        )

        def _run_transcription() -> str:
            result = self._client.audio.transcriptions.create(
                model=self._model,
                file=(upload.filename, upload.data, upload.content_type),
                response_format="text",
                language=direction.source,
                prompt=transcription_prompt(direction),
                temperature=0.0,
            )
            return result if isinstance(result, str) else getattr(result, "text", "")

        transcript = (await asyncio.to_thread(_run_transcription) or "").strip()
        if not transcript:
            raise NoSpeechDetected(
                "No speech detected in audio. Please try speaking more clearly or closer to the microphone."
            )
        if len(transcript) < 3:
            logger.warning("Very short transcription received: %r", transcript)
        if looks_suspicious(transcript):
            logger.warning("Suspicious transcription pattern detected: %r", transcript)
        return transcript

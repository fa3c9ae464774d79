"""Text-to-speech backends: OpenAI TTS and ElevenLabs for Vietnamese."""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

import httpx
from openai import OpenAI

from ..config import settings

logger = logging.getLogger(__name__)

# Higher stability keeps Vietnamese tones accurate.
VIETNAMESE_VOICE_SETTINGS = {
    "stability": 0.6,
    "similarity_boost": 0.8,
    "use_speaker_boost": True,
    "style": 0.0,
}
ELEVENLABS_MODEL_ID = "eleven_flash_v2_5"
ELEVENLABS_OUTPUT_FORMAT = "mp3_44100_128"
VIETNAMESE_SPEED_FACTOR = 0.9


def default_voice(language: Optional[str]) -> str:
    return "shimmer" if language == "vi-VN" else "alloy"


class SpeechService:
    """OpenAI text-to-speech returning MP3 bytes."""

    def __init__(self, client: OpenAI, *, model: Optional[str] = None) -> None:
        self._client = client
        self._model = model or settings.tts_model

    async def synthesize(
        self,
        text: str,
        *,
        language: Optional[str] = None,
        voice: Optional[str] = None,
        speed: Optional[float] = None,
    ) -> bytes:
        selected_voice = voice or default_voice(language)
        clean_text = text.strip()
        logger.info(
            "Synthesizing %d chars with %s (voice=%s, language=%s, speed=%s)",
            len(clean_text),
            self._model,
            selected_voice,
            language,
            speed or 1.0,
        )

        def _run_tts() -> bytes:
            response = self._client.audio.speech.create(
                model=self._model,
                voice=selected_voice,
                input=clean_text,
                response_format="mp3",
                speed=speed or 1.0,
            )
            return response.read()

        audio = await asyncio.to_thread(_run_tts)
        logger.info("TTS generation successful, %d bytes", len(audio))
        return audio


class ElevenLabsError(RuntimeError):
    def __init__(self, status_code: int, detail: str) -> None:
        super().__init__(f"ElevenLabs request failed ({status_code}): {detail}")
        self.status_code = status_code
        self.detail = detail


def describe_elevenlabs_failure(error: Exception) -> tuple[int, str]:
    """Map an upstream failure onto the status and message returned to clients."""

    status = getattr(error, "status_code", None)
    if status == 429:
        return 429, "Rate limit exceeded. Please try again later."
    if status == 401:
        return 401, "Invalid ElevenLabs API key."
    if status == 400:
        return 400, "Invalid request parameters."
    if "insufficient credits" in str(error).lower():
        return 402, "Insufficient ElevenLabs credits. Please add more credits to your account."
    return 500, "Failed to generate Vietnamese speech"


class ElevenLabsSpeechService:
    """Vietnamese text-to-speech through the ElevenLabs REST API."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        api_key: Optional[str] = None,
        voice_id: Optional[str] = None,
        base_url: Optional[str] = None,
    ) -> None:
        self._client = client
        self._api_key = api_key or settings.elevenlabs_api_key
        self._voice_id = voice_id or settings.elevenlabs_voice_id
        self._base_url = (base_url or settings.elevenlabs_base_url).rstrip("/")

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    async def synthesize(self, text: str, *, speed: float = 1.0) -> bytes:
        adjusted_speed = speed * VIETNAMESE_SPEED_FACTOR
        logger.info(
            "ElevenLabs Vietnamese TTS request: text=%r voice=%s speed=%.2f",
            text[:50] + ("..." if len(text) > 50 else ""),
            self._voice_id,
            adjusted_speed,
        )
        resp = await self._client.post(
            f"{self._base_url}/v1/text-to-speech/{self._voice_id}",
            params={"output_format": ELEVENLABS_OUTPUT_FORMAT},
            headers={"xi-api-key": self._api_key or "", "Accept": "audio/mpeg"},
            json={
                "text": text,
                "model_id": ELEVENLABS_MODEL_ID,
                "voice_settings": {**VIETNAMESE_VOICE_SETTINGS, "speed": adjusted_speed},
            },
        )
        if not resp.is_success:
            raise ElevenLabsError(status_code=resp.status_code, detail=resp.text)
        logger.info("ElevenLabs TTS success: %d bytes", len(resp.content))
        return resp.content

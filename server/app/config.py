"""Configuration helpers for the translation server."""
from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


def _optional_float(name: str) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return float(raw)


@dataclass
class Settings:
    """Centralized environment-driven configuration.

    Values are read once at import time; tests reload this module after
    patching the environment.
    """

    openai_api_key: Optional[str] = os.getenv("OPENAI_API_KEY")
    openai_realtime_url: str = os.getenv("OPENAI_REALTIME_URL", "https://api.openai.com/v1/realtime")

    # Realtime voice session
    realtime_model: str = os.getenv("REALTIME_MODEL", "gpt-4o-mini-realtime-preview-2024-12-17")
    realtime_relay_url: str = os.getenv("REALTIME_RELAY_URL", "http://localhost:8000/api/open-ai-realtime")
    # None disables the relay timeout entirely.
    realtime_relay_timeout: Optional[float] = _optional_float("REALTIME_RELAY_TIMEOUT")
    realtime_instructions: str = os.getenv(
        "REALTIME_INSTRUCTIONS",
        "You are a helpful voice assistant. Please respond to the user.",
    )
    audio_input_device: str = os.getenv("AUDIO_INPUT_DEVICE", "default")
    audio_input_format: str = os.getenv("AUDIO_INPUT_FORMAT", "pulse")
    audio_output_device: str = os.getenv("AUDIO_OUTPUT_DEVICE", "default")
    audio_output_format: str = os.getenv("AUDIO_OUTPUT_FORMAT", "pulse")

    # Cloud models
    transcription_model: str = os.getenv("TRANSCRIPTION_MODEL", "gpt-4o-transcribe")
    translation_model: str = os.getenv("TRANSLATION_MODEL", "gpt-4o")
    tts_model: str = os.getenv("TTS_MODEL", "tts-1")
    chat_model: str = os.getenv("CHAT_MODEL", "gpt-4.1")

    # ElevenLabs Vietnamese voice
    elevenlabs_api_key: Optional[str] = os.getenv("ELEVENLABS_API_KEY")
    elevenlabs_voice_id: str = os.getenv("ELEVENLABS_VOICE_ID", "Wzj3w9OuQFcoiuKPnk3j")
    elevenlabs_base_url: str = os.getenv("ELEVENLABS_BASE_URL", "https://api.elevenlabs.io")

    log_level: str = os.getenv("LOG_LEVEL", "INFO")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached settings instance to avoid repeated environment reads."""

    return Settings()


settings = get_settings()

"""Text translation via chat completions."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from openai import OpenAI

from ..config import settings

logger = logging.getLogger(__name__)

LANGUAGE_NAMES = {"en": "English", "vi": "Vietnamese", "ru": "Russian"}

FALLBACK_TRANSLATION = "Translation failed"


@dataclass(frozen=True)
class TranslationDirection:
    key: str
    source: str
    target: str

    @property
    def source_name(self) -> str:
        return LANGUAGE_NAMES[self.source]

    @property
    def target_name(self) -> str:
        return LANGUAGE_NAMES[self.target]


DIRECTIONS = {
    key: TranslationDirection(key, source, target)
    for key, source, target in (
        ("vi-to-en", "vi", "en"),
        ("en-to-vi", "en", "vi"),
        ("vi-to-ru", "vi", "ru"),
        ("ru-to-vi", "ru", "vi"),
    )
}

# Typed text only supports the Vietnamese/English pair.
TEXT_DIRECTIONS = frozenset({"vi-to-en", "en-to-vi"})
AUDIO_DIRECTIONS = frozenset(DIRECTIONS)


def resolve_direction(value: object, allowed: frozenset[str]) -> Optional[TranslationDirection]:
    if not isinstance(value, str) or value not in allowed:
        return None
    return DIRECTIONS[value]


def translator_prompt(direction: TranslationDirection) -> str:
    return (
        "You are a professional translator. Translate the following text "
        f"from {direction.source_name} to {direction.target_name}. \n\n"
        "IMPORTANT RULES:\n"
        "- Translate EXACTLY what is provided\n"
        "- Do NOT add explanations, context, or additional text\n"
        "- Do NOT interpret or expand on the meaning\n"
        "- Return ONLY the direct translation\n"
        "- Preserve the tone and style of the original text\n"
        "- If the text contains names, keep them as-is"
    )


class TranslationService:
    """Translates between the supported language pairs with a chat model."""

    def __init__(self, client: OpenAI, *, model: Optional[str] = None, temperature: float = 0.3) -> None:
        self._client = client
        self._model = model or settings.translation_model
        self._temperature = temperature

    async def translate(self, text: str, direction: TranslationDirection) -> str:
        messages = [
            {"role": "system", "content": translator_prompt(direction)},
            {"role": "user", "content": text},
        ]

        def _run_completion() -> Optional[str]:
            comp = self._client.chat.completions.create(
                model=self._model,
                messages=messages,
                temperature=self._temperature,
            )
            if not comp.choices:
                return None
            return comp.choices[0].message.content

        content = await asyncio.to_thread(_run_completion)
        translated = (content or "").strip()
        logger.info("Translated %s text (%d chars -> %d chars)", direction.key, len(text), len(translated))
        return translated or FALLBACK_TRANSLATION

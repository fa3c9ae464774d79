"""Transcription and translation endpoints."""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import JSONResponse
from openai import OpenAI

from ..dependencies import get_openai_client
from ..models import schemas
from ..services.transcription import AudioTooLarge, NoSpeechDetected, TranscriptionService, normalize_upload
from ..services.translation import AUDIO_DIRECTIONS, TEXT_DIRECTIONS, TranslationService, resolve_direction

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["translation"])


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


@router.post("/translate-text", response_model=schemas.TranslationResponse)
async def translate_text(
    payload: schemas.TranslateTextRequest,
    client: OpenAI = Depends(get_openai_client),
):
    """Translate typed text between Vietnamese and English."""

    if not payload.text or not isinstance(payload.text, str):
        return _error("No text provided", 400)

    direction = resolve_direction(payload.direction, TEXT_DIRECTIONS)
    if direction is None:
        return _error("Invalid translation direction", 400)

    try:
        translated = await TranslationService(client).translate(payload.text, direction)
    except Exception as exc:
        logger.exception("Translation error")
        return _error(str(exc) or "Failed to translate text", 500)

    return schemas.TranslationResponse(
        original_text=payload.text.strip(),
        translated_text=translated,
        direction=direction.key,
    )


@router.post("/transcribe-translate", response_model=schemas.TranslationResponse)
async def transcribe_translate(
    file: Optional[UploadFile] = File(default=None),
    direction: Optional[str] = Form(default=None),
    client: OpenAI = Depends(get_openai_client),
):
    """Transcribe recorded speech, then translate the transcript."""

    if file is None:
        return _error("No audio file provided", 400)

    resolved = resolve_direction(direction, AUDIO_DIRECTIONS)
    if resolved is None:
        return _error("Invalid translation direction", 400)

    data = await file.read()
    upload = normalize_upload(file.filename, file.content_type, data)
    logger.info(
        "Audio upload %s (%s, %d bytes) normalized to %s (%s)",
        file.filename,
        file.content_type,
        len(data),
        upload.filename,
        upload.content_type,
    )

    try:
        transcript = await TranscriptionService(client).transcribe(upload, resolved)
        translated = await TranslationService(client).translate(transcript, resolved)
    except (AudioTooLarge, NoSpeechDetected) as exc:
        return _error(str(exc), 400)
    except Exception as exc:
        logger.exception("Transcription error")
        return _error(str(exc) or "Failed to transcribe and translate audio", 500)

    return schemas.TranslationResponse(
        original_text=transcript,
        translated_text=translated,
        direction=resolved.key,
    )

"""Text-to-speech endpoints."""
from __future__ import annotations

import logging

import httpx
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, Response
from openai import OpenAI

from ..dependencies import get_http_client, get_openai_client
from ..models import schemas
from ..services.speech import ElevenLabsSpeechService, SpeechService, describe_elevenlabs_failure

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["speech"])

MP3_MEDIA_TYPE = "audio/mpeg"


@router.post("/text-to-speech")
async def text_to_speech(
    payload: schemas.TextToSpeechRequest,
    client: OpenAI = Depends(get_openai_client),
) -> Response:
    if not payload.text:
        return JSONResponse({"error": "Text is required"}, status_code=400)

    try:
        audio = await SpeechService(client).synthesize(
            payload.text,
            language=payload.language,
            voice=payload.voice,
            speed=payload.speed,
        )
    except Exception:
        logger.exception("TTS error")
        return JSONResponse({"error": "Failed to generate speech"}, status_code=500)

    return Response(content=audio, media_type=MP3_MEDIA_TYPE)


@router.post("/elevenlabs-tts")
async def elevenlabs_tts(
    payload: schemas.ElevenLabsSpeechRequest,
    client: httpx.AsyncClient = Depends(get_http_client),
) -> Response:
    """Vietnamese speech from ElevenLabs, cacheable by clients for a year."""

    if not payload.text:
        return JSONResponse({"error": "Text is required"}, status_code=400)

    service = ElevenLabsSpeechService(client)
    if not service.configured:
        return JSONResponse({"error": "ElevenLabs API key not configured"}, status_code=500)

    try:
        audio = await service.synthesize(payload.text, speed=payload.speed)
    except Exception as exc:
        logger.exception("ElevenLabs TTS error")
        status_code, message = describe_elevenlabs_failure(exc)
        return JSONResponse({"error": message}, status_code=status_code)

    return Response(
        content=audio,
        media_type=MP3_MEDIA_TYPE,
        headers={"Cache-Control": "public, max-age=31536000"},
    )

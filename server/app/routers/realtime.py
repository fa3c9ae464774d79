"""Signaling relay between the voice client and the OpenAI Realtime API."""
from __future__ import annotations

import logging
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response

from ..config import Settings
from ..dependencies import get_app_settings, get_http_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["realtime"])

SDP_MEDIA_TYPE = "application/sdp"


@router.post("/open-ai-realtime")
async def relay_realtime_offer(
    request: Request,
    model: Optional[str] = None,
    settings: Settings = Depends(get_app_settings),
    client: httpx.AsyncClient = Depends(get_http_client),
) -> Response:
    """Forward an SDP offer upstream and return the SDP answer.

    Keeps the API key server-side. Upstream errors are passed through with
    their status, body and content type.
    """

    if not model:
        return JSONResponse({"error": "Missing model parameter"}, status_code=400)

    offer_sdp = (await request.body()).decode("utf-8")

    if not settings.openai_api_key:
        return JSONResponse({"error": "Missing OpenAI API key"}, status_code=500)

    logger.info("Relaying SDP offer (%d bytes) for model %s", len(offer_sdp), model)
    upstream = await client.post(
        settings.openai_realtime_url,
        params={"model": model},
        content=offer_sdp,
        headers={
            "Authorization": f"Bearer {settings.openai_api_key}",
            "Content-Type": SDP_MEDIA_TYPE,
        },
    )

    if not upstream.is_success:
        logger.warning("Realtime API rejected offer: %s %s", upstream.status_code, upstream.text[:200])
        return Response(
            content=upstream.content,
            status_code=upstream.status_code,
            media_type=upstream.headers.get("content-type") or "text/plain",
        )

    return Response(content=upstream.text, status_code=200, media_type=SDP_MEDIA_TYPE)

"""Shared FastAPI dependencies for upstream API clients."""
from __future__ import annotations

from typing import AsyncIterator

import httpx
from fastapi import HTTPException
from openai import OpenAI

from .config import Settings, get_settings


def get_app_settings() -> Settings:
    return get_settings()


def get_openai_client() -> OpenAI:
    """Build a synchronous OpenAI client; services call it via ``asyncio.to_thread``."""

    settings = get_settings()
    if not settings.openai_api_key:
        raise HTTPException(status_code=500, detail="OPENAI_API_KEY is not configured")
    return OpenAI(api_key=settings.openai_api_key)


async def get_http_client() -> AsyncIterator[httpx.AsyncClient]:
    """Yield an HTTP client for upstream REST calls (realtime SDP, ElevenLabs)."""

    async with httpx.AsyncClient(timeout=60.0) as client:
        yield client

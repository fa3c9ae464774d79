"""Plain prompt -> assistant response via the Responses API."""
from __future__ import annotations

import asyncio
from typing import Any, Optional

from openai import OpenAI

from ..config import settings


class ChatService:
    def __init__(self, client: OpenAI, *, model: Optional[str] = None) -> None:
        self._client = client
        self._model = model or settings.chat_model

    async def respond(self, prompt: str) -> dict[str, Any]:
        """Send ``prompt`` and return the full response payload as a dict."""

        def _run_response() -> Any:
            return self._client.responses.create(model=self._model, input=prompt)

        response = await asyncio.to_thread(_run_response)
        model_dump = getattr(response, "model_dump", None)
        if callable(model_dump):
            return model_dump(mode="json")
        return dict(response)

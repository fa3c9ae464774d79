"""Chat completion endpoints."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from openai import OpenAI

from ..ai_agents.tool_calling import run_tool_calling_chat
from ..dependencies import get_openai_client
from ..models import schemas
from ..services.chat import ChatService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["chat"])


@router.post("/open-ai-chat-responses", response_model=schemas.ChatPromptResponse)
async def chat_responses(
    payload: schemas.ChatPromptRequest,
    client: OpenAI = Depends(get_openai_client),
):
    if not payload.prompt:
        return JSONResponse({"error": "Missing prompt"}, status_code=400)

    try:
        result = await ChatService(client).respond(payload.prompt)
    except Exception as exc:
        logger.exception("Chat responses error")
        return JSONResponse({"error": str(exc)}, status_code=500)
    return schemas.ChatPromptResponse(result=result)


@router.post("/open-ai-tool-calling", response_model=schemas.ToolCallingResponse)
async def tool_calling(payload: schemas.ToolCallingRequest):
    """Answer a chat message, letting the model call ``getData`` if it needs to."""

    try:
        reply = await run_tool_calling_chat(payload.message or "")
    except Exception:
        logger.exception("Tool calling chat failed")
        return JSONResponse({"error": "Failed to process chat"}, status_code=500)

    tool = schemas.ToolCallInfo(**reply.tool.as_dict()) if reply.tool else None
    return schemas.ToolCallingResponse(answer=reply.answer, tool=tool)

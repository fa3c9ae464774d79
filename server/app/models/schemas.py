"""Pydantic models describing request and response payloads."""
from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class TranslateTextRequest(BaseModel):
    """Typed text to translate; validated by the route for friendlier errors."""

    text: Any = Field(default=None, description="Text in the source language")
    direction: Optional[str] = Field(default=None, description="e.g. 'en-to-vi'")


class TranslationResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    original_text: str = Field(..., alias="originalText")
    translated_text: str = Field(..., alias="translatedText")
    direction: str
    success: bool = True


class TextToSpeechRequest(BaseModel):
    text: Optional[str] = None
    language: Optional[str] = Field(default=None, description="BCP-47 tag, e.g. 'vi-VN'")
    voice: Optional[str] = None
    speed: Optional[float] = None


class ElevenLabsSpeechRequest(BaseModel):
    text: Optional[str] = None
    speed: float = 1.0


class ChatPromptRequest(BaseModel):
    prompt: Optional[str] = None


class ChatPromptResponse(BaseModel):
    result: Dict[str, Any]


class ToolCallingRequest(BaseModel):
    message: Optional[str] = None


class ToolCallInfo(BaseModel):
    name: str
    arguments: Any = None
    result: Any = None


class ToolCallingResponse(BaseModel):
    answer: str
    tool: Optional[ToolCallInfo] = None

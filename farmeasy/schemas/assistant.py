"""Pydantic schemas for the chat and voice endpoints."""

from __future__ import annotations

from pydantic import BaseModel


class ChatRequest(BaseModel):
	message: str | None = None
	user_id: str = "default_user"


class ChatResponse(BaseModel):
	reply: str


class VoiceResponse(BaseModel):
	text: str

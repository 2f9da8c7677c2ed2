"""Chat and voice assistant routes."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, status

from farmeasy.auth.dependencies import require_token
from farmeasy.dependencies import get_gateway
from farmeasy.errors import FarmEasyError, ValidationError
from farmeasy.schemas.assistant import ChatRequest, ChatResponse, VoiceResponse
from farmeasy.services.providers import ProviderGateway

router = APIRouter(tags=["assistant"], dependencies=[Depends(require_token)])
logger = structlog.get_logger("farmeasy.routes.assistant")

MOCK_VOICE_TRANSCRIPTION = "This is a mock voice transcription."


def _map_error(exc: Exception) -> HTTPException:
	if isinstance(exc, FarmEasyError):
		return HTTPException(status_code=exc.status_code, detail=exc.to_detail())
	logger.exception("assistant_route_failed", error=str(exc))
	return HTTPException(
		status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
		detail={"error": "chat_failure", "message": "Failed to process chat message"},
	)


@router.post("/chat", response_model=ChatResponse)
async def chat(
	payload: ChatRequest,
	gateway: ProviderGateway = Depends(get_gateway),
) -> ChatResponse:
	try:
		if not payload.message or not payload.message.strip():
			raise ValidationError("Message is required")
		logger.info("chat_received", user_id=payload.user_id, message_length=len(payload.message))
		reply = await gateway.chat(payload.message)
	except Exception as exc:
		raise _map_error(exc) from exc
	return ChatResponse(reply=reply)


@router.post("/voice", response_model=VoiceResponse)
async def voice() -> VoiceResponse:
	return VoiceResponse(text=MOCK_VOICE_TRANSCRIPTION)

from __future__ import annotations

import pytest
from httpx import AsyncClient

from farmeasy.errors import UpstreamTimeoutError
from farmeasy.services.providers import MOCK_CHAT_REPLY, ProviderGateway


@pytest.mark.asyncio
async def test_chat_mock_reply_without_agent(client: AsyncClient) -> None:
    response = await client.post("/api/chat", json={"message": "When should I irrigate?"})
    assert response.status_code == 200
    assert response.json() == {"reply": MOCK_CHAT_REPLY}


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [{}, {"message": ""}, {"message": "   "}])
async def test_chat_requires_message(client: AsyncClient, body: dict[str, str]) -> None:
    response = await client.post("/api/chat", json=body)
    assert response.status_code == 400
    assert response.json()["message"] == "Message is required"


@pytest.mark.asyncio
async def test_chat_timeout_maps_to_500(client: AsyncClient, monkeypatch: pytest.MonkeyPatch) -> None:
    async def slow_chat(self: ProviderGateway, message: str) -> str:
        raise UpstreamTimeoutError("Chat agent request timed out after 45s", timeout_seconds=45.0)

    monkeypatch.setattr(ProviderGateway, "chat", slow_chat)
    response = await client.post("/api/chat", json={"message": "Hi"})
    assert response.status_code == 500
    assert response.json()["error"] == "upstream_timeout"
    assert "timed out" in response.json()["message"]


@pytest.mark.asyncio
async def test_voice_placeholder(client: AsyncClient) -> None:
    response = await client.post("/api/voice")
    assert response.status_code == 200
    assert response.json() == {"text": "This is a mock voice transcription."}

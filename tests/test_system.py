from __future__ import annotations

import pytest
import structlog
from httpx import AsyncClient
from structlog.testing import capture_logs

from farmeasy.config import Settings
from farmeasy.services.providers import ProviderGateway


@pytest.mark.asyncio
async def test_root_reports_service(client: AsyncClient) -> None:
    response = await client.get("/")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["message"] == "Farm Easy Backend API"
    assert body["timestamp"].endswith("Z")


@pytest.mark.asyncio
async def test_health(client: AsyncClient) -> None:
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["service"] == "farmeasy"


@pytest.mark.asyncio
async def test_request_id_is_propagated(client: AsyncClient) -> None:
    request_id = "farm-request-id"
    response = await client.get("/health", headers={"x-request-id": request_id})
    assert response.headers.get("x-request-id") == request_id


@pytest.mark.asyncio
async def test_request_id_generated_when_missing(client: AsyncClient) -> None:
    response = await client.get("/health")
    generated = response.headers.get("x-request-id")
    assert generated is not None
    assert len(generated) >= 8


@pytest.mark.asyncio
async def test_unknown_route_has_error_body(client: AsyncClient) -> None:
    response = await client.get("/api/nope")
    assert response.status_code == 404
    assert response.json() == {"error": "Not Found"}


@pytest.mark.asyncio
async def test_malformed_body_is_400(client: AsyncClient) -> None:
    response = await client.post("/api/profile", content=b"{not json", headers={"content-type": "application/json"})
    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"


# ── Authentication ──────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_auth_bypassed_without_configured_token(client: AsyncClient) -> None:
    response = await client.get("/api/profile")
    assert response.status_code == 200


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("headers", "code", "message"),
    [
        ({}, "auth_required", "Authorization header missing"),
        ({"Authorization": "Basic abc"}, "auth_format", "Invalid authorization format. Expected: Bearer <token>"),
        ({"Authorization": "Bearer wrong"}, "token_invalid", "Invalid or expired token"),
    ],
)
async def test_protected_routes_reject_bad_tokens(
    client: AsyncClient,
    settings: Settings,
    headers: dict[str, str],
    code: str,
    message: str,
) -> None:
    settings.auth_token = "s3cret"
    response = await client.get("/api/profile", headers=headers)
    assert response.status_code == 401
    assert response.json() == {"error": code, "message": message}


@pytest.mark.asyncio
async def test_valid_token_and_open_setup(client: AsyncClient, settings: Settings) -> None:
    settings.auth_token = "s3cret"

    response = await client.get("/api/kpi", headers={"Authorization": "Bearer s3cret"})
    assert response.status_code == 400

    response = await client.post("/api/setup", json={"name": "Ana"})
    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"


@pytest.mark.asyncio
async def test_lifespan_builds_state_from_disk(settings: Settings, monkeypatch: pytest.MonkeyPatch) -> None:
    from farmeasy import main
    from farmeasy.services.snapshot_store import SnapshotStore

    SnapshotStore(settings.resolved_snapshot_dir).save({"data": {}}, 36.7378, -119.7871)
    monkeypatch.setattr(main, "get_settings", lambda: settings)

    async with main.lifespan(main.app):
        state = main.app.state
        assert state.profile_store.get().name == ""
        assert state.snapshot_store.get_latest_for_location(36.7378, -119.7871) == {"data": {}}
        assert state.aggregator.gateway is state.gateway


# ── Access log ──────────────────────────────────────────────────────────────


def _access_entries(logs: list[dict[str, object]]) -> list[dict[str, object]]:
    return [entry for entry in logs if entry["event"] == "http_request"]


@pytest.mark.asyncio
async def test_access_log_records_auth_outcome(client: AsyncClient, settings: Settings) -> None:
    settings.auth_token = "s3cret"

    with capture_logs() as logs:
        await client.get("/api/profile", headers={"Authorization": "Bearer wrong"})
        await client.get("/api/profile", headers={"Authorization": "Bearer s3cret"})

    rejected, accepted = _access_entries(logs)
    assert (rejected["log_level"], rejected["status_code"], rejected["auth"]) == ("warning", 401, "rejected")
    assert (accepted["log_level"], accepted["status_code"], accepted["auth"]) == ("info", 200, "ok")


@pytest.mark.asyncio
async def test_farm_location_is_bound_to_request_context(
    client: AsyncClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    async def context_echo(self: ProviderGateway, message: str) -> str:
        bound = structlog.contextvars.get_contextvars()
        return f"{bound.get('farm_lat')},{bound.get('farm_lon')}"

    monkeypatch.setattr(ProviderGateway, "chat", context_echo)

    before = await client.post("/api/chat", json={"message": "hello"})
    assert before.json()["reply"] == "None,None"

    await client.post(
        "/api/setup",
        json={
            "name": "Ana Ruiz",
            "email": "ana@example.com",
            "location": {"lat": 36.7378, "lon": -119.7871},
            "crops": ["Almonds"],
        },
    )
    after = await client.post("/api/chat", json={"message": "hello"})
    assert after.json()["reply"] == "36.7378,-119.7871"

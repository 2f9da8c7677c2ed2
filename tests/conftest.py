"""Shared pytest fixtures: API client, tmp-path stores and an offline gateway."""

from __future__ import annotations

import random
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from farmeasy.config import Settings, get_settings
from farmeasy.main import app
from farmeasy.services.aggregator import FarmDataAggregator
from farmeasy.services.profile_store import ProfileStore
from farmeasy.services.providers import ProviderGateway
from farmeasy.services.snapshot_store import SnapshotStore


def _refuse_network(request: httpx.Request) -> httpx.Response:
    raise AssertionError(f"unexpected network call: {request.method} {request.url}")


@pytest.fixture
def settings(tmp_path: Any) -> Settings:
    """Settings isolated from the environment: no credentials, data under tmp_path."""
    return Settings(
        _env_file=None,
        data_dir=tmp_path / "data",
        brightdata_api_key="",
        serp_zone="",
        unlocker_zone="",
        letta_api_key="",
        letta_agent_id="",
        auth_token="",
    )


@pytest.fixture
def offline_transport() -> httpx.MockTransport:
    return httpx.MockTransport(_refuse_network)


@pytest.fixture
def gateway(settings: Settings, offline_transport: httpx.MockTransport) -> ProviderGateway:
    return ProviderGateway(settings, transport=offline_transport)


@pytest.fixture
def profile_store(settings: Settings) -> ProfileStore:
    store = ProfileStore(settings.resolved_profile_path)
    store.load()
    return store


@pytest.fixture
def snapshot_store(settings: Settings) -> SnapshotStore:
    store = SnapshotStore(settings.resolved_snapshot_dir)
    store.rebuild_index()
    return store


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
async def client(
    settings: Settings,
    gateway: ProviderGateway,
    profile_store: ProfileStore,
    snapshot_store: SnapshotStore,
    rng: random.Random,
) -> AsyncGenerator[AsyncClient, None]:
    """HTTPX async client with lifespan disabled and app state built from fixtures."""
    app.dependency_overrides[get_settings] = lambda: settings
    app.state.profile_store = profile_store
    app.state.snapshot_store = snapshot_store
    app.state.legacy_store = SnapshotStore(settings.resolved_legacy_output_dir)
    app.state.gateway = gateway
    app.state.aggregator = FarmDataAggregator(gateway)
    app.state.rng = rng
    original_lifespan = app.router.lifespan_context

    @asynccontextmanager
    async def noop_lifespan(_: Any) -> AsyncGenerator[None, None]:
        yield

    app.router.lifespan_context = noop_lifespan

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as test_client:
        yield test_client

    app.router.lifespan_context = original_lifespan
    app.dependency_overrides.clear()


@pytest.fixture
def composite_record() -> dict[str, Any]:
    """A provider aggregate shaped like real search results for Fresno County."""
    return {
        "soilData": {
            "location": {"county": "Fresno County", "state": "California"},
            "properties": {
                "pH": "7.2",
                "texture": "Sandy Loam",
                "drainage": "Well drained",
                "organicMatter": "1.5%",
                "permeability": "Moderately rapid",
            },
            "keyInsights": "Deep alluvial soils suited to irrigated row crops.",
            "sources": ["https://websoilsurvey.nrcs.usda.gov"],
        },
        "rainfallData": {
            "annual_rainfall": "11.5 inches",
            "monthly_rainfall": {
                "January": "5.12 inches",
                "February": "2.10 inches",
                "March": "1.90 inches",
                "April": "0.90 inches",
                "May": "0.30 inches",
                "June": "0.10 inches",
                "July": "0.01 inches",
                "August": "0.02 inches",
                "September": "0.15 inches",
                "October": "0.60 inches",
                "November": "1.10 inches",
                "December": "2.00 inches",
            },
            "key_findings": [
                "Fresno receives most rain between November and March.",
                "Summers are nearly rainless.",
            ],
        },
        "cropData": {
            "location": "Fresno County",
            "top_crops": [
                {
                    "crop": "Almonds",
                    "annual_profitability": "$2,000 - $5,000/acre",
                    "yield_estimate": "2,000-2,500 lbs/acre",
                    "reason": "Long dry summers and deep soils favour nut orchards.",
                },
                {
                    "crop": "Grapes",
                    "annual_profitability": "$1,500 - $4,000/acre",
                    "yield_estimate": "8-10 tons/acre",
                },
                {
                    "crop": "Tomatoes",
                    "annual_profitability": "Approximate",
                    "yield_estimate": "Varies",
                },
            ],
            "key_findings": {
                "climate_summary": "Hot, dry summers and mild, wet winters.",
                "market_overview": "Strong export demand for tree nuts.",
            },
        },
        "weather": {
            "temp": 88.5,
            "condition": "Clear",
            "humidity": 20,
            "windSpeed": 6.3,
            "icon": "partly-cloudy",
        },
    }

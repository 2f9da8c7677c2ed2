"""Request-scoped accessors for the process-wide state built in the lifespan."""

from __future__ import annotations

import random

from fastapi import Depends, Request

from farmeasy.config import Settings, get_settings
from farmeasy.services.aggregator import FarmDataAggregator
from farmeasy.services.dashboard_service import DashboardService
from farmeasy.services.legacy_pipeline import LegacyPipeline
from farmeasy.services.profile_store import ProfileStore
from farmeasy.services.providers import ProviderGateway
from farmeasy.services.snapshot_store import SnapshotStore


def get_profile_store(request: Request) -> ProfileStore:
	return request.app.state.profile_store


def get_snapshot_store(request: Request) -> SnapshotStore:
	return request.app.state.snapshot_store


def get_legacy_store(request: Request) -> SnapshotStore:
	return request.app.state.legacy_store


def get_gateway(request: Request) -> ProviderGateway:
	return request.app.state.gateway


def get_aggregator(request: Request) -> FarmDataAggregator:
	return request.app.state.aggregator


def get_rng(request: Request) -> random.Random:
	return request.app.state.rng


def get_dashboard_service(
	profile_store: ProfileStore = Depends(get_profile_store),
	snapshot_store: SnapshotStore = Depends(get_snapshot_store),
	aggregator: FarmDataAggregator = Depends(get_aggregator),
	rng: random.Random = Depends(get_rng),
	settings: Settings = Depends(get_settings),
) -> DashboardService:
	return DashboardService(profile_store, snapshot_store, aggregator, rng=rng, settings=settings)


def get_legacy_pipeline(
	gateway: ProviderGateway = Depends(get_gateway),
	store: SnapshotStore = Depends(get_legacy_store),
	settings: Settings = Depends(get_settings),
) -> LegacyPipeline:
	return LegacyPipeline(gateway, store, settings)

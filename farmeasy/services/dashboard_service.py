"""Dashboard read/refresh orchestration and onboarding over the profile and snapshot stores."""

from __future__ import annotations

import asyncio
import random
from datetime import UTC, datetime
from typing import Any

import structlog

from farmeasy.config import Settings, get_settings
from farmeasy.errors import NotFoundError, PersistenceError, ValidationError
from farmeasy.schemas.dashboard import (
	DashboardDataResponse,
	Insight,
	KpiSummary,
	RainfallSeries,
	RevenueMonth,
	SoilProfile,
	Suitability,
)
from farmeasy.schemas.profile import FarmSize, Location, Profile, SetupRequest
from farmeasy.services import transformer
from farmeasy.services.aggregator import FarmDataAggregator
from farmeasy.services.profile_store import ProfileStore
from farmeasy.services.snapshot_store import SnapshotStore

logger = structlog.get_logger("farmeasy.dashboard")


def validate_setup(payload: SetupRequest) -> None:
	"""Reject onboarding payloads before any state is touched."""
	if not payload.name or not payload.email:
		raise ValidationError("Name and email are required")
	location = payload.location
	if location is None or location.lat is None or location.lon is None:
		raise ValidationError("Location with latitude and longitude is required")
	if not payload.crops:
		raise ValidationError("At least one crop must be selected")


def profile_changes_from_setup(payload: SetupRequest) -> dict[str, Any]:
	validate_setup(payload)
	location = payload.location
	crops = payload.crops or payload.preferred_crops or []
	return {
		"name": payload.name,
		"email": payload.email,
		"phone": payload.phone or "",
		"location": Location(
			lat=location.lat,
			lon=location.lon,
			place=location.county or location.place or "Unknown",
		),
		"language": payload.language or "en",
		"soil": payload.soil_type or payload.soil or "Unknown",
		"irrigation": payload.irrigation_type or payload.irrigation or "Unknown",
		"farm_size": payload.farm_size or FarmSize(),
		"crops": crops,
		"selected_crop": crops[0] if crops else "",
	}


class DashboardService:
	"""Per-request facade the dashboard routes call.

	View getters never touch the network: they read the newest snapshot
	for the profile location and derive a view model from its `data`.
	Only `refresh_dashboard_data` runs the aggregator.
	"""

	def __init__(
		self,
		profile_store: ProfileStore,
		snapshot_store: SnapshotStore,
		aggregator: FarmDataAggregator,
		rng: random.Random | None = None,
		settings: Settings | None = None,
	):
		self.profile_store = profile_store
		self.snapshot_store = snapshot_store
		self.aggregator = aggregator
		self.rng = rng or random.Random()
		self.settings = settings or get_settings()

	# ── Onboarding ──────────────────────────────────────────────────────────

	async def setup(self, payload: SetupRequest) -> Profile:
		changes = profile_changes_from_setup(payload)
		profile = await asyncio.to_thread(self.profile_store.update, changes)
		logger.info("setup_completed", email=profile.email, crops=len(profile.crops))
		return profile

	# ── Snapshot access ─────────────────────────────────────────────────────

	def _require_location(self) -> tuple[Profile, Location]:
		profile = self.profile_store.get()
		if profile.location is None:
			raise ValidationError("Profile has no location configured")
		return profile, profile.location

	async def _latest_record(self) -> tuple[Profile, dict[str, Any]]:
		profile, location = self._require_location()
		snapshot = await asyncio.to_thread(
			self.snapshot_store.get_latest_for_location, location.lat, location.lon
		)
		if snapshot is None:
			raise NotFoundError(
				"No data found for this location. Fetch dashboard data first.",
				lat=location.lat,
				lon=location.lon,
			)
		data = snapshot.get("data") if isinstance(snapshot, dict) else None
		return profile, data if isinstance(data, dict) else {}

	def _farm_size_acres(self, profile: Profile) -> float:
		if profile.farm_size is not None and profile.farm_size.value > 0:
			return profile.farm_size.value
		return self.settings.default_farm_size_acres

	# ── Views ───────────────────────────────────────────────────────────────

	async def get_kpi(self) -> KpiSummary:
		profile, record = await self._latest_record()
		return transformer.transform_kpi(record, self._farm_size_acres(profile))

	async def get_suitability(self) -> list[Suitability]:
		_, record = await self._latest_record()
		return transformer.transform_suitability(record)

	async def get_insights(self) -> list[Insight]:
		profile, record = await self._latest_record()
		return transformer.transform_insights(record, self.rng, user_crops=profile.crops)

	async def get_rainfall(self) -> RainfallSeries:
		_, record = await self._latest_record()
		return transformer.transform_rainfall(record, self.rng)

	async def get_soil(self) -> SoilProfile:
		_, record = await self._latest_record()
		return transformer.transform_soil(record)

	async def get_revenue(self) -> list[RevenueMonth]:
		profile, record = await self._latest_record()
		return transformer.transform_revenue(record, self._farm_size_acres(profile), self.rng)

	# ── Refresh ─────────────────────────────────────────────────────────────

	async def refresh_dashboard_data(self) -> DashboardDataResponse:
		"""Aggregate fresh provider data for the profile and persist it as a snapshot.

		A failed snapshot write is logged; the caller still receives the data.
		"""
		profile, location = self._require_location()
		crop = profile.selected_crop or (profile.crops[0] if profile.crops else "")
		place = location.place or f"{location.lat},{location.lon}"

		data = await self.aggregator.get_all_data(place, crop, location.lat, location.lon)
		response = DashboardDataResponse(
			location=location,
			crop=crop,
			timestamp=datetime.now(UTC).isoformat().replace("+00:00", "Z"),
			data=data,
		)
		try:
			await asyncio.to_thread(
				self.snapshot_store.save,
				response.model_dump(mode="json", by_alias=True),
				location.lat,
				location.lon,
			)
		except PersistenceError as exc:
			logger.error("snapshot_persist_failed", lat=location.lat, lon=location.lon, error=exc.message)
		return response

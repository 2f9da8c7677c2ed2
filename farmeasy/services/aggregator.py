"""Concurrent fan-out over the provider gateway producing one composite raw record."""

from __future__ import annotations

import asyncio
from typing import Any

import structlog

from farmeasy.services.providers import ProviderGateway

logger = structlog.get_logger("farmeasy.aggregator")

SOIL_QUERY = "soil properties {location} USDA"
RAINFALL_QUERY = "rainfall {location} annual rainfall inches USDA"
CROP_QUERY = "crops {location} USDA"

COMPOSITE_SLOTS = ("soilData", "rainfallData", "cropData", "weather")


class FarmDataAggregator:
	def __init__(self, gateway: ProviderGateway):
		self.gateway = gateway

	async def fetch_soil_data(self, location: str) -> dict[str, Any]:
		return await self.gateway.fetch_search_content(SOIL_QUERY.format(location=location))

	async def fetch_rainfall_data(self, location: str) -> dict[str, Any]:
		return await self.gateway.fetch_search_content(RAINFALL_QUERY.format(location=location))

	async def fetch_crop_data(self, location: str, crop: str) -> dict[str, Any]:
		"""Search crops for a location, always listing the requested crop last."""
		result = await self.gateway.fetch_search_content(CROP_QUERY.format(location=location))
		upstream_crops = result.get("top_crops")
		if not isinstance(upstream_crops, list):
			upstream_crops = []
		return {
			**result,
			"location": location,
			"top_crops": [
				*upstream_crops,
				{"crop": crop, "annual_profitability": "Approximate", "yield_estimate": "Varies"},
			],
		}

	async def fetch_weather(self, lat: float, lon: float) -> dict[str, Any]:
		return await self.gateway.fetch_weather(lat, lon)

	async def get_all_data(self, location: str, crop: str, lat: float, lon: float) -> dict[str, Any]:
		"""Run the four provider calls concurrently.

		The join is fail-fast: the first exception propagates and the other
		results are discarded. Per-slot degradation only happens inside the
		gateway (placeholder payloads for unconfigured zones).
		"""
		logger.info("aggregate_started", location=location, crop=crop, lat=lat, lon=lon)
		soil, rainfall, crops, weather = await asyncio.gather(
			self.fetch_soil_data(location),
			self.fetch_rainfall_data(location),
			self.fetch_crop_data(location, crop),
			self.fetch_weather(lat, lon),
		)
		logger.info("aggregate_completed", location=location)
		return dict(zip(COMPOSITE_SLOTS, (soil, rainfall, crops, weather)))

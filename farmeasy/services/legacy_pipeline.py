"""Standalone search→scrape pipeline for raw location research."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any
from urllib.parse import urlparse

import structlog

from farmeasy.config import Settings, get_settings
from farmeasy.errors import ConfigurationError, PersistenceError, ValidationError
from farmeasy.schemas.legacy import (
	LegacyLocation,
	LegacyQueryResult,
	LegacyResponse,
	ScrapedContent,
	ScrapedSource,
)
from farmeasy.services.providers import PageResult, ProviderGateway
from farmeasy.services.snapshot_store import SnapshotStore

logger = structlog.get_logger("farmeasy.legacy")

MAX_RESULTS = 3
MAX_PER_DOMAIN = 2
LEGACY_QUERIES = (
	"rainfall data {lat} {lon}",
	"profitable crops {lat} {lon}",
	"soil properties {lat} {lon}",
)


def url_domain(url: str) -> str | None:
	host = urlparse(url).hostname
	if not host:
		return None
	return host.removeprefix("www.")


def select_diverse_urls(search_payload: Any, max_results: int = MAX_RESULTS) -> list[str]:
	"""Pick organic result links in rank order, capped overall and per domain."""
	organic = search_payload.get("organic") if isinstance(search_payload, dict) else None
	if not isinstance(organic, list):
		return []

	urls: list[str] = []
	per_domain: dict[str, int] = {}
	for result in organic:
		if len(urls) >= max_results:
			break
		if not isinstance(result, dict):
			continue
		link = result.get("link") or result.get("url") or result.get("href")
		if not isinstance(link, str):
			continue
		domain = url_domain(link)
		if domain is None or per_domain.get(domain, 0) >= MAX_PER_DOMAIN:
			continue
		urls.append(link)
		per_domain[domain] = per_domain.get(domain, 0) + 1
	return urls


def _query_label(query: str) -> str:
	return query.split(" ", 1)[0]


class LegacyPipeline:
	def __init__(
		self,
		gateway: ProviderGateway,
		store: SnapshotStore,
		settings: Settings | None = None,
	):
		self.gateway = gateway
		self.store = store
		self.settings = settings or get_settings()

	def _check_configuration(self) -> None:
		settings = self.settings
		if not (settings.brightdata_api_key and settings.serp_zone and settings.unlocker_zone):
			raise ConfigurationError("Server configuration error: Missing Bright Data credentials")

	async def run(self, lat: str | None, lon: str | None) -> LegacyResponse:
		if not lat or not lon:
			raise ValidationError("Latitude and longitude are required")
		self._check_configuration()

		logger.info("legacy_started", lat=lat, lon=lon)
		started = time.monotonic()
		results: dict[str, LegacyQueryResult] = {}
		for template in LEGACY_QUERIES:
			query = template.format(lat=lat, lon=lon)
			try:
				outcome = await self._process_query(query)
			except Exception as exc:
				logger.error("legacy_query_failed", query=query, error=str(exc))
				continue
			if outcome is not None:
				results[_query_label(query)] = outcome

		response = LegacyResponse(
			success=True,
			location=LegacyLocation(lat=lat, lon=lon),
			execution_time=round(time.monotonic() - started),
			timestamp=datetime.now(UTC).isoformat().replace("+00:00", "Z"),
			results=results,
		)
		logger.info("legacy_completed", execution_time=response.execution_time, queries=len(results))

		try:
			filename = await asyncio.to_thread(
				self.store.save, response.model_dump(mode="json", by_alias=True), lat, lon
			)
			logger.info("legacy_saved", filename=filename)
		except PersistenceError as exc:
			logger.error("legacy_save_failed", error=exc.message)
		return response

	async def _process_query(self, query: str) -> LegacyQueryResult | None:
		search_payload = await self.gateway.fetch_search_content(query)
		urls = select_diverse_urls(search_payload)
		logger.info("legacy_urls_selected", query=query, count=len(urls))
		if not urls:
			logger.warning("legacy_no_urls", query=query)
			return None

		scraped = list(self._successful(await self.gateway.fetch_pages(urls)))
		return LegacyQueryResult(
			query=query,
			sources_analyzed=len(scraped),
			sources=[
				ScrapedSource(url=item.url, domain=item.domain, content_length=len(item.content))
				for item in scraped
			],
			raw_content=scraped,
		)

	@staticmethod
	def _successful(pages: Iterable[PageResult]) -> Iterable[ScrapedContent]:
		for page in pages:
			if not page.ok:
				continue
			yield ScrapedContent(url=page.url, domain=url_domain(page.url) or "", content=page.content or "")

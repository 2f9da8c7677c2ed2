"""Async gateway over the search/unlock API, Open-Meteo and the Letta chat agent."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote_plus

import httpx
import structlog

from farmeasy.config import Settings, get_settings
from farmeasy.errors import ConfigurationError, UpstreamHTTPError, UpstreamTimeoutError

logger = structlog.get_logger("farmeasy.providers")

PLACEHOLDER_SEARCH_PAYLOAD: dict[str, Any] = {
	"result": "No Bright Data zones configured, using placeholder data.",
}
PLACEHOLDER_PAGE_CONTENT = "Mock response"
MOCK_CHAT_REPLY = "This is a mock response from the AI assistant."

WEATHER_CURRENT_FIELDS = "temperature_2m,weather_code,wind_speed_10m,relative_humidity_2m"
WEATHER_CONDITIONS: dict[int, str] = {
	0: "Clear",
	1: "Mainly Clear",
	2: "Partly Cloudy",
	3: "Overcast",
	45: "Foggy",
	48: "Rime Fog",
	61: "Light Rain",
	63: "Rain",
	65: "Heavy Rain",
	80: "Light Showers",
	81: "Showers",
	82: "Heavy Showers",
}
DEFAULT_WEATHER_CONDITION = "Partly Cloudy"
WEATHER_ICON = "partly-cloudy"


def describe_weather_code(code: Any) -> str:
	try:
		return WEATHER_CONDITIONS.get(int(code), DEFAULT_WEATHER_CONDITION)
	except (TypeError, ValueError):
		return DEFAULT_WEATHER_CONDITION


@dataclass(slots=True)
class PageResult:
	"""Outcome of one URL in a page fan-out: exactly one of content/error is set."""

	url: str
	content: str | None = None
	error: str | None = None

	@property
	def ok(self) -> bool:
		return self.error is None


class ProviderGateway:
	"""Uniform async access to the three upstream capabilities.

	Search and page calls degrade to placeholder data when either zone
	identifier is missing. Chat calls are bounded by the verify/message
	timeouts from settings; no call is retried.
	"""

	def __init__(
		self,
		settings: Settings | None = None,
		transport: httpx.AsyncBaseTransport | None = None,
	):
		self.settings = settings or get_settings()
		self.transport = transport

	def _client(self, timeout: float | None) -> httpx.AsyncClient:
		return httpx.AsyncClient(timeout=timeout, transport=self.transport)

	# ── Search / unlock ─────────────────────────────────────────────────────

	async def fetch_search_content(self, query: str) -> dict[str, Any]:
		if not self.settings.search_zones_configured:
			logger.info("search_placeholder", query=query)
			return dict(PLACEHOLDER_SEARCH_PAYLOAD)

		search_url = f"https://www.google.com/search?q={quote_plus(query)}&brd_json=1"
		response = await self._provider_request(
			{"zone": self.settings.serp_zone, "url": search_url, "format": "raw"}
		)
		try:
			payload = response.json()
		except ValueError:
			return {"raw": response.text}
		if not isinstance(payload, dict):
			return {"results": payload}
		return payload

	async def fetch_page_content(self, url: str) -> str:
		if not self.settings.search_zones_configured:
			return PLACEHOLDER_PAGE_CONTENT

		response = await self._provider_request(
			{
				"zone": self.settings.unlocker_zone,
				"url": url,
				"format": "raw",
				"data_format": "html",
			}
		)
		return response.text

	async def fetch_pages(self, urls: Sequence[str]) -> list[PageResult]:
		"""Fetch every URL concurrently; one failure never cancels its siblings."""
		outcomes = await asyncio.gather(
			*(self.fetch_page_content(url) for url in urls),
			return_exceptions=True,
		)
		results: list[PageResult] = []
		for url, outcome in zip(urls, outcomes):
			if isinstance(outcome, Exception):
				logger.warning("page_fetch_failed", url=url, error=str(outcome))
				results.append(PageResult(url=url, error=str(outcome) or type(outcome).__name__))
			elif isinstance(outcome, BaseException):
				raise outcome
			else:
				results.append(PageResult(url=url, content=outcome))
		return results

	async def _provider_request(self, payload: dict[str, Any]) -> httpx.Response:
		if not self.settings.brightdata_api_key:
			raise ConfigurationError("Missing Bright Data API key")

		headers = {
			"Authorization": f"Bearer {self.settings.brightdata_api_key}",
			"Content-Type": "application/json",
		}
		async with self._client(self.settings.provider_timeout_seconds) as client:
			response = await client.post(self.settings.brightdata_endpoint, headers=headers, json=payload)
		self._raise_for_status("brightdata", response)
		return response

	# ── Weather ─────────────────────────────────────────────────────────────

	async def fetch_weather(self, lat: float, lon: float) -> dict[str, Any]:
		params = {
			"latitude": lat,
			"longitude": lon,
			"current": WEATHER_CURRENT_FIELDS,
		}
		async with self._client(self.settings.provider_timeout_seconds) as client:
			response = await client.get(self.settings.open_meteo_url, params=params)
		self._raise_for_status("open-meteo", response)

		current = response.json().get("current") or {}
		return {
			"temp": current.get("temperature_2m"),
			"condition": describe_weather_code(current.get("weather_code")),
			"humidity": current.get("relative_humidity_2m"),
			"windSpeed": current.get("wind_speed_10m"),
			"icon": WEATHER_ICON,
		}

	# ── Chat agent ──────────────────────────────────────────────────────────

	async def verify_agent(self) -> dict[str, Any]:
		if not self.settings.chat_configured:
			raise ConfigurationError("Chat agent is not configured")
		response = await self._chat_request(
			"GET",
			self._agent_url(),
			timeout=self.settings.chat_verify_timeout_seconds,
		)
		return response.json()

	async def chat(self, message: str) -> str:
		if not self.settings.chat_configured:
			logger.info("chat_mock_reply", message_length=len(message))
			return MOCK_CHAT_REPLY

		response = await self._chat_request(
			"POST",
			f"{self._agent_url()}/messages",
			timeout=self.settings.chat_message_timeout_seconds,
			body={"messages": [{"role": "user", "content": message}]},
		)
		return self._extract_reply(response.json())

	def _agent_url(self) -> str:
		base = self.settings.letta_base_url.rstrip("/")
		return f"{base}/v1/agents/{self.settings.letta_agent_id}"

	async def _chat_request(
		self,
		method: str,
		url: str,
		*,
		timeout: float,
		body: dict[str, Any] | None = None,
	) -> httpx.Response:
		headers = {
			"Authorization": f"Bearer {self.settings.letta_api_key}",
			"Content-Type": "application/json",
		}

		async def _send() -> httpx.Response:
			async with self._client(timeout) as client:
				return await client.request(method, url, headers=headers, json=body)

		try:
			response = await asyncio.wait_for(_send(), timeout=timeout)
		except (TimeoutError, httpx.TimeoutException) as exc:
			raise UpstreamTimeoutError(
				f"Chat agent request timed out after {timeout:g}s",
				timeout_seconds=timeout,
			) from exc
		self._raise_for_status("letta", response)
		return response

	@staticmethod
	def _extract_reply(payload: Any) -> str:
		messages = payload.get("messages") if isinstance(payload, dict) else None
		if not isinstance(messages, list):
			return ""
		for item in reversed(messages):
			if not isinstance(item, dict) or item.get("message_type") != "assistant_message":
				continue
			content = item.get("content")
			if isinstance(content, list):
				return "".join(str(part.get("text") or "") for part in content if isinstance(part, dict))
			return str(content or "")
		return ""

	@staticmethod
	def _raise_for_status(provider: str, response: httpx.Response) -> None:
		if response.is_success:
			return
		logger.warning(
			"upstream_http_error",
			provider=provider,
			status_code=response.status_code,
		)
		raise UpstreamHTTPError(provider, response.status_code, response.text)

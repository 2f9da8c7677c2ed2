"""Structured logging setup and the per-request access log."""

from __future__ import annotations

import logging
import time
import uuid
from typing import Any

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from farmeasy.config import LogFormat, Settings

_configured = False

# Libraries that log every outbound HTTP call at INFO.
_CHATTY_LOGGERS = ("httpx", "httpcore")

# Polled by load balancers; logged at debug only.
QUIET_PATHS = frozenset({"/", "/health"})


def configure_structured_logging(settings: Settings) -> None:
	"""Configure stdlib + structlog once per process."""
	global _configured
	if _configured:
		return

	log_level = getattr(logging, settings.log_level.upper(), logging.INFO)
	if settings.log_format == LogFormat.json:
		renderer: Any = structlog.processors.JSONRenderer()
		logging.basicConfig(level=log_level, format="%(message)s")
	else:
		renderer = structlog.dev.ConsoleRenderer()
		logging.basicConfig(level=log_level)
	for name in _CHATTY_LOGGERS:
		logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

	structlog.configure(
		processors=[
			structlog.contextvars.merge_contextvars,
			structlog.processors.add_log_level,
			structlog.processors.TimeStamper(fmt="iso", utc=True),
			structlog.processors.format_exc_info,
			renderer,
		],
		wrapper_class=structlog.make_filtering_bound_logger(log_level),
		logger_factory=structlog.PrintLoggerFactory(),
		cache_logger_on_first_use=True,
	)
	_configured = True


def farm_context(request: Request) -> dict[str, Any]:
	"""Location of the configured farm, for tagging every log line of a request."""
	store = getattr(request.app.state, "profile_store", None)
	location = store.get().location if store is not None else None
	if location is None:
		return {}
	return {"farm_lat": location.lat, "farm_lon": location.lon}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
	"""Tag a request with its ID and farm location, then log one access line.

	The access line carries the bearer-check outcome recorded by
	`require_token` (`disabled`, `ok`, `rejected`, or absent for open routes).
	Client and server errors are logged at warning.
	"""

	async def dispatch(self, request: Request, call_next):  # type: ignore[override]
		request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
		request.state.request_id = request_id

		structlog.contextvars.clear_contextvars()
		structlog.contextvars.bind_contextvars(request_id=request_id, **farm_context(request))

		logger = structlog.get_logger("farmeasy.request")
		path = request.url.path
		start = time.perf_counter()
		try:
			response = await call_next(request)
		except Exception as exc:
			logger.exception("http_request_failed", method=request.method, path=path, error=str(exc))
			raise

		response.headers["x-request-id"] = request_id
		fields = {
			"method": request.method,
			"path": path,
			"status_code": response.status_code,
			"auth": getattr(request.state, "auth", None),
			"duration_ms": round((time.perf_counter() - start) * 1000.0, 2),
		}
		if path in QUIET_PATHS:
			logger.debug("http_request", **fields)
		elif response.status_code >= 400:
			logger.warning("http_request", **fields)
		else:
			logger.info("http_request", **fields)
		return response

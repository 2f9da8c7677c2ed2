"""Error taxonomy shared by services and mapped to HTTP responses at the edge."""

from __future__ import annotations

from typing import Any


class FarmEasyError(Exception):
	"""Base class for every error the service raises on purpose."""

	status_code: int = 500
	code: str = "internal_error"

	def __init__(self, message: str, **context: Any) -> None:
		super().__init__(message)
		self.message = message
		self.context = context

	def to_detail(self) -> dict[str, Any]:
		return {"error": self.code, "message": self.message, **self.context}


class ConfigurationError(FarmEasyError):
	"""Required credentials are missing; raised before any network call."""

	code = "configuration_error"


class ValidationError(FarmEasyError, ValueError):
	"""A request is missing required fields."""

	status_code = 400
	code = "validation_error"


class NotFoundError(FarmEasyError, LookupError):
	"""Routine absence, e.g. no snapshot recorded yet for a location."""

	status_code = 404
	code = "not_found"


class UpstreamTimeoutError(FarmEasyError):
	code = "upstream_timeout"


class UpstreamHTTPError(FarmEasyError):
	"""Non-2xx answer from a provider; keeps the status and body for diagnostics."""

	code = "upstream_http_error"

	def __init__(self, provider: str, status: int, body: str) -> None:
		super().__init__(
			f"{provider} responded with HTTP {status}",
			provider=provider,
			upstream_status=status,
			upstream_body=body,
		)
		self.provider = provider
		self.status = status
		self.body = body


class PersistenceError(FarmEasyError):
	code = "persistence_error"

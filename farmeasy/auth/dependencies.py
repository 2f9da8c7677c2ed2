"""Static bearer-token guard for the protected API routes."""

from __future__ import annotations

import hmac

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer

from farmeasy.config import Settings, get_settings

bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(code: str, message: str) -> HTTPException:
	return HTTPException(
		status_code=status.HTTP_401_UNAUTHORIZED,
		detail={"error": code, "message": message},
		headers={"WWW-Authenticate": "Bearer"},
	)


async def require_token(
	request: Request,
	settings: Settings = Depends(get_settings),
) -> None:
	"""Check `Authorization: Bearer <token>`; a blank `auth_token` disables the check."""
	expected = settings.auth_token
	if not expected:
		request.state.auth = "disabled"
		return

	header = request.headers.get("authorization")
	request.state.auth = "rejected"
	if not header:
		raise _unauthorized("auth_required", "Authorization header missing")

	credentials = await bearer_scheme(request)
	if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
		raise _unauthorized("auth_format", "Invalid authorization format. Expected: Bearer <token>")

	if not hmac.compare_digest(credentials.credentials.encode("utf-8"), expected.encode("utf-8")):
		raise _unauthorized("token_invalid", "Invalid or expired token")
	request.state.auth = "ok"

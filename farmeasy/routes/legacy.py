"""Raw search→scrape research route."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status

from farmeasy.auth.dependencies import require_token
from farmeasy.dependencies import get_legacy_pipeline
from farmeasy.errors import FarmEasyError
from farmeasy.schemas.legacy import LegacyResponse
from farmeasy.services.legacy_pipeline import LegacyPipeline

router = APIRouter(tags=["legacy"], dependencies=[Depends(require_token)])
logger = structlog.get_logger("farmeasy.routes.legacy")


def _map_error(exc: Exception) -> HTTPException:
	if isinstance(exc, FarmEasyError):
		return HTTPException(status_code=exc.status_code, detail=exc.to_detail())
	logger.exception("legacy_route_failed", error=str(exc))
	return HTTPException(
		status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
		detail={"error": "Failed to process Bright Data request", "message": str(exc)},
	)


@router.get("/brightdata-legacy", response_model=LegacyResponse)
async def brightdata_legacy(
	lat: str | None = Query(default=None),
	lon: str | None = Query(default=None),
	pipeline: LegacyPipeline = Depends(get_legacy_pipeline),
) -> LegacyResponse:
	try:
		return await pipeline.run(lat, lon)
	except Exception as exc:
		raise _map_error(exc) from exc

"""Dashboard view-model routes and the provider refresh."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, status

from farmeasy.auth.dependencies import require_token
from farmeasy.dependencies import get_dashboard_service
from farmeasy.errors import FarmEasyError
from farmeasy.schemas.dashboard import (
	DashboardDataResponse,
	Insight,
	KpiSummary,
	RainfallSeries,
	RevenueMonth,
	SoilProfile,
	Suitability,
)
from farmeasy.services.dashboard_service import DashboardService

router = APIRouter(tags=["dashboard"], dependencies=[Depends(require_token)])
logger = structlog.get_logger("farmeasy.routes.dashboard")


def _map_error(exc: Exception) -> HTTPException:
	if isinstance(exc, FarmEasyError):
		return HTTPException(status_code=exc.status_code, detail=exc.to_detail())
	if isinstance(exc, LookupError):
		return HTTPException(
			status_code=status.HTTP_404_NOT_FOUND,
			detail={"error": "not_found", "message": str(exc)},
		)
	if isinstance(exc, ValueError):
		return HTTPException(
			status_code=status.HTTP_400_BAD_REQUEST,
			detail={"error": "validation_error", "message": str(exc)},
		)
	logger.exception("dashboard_route_failed", error=str(exc))
	return HTTPException(
		status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
		detail={"error": "dashboard_failure", "message": str(exc) or "Failed to build dashboard view"},
	)


@router.get("/kpi", response_model=KpiSummary)
async def get_kpi(service: DashboardService = Depends(get_dashboard_service)) -> KpiSummary:
	try:
		return await service.get_kpi()
	except Exception as exc:
		raise _map_error(exc) from exc


@router.get("/suitability", response_model=list[Suitability])
async def get_suitability(service: DashboardService = Depends(get_dashboard_service)) -> list[Suitability]:
	try:
		return await service.get_suitability()
	except Exception as exc:
		raise _map_error(exc) from exc


@router.get("/insights", response_model=list[Insight])
async def get_insights(service: DashboardService = Depends(get_dashboard_service)) -> list[Insight]:
	try:
		return await service.get_insights()
	except Exception as exc:
		raise _map_error(exc) from exc


@router.get("/rainfall", response_model=RainfallSeries)
async def get_rainfall(service: DashboardService = Depends(get_dashboard_service)) -> RainfallSeries:
	try:
		return await service.get_rainfall()
	except Exception as exc:
		raise _map_error(exc) from exc


@router.get("/soil", response_model=SoilProfile)
async def get_soil(service: DashboardService = Depends(get_dashboard_service)) -> SoilProfile:
	try:
		return await service.get_soil()
	except Exception as exc:
		raise _map_error(exc) from exc


@router.get("/revenue", response_model=list[RevenueMonth])
async def get_revenue(service: DashboardService = Depends(get_dashboard_service)) -> list[RevenueMonth]:
	try:
		return await service.get_revenue()
	except Exception as exc:
		raise _map_error(exc) from exc


@router.get("/dashboard-data", response_model=DashboardDataResponse)
async def get_dashboard_data(
	service: DashboardService = Depends(get_dashboard_service),
) -> DashboardDataResponse:
	try:
		return await service.refresh_dashboard_data()
	except Exception as exc:
		raise _map_error(exc) from exc

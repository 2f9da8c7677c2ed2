"""Onboarding and profile routes."""

from __future__ import annotations

import asyncio

import structlog
from fastapi import APIRouter, Depends, HTTPException, status

from farmeasy.auth.dependencies import require_token
from farmeasy.dependencies import get_dashboard_service, get_profile_store
from farmeasy.errors import FarmEasyError
from farmeasy.schemas.profile import Profile, ProfileUpdate, SetupRequest, SetupResponse
from farmeasy.services.dashboard_service import DashboardService
from farmeasy.services.profile_store import ProfileStore

router = APIRouter(tags=["profile"])
logger = structlog.get_logger("farmeasy.routes.profile")


def _map_error(exc: Exception) -> HTTPException:
	if isinstance(exc, FarmEasyError):
		return HTTPException(status_code=exc.status_code, detail=exc.to_detail())
	if isinstance(exc, ValueError):
		return HTTPException(
			status_code=status.HTTP_400_BAD_REQUEST,
			detail={"error": "validation_error", "message": str(exc)},
		)
	logger.exception("profile_route_failed", error=str(exc))
	return HTTPException(
		status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
		detail={"error": "profile_failure", "message": "Failed to process profile request"},
	)


@router.post("/setup", response_model=SetupResponse)
async def setup(
	payload: SetupRequest,
	service: DashboardService = Depends(get_dashboard_service),
) -> SetupResponse:
	try:
		profile = await service.setup(payload)
	except Exception as exc:
		raise _map_error(exc) from exc
	return SetupResponse(success=True, profile=profile)


@router.get("/profile", response_model=Profile, dependencies=[Depends(require_token)])
async def get_profile(store: ProfileStore = Depends(get_profile_store)) -> Profile:
	return store.get()


@router.post("/profile", response_model=Profile, dependencies=[Depends(require_token)])
async def update_profile(
	payload: ProfileUpdate,
	store: ProfileStore = Depends(get_profile_store),
) -> Profile:
	try:
		return await asyncio.to_thread(store.update, payload)
	except Exception as exc:
		raise _map_error(exc) from exc

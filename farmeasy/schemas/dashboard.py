"""Pydantic schemas for dashboard view models and the raw data endpoint."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import Field

from farmeasy.schemas.profile import CamelModel, Location


class Severity(StrEnum):
	info = "info"
	warn = "warn"
	critical = "critical"


class SubScores(CamelModel):
	soil: int
	climate: int
	water: int
	market: int


class Suitability(CamelModel):
	crop: str
	score: int = Field(ge=0, le=100)
	sub_scores: SubScores
	profitability: str
	yield_estimate: str
	reason: str = ""
	suitability_factors: str = ""


class RainfallMonth(CamelModel):
	month: str
	mm: int
	yield_index: int = Field(ge=60, le=100)


class RainfallSeries(CamelModel):
	shape: str
	annual_total_mm: int
	months: list[RainfallMonth]
	key_findings: list[str] = Field(default_factory=list)


class SoilComposition(CamelModel):
	sand: float
	silt: float
	clay: float
	estimated: bool = False


class SoilProfile(CamelModel):
	location: str = ""
	ph: float = Field(alias="pH")
	texture: str
	drainage: str
	organic_matter: str
	permeability: str = ""
	soil_series: str = ""
	composition: SoilComposition
	insights: str = ""
	sources: list[str] = Field(default_factory=list)


class InsightAction(CamelModel):
	label: str
	href: str | None = None


class Insight(CamelModel):
	id: str
	severity: Severity
	text: str
	action: InsightAction | None = None


class WeatherSnapshot(CamelModel):
	temp: float
	condition: str
	humidity: float
	wind_speed: float
	icon: str = "partly-cloudy"


class KpiSummary(CamelModel):
	weather: WeatherSnapshot
	soil_ph: float = Field(alias="soilpH")
	drainage: str
	estimated_revenue: int


class RevenueMonth(CamelModel):
	month: str
	crop: str
	revenue: int


class DashboardDataResponse(CamelModel):
	location: Location
	crop: str
	timestamp: str
	data: dict[str, Any]

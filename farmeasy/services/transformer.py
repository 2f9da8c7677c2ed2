"""Derive dashboard view models from a composite raw record.

Every function here is total: missing or oddly shaped upstream data is
replaced by fixed defaults instead of raising. Rainfall yield indices,
seasonal spreading of annual totals, insight selection and revenue
variation are intentionally random; pass a seeded `random.Random` to pin
them.
"""

from __future__ import annotations

import math
import random
import re
from typing import Any

from farmeasy.schemas.dashboard import (
	Insight,
	InsightAction,
	KpiSummary,
	RainfallMonth,
	RainfallSeries,
	RevenueMonth,
	Severity,
	SoilComposition,
	SoilProfile,
	SubScores,
	Suitability,
	WeatherSnapshot,
)
from farmeasy.services.shapes import (
	MM_PER_INCH,
	MONTH_NAMES,
	AnnualRainfall,
	MissingRainfall,
	MonthlyRainfall,
	detect_location_label,
	detect_rainfall_shape,
	detect_soil_properties,
	parse_number,
)

MONTH_ABBREVIATIONS = tuple(name[:3] for name in MONTH_NAMES)

DEFAULT_WEATHER: dict[str, Any] = {
	"temp": 72.0,
	"condition": "Partly Cloudy",
	"humidity": 65.0,
	"windSpeed": 8.0,
	"icon": "partly-cloudy",
}
DEFAULT_PH = 6.5
DEFAULT_TEXTURE = "Loam"
DEFAULT_DRAINAGE = "Well drained"
DEFAULT_ORGANIC_MATTER = "2%"
DEFAULT_CLIMATE_SUMMARY = "No climate summary is available for this location yet."
DEFAULT_MARKET_OVERVIEW = "No market overview is available for this location yet."

ACIDIC_PH = 6.0
ALKALINE_PH = 7.5
LOW_ANNUAL_RAINFALL_INCHES = 30.0
LOW_ORGANIC_MATTER_PERCENT = 2.0
INSIGHT_COUNT = 4
MAX_WARNING_INSIGHTS = 2

# Most specific texture first; matched as a substring of the texture label.
TEXTURE_COMPOSITION: tuple[tuple[str, tuple[float, float, float]], ...] = (
	("sandy clay loam", (60.0, 15.0, 25.0)),
	("silty clay loam", (10.0, 55.0, 35.0)),
	("loamy sand", (80.0, 12.0, 8.0)),
	("sandy loam", (60.0, 30.0, 10.0)),
	("silt loam", (20.0, 65.0, 15.0)),
	("clay loam", (35.0, 30.0, 35.0)),
	("sandy clay", (50.0, 5.0, 45.0)),
	("silty clay", (5.0, 45.0, 50.0)),
	("clay", (20.0, 20.0, 60.0)),
	("silt", (5.0, 85.0, 10.0)),
	("sand", (90.0, 5.0, 5.0)),
	("loam", (40.0, 40.0, 20.0)),
)
GENERIC_COMPOSITION = (40.0, 40.0, 20.0)

_PROFIT_RANGE = re.compile(r"\$?([\d,]+)\s*-\s*\$?([\d,]+)")


def _round_half_up(value: float) -> int:
	return int(math.floor(value + 0.5))


def _as_dict(value: Any) -> dict[str, Any]:
	return value if isinstance(value, dict) else {}


def _truncate(text: str, limit: int) -> str:
	return text if len(text) <= limit else f"{text[:limit]}..."


def extract_profitability(text: Any) -> int:
	"""Midpoint of a `"$X - $Y/acre"` range; 0 when no range is present."""
	if not isinstance(text, str):
		return 0
	match = _PROFIT_RANGE.search(text)
	if match is None:
		return 0
	low = int(match.group(1).replace(",", ""))
	high = int(match.group(2).replace(",", ""))
	return _round_half_up((low + high) / 2)


def _crop_data(record: dict[str, Any]) -> dict[str, Any]:
	return _as_dict(record.get("cropData") or record.get("cropsData"))


def _top_crops(record: dict[str, Any]) -> list[dict[str, Any]]:
	crops = _crop_data(record).get("top_crops")
	if not isinstance(crops, list):
		return []
	return [crop for crop in crops if isinstance(crop, dict)]


def _crop_name(crop: dict[str, Any]) -> str:
	return str(crop.get("crop") or "Unknown")


# ── Suitability ─────────────────────────────────────────────────────────────


def suitability_score(index: int) -> int:
	return max(60, 95 - 5 * index)


def sub_scores_for(score: int) -> SubScores:
	if score >= 90:
		soil, climate, water = 95, 92, 88
	elif score >= 70:
		soil, climate, water = 85, 82, 78
	else:
		soil, climate, water = 75, 72, 68
	return SubScores(soil=soil, climate=climate, water=water, market=score)


def transform_suitability(record: dict[str, Any]) -> list[Suitability]:
	"""Rank crops by their position in the upstream list."""
	result: list[Suitability] = []
	for index, crop in enumerate(_top_crops(record)):
		score = suitability_score(index)
		result.append(
			Suitability(
				crop=_crop_name(crop),
				score=score,
				sub_scores=sub_scores_for(score),
				profitability=str(crop.get("annual_profitability") or "N/A"),
				yield_estimate=str(crop.get("yield_estimate") or "N/A"),
				reason=str(crop.get("reason") or ""),
				suitability_factors=str(crop.get("suitability_factors") or ""),
			)
		)
	return result


# ── Rainfall ────────────────────────────────────────────────────────────────


def rainfall_yield_index(mm: float, rng: random.Random) -> int:
	if 50 <= mm <= 100:
		return 90 + rng.randint(0, 10)
	if mm > 100:
		return 80 + rng.randint(0, 10)
	return 60 + rng.randint(0, 20)


def _monthly_mm(record: dict[str, Any], rng: random.Random) -> tuple[str, list[float], float]:
	shape = detect_rainfall_shape(record.get("rainfallData"))
	if isinstance(shape, MonthlyRainfall):
		share = shape.annual_mm / 12 if shape.annual_mm is not None else 0.0
		values = [shape.values_mm.get(name, share) for name in MONTH_NAMES]
		annual = shape.annual_mm if shape.annual_mm is not None else sum(values)
		return shape.kind, values, annual
	if isinstance(shape, (AnnualRainfall, MissingRainfall)):
		share = shape.annual_mm / 12
		values = [share * (1 + rng.uniform(-0.2, 0.2)) for _ in MONTH_NAMES]
		return shape.kind, values, shape.annual_mm
	raise TypeError(f"unhandled rainfall shape: {shape!r}")


def transform_rainfall(record: dict[str, Any], rng: random.Random | None = None) -> RainfallSeries:
	rng = rng or random.Random()
	kind, values, annual_mm = _monthly_mm(record, rng)
	months: list[RainfallMonth] = []
	for abbreviation, value in zip(MONTH_ABBREVIATIONS, values):
		mm = _round_half_up(value)
		months.append(RainfallMonth(month=abbreviation, mm=mm, yield_index=rainfall_yield_index(mm, rng)))

	findings = _as_dict(record.get("rainfallData")).get("key_findings")
	return RainfallSeries(
		shape=kind,
		annual_total_mm=_round_half_up(annual_mm),
		months=months,
		key_findings=[str(item) for item in findings] if isinstance(findings, list) else [],
	)


# ── Soil ────────────────────────────────────────────────────────────────────


def estimate_composition(texture: str) -> SoilComposition:
	label = texture.lower()
	for keyword, (sand, silt, clay) in TEXTURE_COMPOSITION:
		if keyword in label:
			return SoilComposition(sand=sand, silt=silt, clay=clay, estimated=True)
	sand, silt, clay = GENERIC_COMPOSITION
	return SoilComposition(sand=sand, silt=silt, clay=clay, estimated=True)


def transform_soil(record: dict[str, Any]) -> SoilProfile:
	raw = _as_dict(record.get("soilData"))
	props = detect_soil_properties(raw)

	ph = parse_number(props.first("pH", "ph", "PH"))
	texture = str(props.first("texture", "soilTexture", "soil_texture") or DEFAULT_TEXTURE)
	drainage = str(props.first("drainage", "drainageClass", "drainage_class") or DEFAULT_DRAINAGE)
	organic_raw = props.first("organicMatter", "organic_matter")
	if isinstance(organic_raw, (int, float)) and not isinstance(organic_raw, bool):
		organic_matter = f"{organic_raw:g}%"
	else:
		organic_matter = str(organic_raw or DEFAULT_ORGANIC_MATTER)

	sand = parse_number(props.first("sandContent", "sand_content", "sand"))
	silt = parse_number(props.first("siltContent", "silt_content", "silt"))
	clay = parse_number(props.first("clayContent", "clay_content", "clay"))
	if sand is not None and silt is not None and clay is not None:
		composition = SoilComposition(sand=sand, silt=silt, clay=clay)
	else:
		composition = estimate_composition(texture)

	sources = raw.get("sources")
	return SoilProfile(
		location=detect_location_label(raw),
		ph=ph if ph is not None else DEFAULT_PH,
		texture=texture,
		drainage=drainage,
		organic_matter=organic_matter,
		permeability=str(props.first("permeability") or ""),
		soil_series=str(props.first("soilSeries", "soil_series") or ""),
		composition=composition,
		insights=str(raw.get("keyInsights") or raw.get("key_insights") or ""),
		sources=[str(item) for item in sources] if isinstance(sources, list) else [],
	)


# ── Insights ────────────────────────────────────────────────────────────────


def _insight(severity: Severity, text: str, label: str | None = None, href: str | None = None) -> Insight:
	action = InsightAction(label=label, href=href) if label else None
	return Insight(id="0", severity=severity, text=text, action=action)


def _finding_containing(findings: Any, keyword: str) -> str | None:
	if not isinstance(findings, list):
		return None
	for item in findings:
		if isinstance(item, str) and keyword in item.lower():
			return item
	return None


def _extreme_months_text(record: dict[str, Any], keyword: str) -> str | None:
	rainfall = _as_dict(record.get("rainfallData"))
	finding = _finding_containing(rainfall.get("key_findings"), keyword)
	if finding is not None:
		return finding

	shape = detect_rainfall_shape(rainfall)
	if not isinstance(shape, MonthlyRainfall) or len(shape.values_mm) < 3:
		return None
	ordered = sorted(shape.values_mm.items(), key=lambda item: item[1], reverse=keyword == "wettest")
	named = [f"{month} ({_round_half_up(mm)} mm)" for month, mm in ordered[:3]]
	return f"The {keyword} months are {named[0]}, {named[1]}, and {named[2]}."


def _annual_rainfall(record: dict[str, Any]) -> tuple[float, str] | None:
	rainfall = _as_dict(record.get("rainfallData"))
	shape = detect_rainfall_shape(rainfall)
	if isinstance(shape, MissingRainfall):
		return None
	if isinstance(shape, MonthlyRainfall) and shape.annual_mm is None:
		annual_mm = sum(shape.values_mm.values())
	else:
		annual_mm = shape.annual_mm
	inches = annual_mm / MM_PER_INCH
	label = rainfall.get("annual_rainfall")
	return inches, str(label) if isinstance(label, str) and label else f"{inches:.2f} inches"


def build_insight_pool(record: dict[str, Any], user_crops: list[str] | None = None) -> list[Insight]:
	"""Every candidate insight for a record, in template order, before selection."""
	crop_data = _crop_data(record)
	findings = _as_dict(crop_data.get("key_findings"))
	soil = transform_soil(record)
	top_crops = _top_crops(record)
	pool: list[Insight] = []

	climate = findings.get("climate_summary") or DEFAULT_CLIMATE_SUMMARY
	pool.append(_insight(Severity.info, f"Climate: {climate}", "View Climate Data"))

	soil_summary = findings.get("soil_summary") or f"{soil.texture} texture with {soil.drainage.lower()} drainage."
	pool.append(_insight(Severity.info, f"Soil: {soil_summary}", "View Soil Details"))

	driest = _extreme_months_text(record, "driest")
	if driest:
		pool.append(
			_insight(
				Severity.critical,
				f"{driest} Plan irrigation carefully during summer months to ensure crop health.",
				"Irrigation Schedule",
			)
		)

	annual = _annual_rainfall(record)
	if annual is not None:
		inches, label = annual
		if inches < LOW_ANNUAL_RAINFALL_INCHES:
			pool.append(
				_insight(
					Severity.warn,
					f"Annual rainfall ({label}) is below optimal. Implement water-efficient irrigation "
					"systems and consider drought-resistant crop varieties.",
					"Water Conservation Plan",
				)
			)
		else:
			wettest = _extreme_months_text(record, "wettest") or f"Annual rainfall is {label}."
			pool.append(
				_insight(
					Severity.info,
					f"{wettest} Good natural water supply during the wet season. Optimize storage for dry season.",
					"Water Storage Tips",
				)
			)

	if top_crops:
		top = top_crops[0]
		text = f"{_crop_name(top)} is your top opportunity with {top.get('annual_profitability') or 'N/A'} net profit."
		reason = str(top.get("reason") or "")
		if reason:
			text = f"{text} {_truncate(reason, 120)}"
		pool.append(_insight(Severity.info, text, "Crop Details", "#"))

	if soil.ph < ACIDIC_PH:
		pool.append(
			_insight(
				Severity.warn,
				f"Soil pH ({soil.ph:g}) is acidic. Consider lime application to raise pH to optimal range "
				"(6.0-7.0) for better nutrient availability.",
				"Soil Amendment Guide",
			)
		)
	elif soil.ph > ALKALINE_PH:
		pool.append(
			_insight(
				Severity.warn,
				f"Soil pH ({soil.ph:g}) is alkaline. Consider sulfur application to lower pH for improved nutrient uptake.",
				"pH Management",
			)
		)
	else:
		pool.append(
			_insight(
				Severity.info,
				f"Excellent soil conditions! pH ({soil.ph:g}) is optimal. {soil.texture} texture with "
				f"{soil.drainage.lower()} drainage supports healthy root development.",
			)
		)

	top_names = [_crop_name(crop) for crop in top_crops[:3]]
	underperforming = [crop for crop in user_crops or [] if crop not in top_names]
	if underperforming and top_names:
		leaders = " or ".join(top_names[:2])
		pool.append(
			_insight(
				Severity.warn,
				f"{', '.join(underperforming)} may have lower profitability in your area. "
				f"Consider diversifying with top performers like {leaders}.",
				"Crop Comparison",
			)
		)

	market = str(findings.get("market_overview") or DEFAULT_MARKET_OVERVIEW)
	pool.append(_insight(Severity.info, f"Market: {_truncate(market, 180)}", "Market Trends", "#"))

	pool.append(
		_insight(
			Severity.critical,
			"Hot, dry summers ahead! Prepare for high irrigation demand. Monitor soil moisture daily "
			"and adjust watering schedules to prevent crop stress.",
			"Summer Prep Guide",
		)
	)

	organic = parse_number(soil.organic_matter)
	if organic is not None and organic < LOW_ORGANIC_MATTER_PERCENT:
		pool.append(
			_insight(
				Severity.warn,
				f"Soil organic matter ({soil.organic_matter}) is low. Add compost or cover crops to improve "
				"soil health and nutrient retention.",
				"Soil Health Plan",
			)
		)
	else:
		pool.append(
			_insight(
				Severity.info,
				f"Good soil organic matter ({soil.organic_matter}). Maintain with crop rotation and organic "
				"amendments for long-term fertility.",
			)
		)

	return pool


def select_insights(pool: list[Insight], rng: random.Random) -> list[Insight]:
	warnings = [item for item in pool if item.severity != Severity.info]
	infos = [item for item in pool if item.severity == Severity.info]
	rng.shuffle(warnings)
	rng.shuffle(infos)

	selected = warnings[:MAX_WARNING_INSIGHTS]
	selected.extend(infos[: INSIGHT_COUNT - len(selected)])
	return [item.model_copy(update={"id": str(position)}) for position, item in enumerate(selected, start=1)]


def transform_insights(
	record: dict[str, Any],
	rng: random.Random | None = None,
	user_crops: list[str] | None = None,
) -> list[Insight]:
	return select_insights(build_insight_pool(record, user_crops), rng or random.Random())


# ── KPI & revenue ───────────────────────────────────────────────────────────


def _weather_snapshot(raw: Any) -> WeatherSnapshot:
	weather = _as_dict(raw)

	def pick(key: str) -> float:
		value = parse_number(weather.get(key))
		return value if value is not None else DEFAULT_WEATHER[key]

	return WeatherSnapshot(
		temp=pick("temp"),
		condition=str(weather.get("condition") or DEFAULT_WEATHER["condition"]),
		humidity=pick("humidity"),
		wind_speed=pick("windSpeed"),
		icon=str(weather.get("icon") or DEFAULT_WEATHER["icon"]),
	)


def transform_kpi(record: dict[str, Any], farm_size_acres: float | None = None) -> KpiSummary:
	"""Weather, soil pH and drainage, plus a monthly revenue estimate.

	Without a farm size the revenue is the 0 placeholder; with one it is the
	first crop's average profitability scaled to the farm, per month.
	"""
	soil = transform_soil(record)
	revenue = 0
	crops = _top_crops(record)
	if farm_size_acres is not None and crops:
		average = extract_profitability(crops[0].get("annual_profitability"))
		revenue = _round_half_up(average * farm_size_acres / 12)
	return KpiSummary(
		weather=_weather_snapshot(record.get("weather")),
		soil_ph=soil.ph,
		drainage=soil.drainage,
		estimated_revenue=revenue,
	)


def transform_revenue(
	record: dict[str, Any],
	farm_size_acres: float,
	rng: random.Random | None = None,
) -> list[RevenueMonth]:
	rng = rng or random.Random()
	crops = _top_crops(record)[:3]
	result: list[RevenueMonth] = []
	for month in MONTH_ABBREVIATIONS:
		for crop in crops:
			average = extract_profitability(crop.get("annual_profitability"))
			monthly = average * farm_size_acres / 12 * (0.8 + rng.random() * 0.4)
			result.append(RevenueMonth(month=month, crop=_crop_name(crop), revenue=_round_half_up(monthly)))
	return result

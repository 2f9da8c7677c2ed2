"""Explicit variant detection for schema-variable provider payloads.

Rainfall arrives either keyed by full month name, as an annual total only,
or not at all. Soil properties arrive under `properties` or
`soil_properties`, and the location label as a string or a nested object.
Each detector returns one tagged variant so the derivations can branch
exhaustively instead of sniffing types inline.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

MM_PER_INCH = 25.4
DEFAULT_ANNUAL_RAINFALL_INCHES = 30.0

MONTH_NAMES = (
	"January",
	"February",
	"March",
	"April",
	"May",
	"June",
	"July",
	"August",
	"September",
	"October",
	"November",
	"December",
)

_NUMBER = re.compile(r"-?\d+(?:,\d{3})*(?:\.\d+)?")
_MILLIMETRES = re.compile(r"\bmm\b|millimet", re.IGNORECASE)


def parse_number(value: Any) -> float | None:
	"""First number in a value: `"5.12 inches"` → 5.12, `"2%"` → 2.0."""
	if isinstance(value, bool) or value is None:
		return None
	if isinstance(value, (int, float)):
		return float(value)
	match = _NUMBER.search(str(value))
	if match is None:
		return None
	return float(match.group(0).replace(",", ""))


def rainfall_to_mm(value: Any) -> float | None:
	amount = parse_number(value)
	if amount is None:
		return None
	if isinstance(value, str) and _MILLIMETRES.search(value):
		return amount
	return amount * MM_PER_INCH


# ── Rainfall ────────────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class MonthlyRainfall:
	values_mm: dict[str, float]
	annual_mm: float | None = None
	kind: str = field(default="monthly", init=False)


@dataclass(frozen=True, slots=True)
class AnnualRainfall:
	annual_mm: float
	kind: str = field(default="annual", init=False)


@dataclass(frozen=True, slots=True)
class MissingRainfall:
	annual_mm: float = DEFAULT_ANNUAL_RAINFALL_INCHES * MM_PER_INCH
	kind: str = field(default="missing", init=False)


RainfallShape = MonthlyRainfall | AnnualRainfall | MissingRainfall


def detect_rainfall_shape(raw: Any) -> RainfallShape:
	if not isinstance(raw, dict):
		return MissingRainfall()

	annual_mm = rainfall_to_mm(raw.get("annual_rainfall"))
	monthly = raw.get("monthly_rainfall")
	if isinstance(monthly, dict):
		by_name = {str(key).strip().lower(): value for key, value in monthly.items()}
		values: dict[str, float] = {}
		for name in MONTH_NAMES:
			mm = rainfall_to_mm(by_name.get(name.lower()))
			if mm is not None:
				values[name] = mm
		if values:
			return MonthlyRainfall(values_mm=values, annual_mm=annual_mm)

	if annual_mm is not None:
		return AnnualRainfall(annual_mm=annual_mm)
	return MissingRainfall()


# ── Soil ────────────────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class SoilProperties:
	source: str
	values: dict[str, Any]

	def first(self, *names: str) -> Any:
		for name in names:
			value = self.values.get(name)
			if value not in (None, ""):
				return value
		return None


def detect_soil_properties(raw: Any) -> SoilProperties:
	if isinstance(raw, dict):
		for source in ("properties", "soil_properties"):
			candidate = raw.get(source)
			if isinstance(candidate, dict):
				return SoilProperties(source=source, values=candidate)
	return SoilProperties(source="none", values={})


_LOCATION_PARTS = ("name", "place", "city", "county", "state")


def detect_location_label(raw: Any) -> str:
	if not isinstance(raw, dict):
		return ""
	location = raw.get("location")
	if isinstance(location, str) and location.strip():
		return location.strip()
	if isinstance(location, dict):
		parts: list[str] = []
		for key in _LOCATION_PARTS:
			value = location.get(key)
			if isinstance(value, str) and value.strip() and value.strip() not in parts:
				parts.append(value.strip())
		if parts:
			return ", ".join(parts)
	for key in ("pincode", "zip", "zipcode"):
		value = raw.get(key)
		if value not in (None, ""):
			return str(value)
	return ""

from __future__ import annotations

import random
from typing import Any

import pytest

from farmeasy.schemas.dashboard import Severity
from farmeasy.services import transformer
from farmeasy.services.shapes import AnnualRainfall, MissingRainfall, MonthlyRainfall, detect_rainfall_shape

PLACEHOLDER = {"result": "No Bright Data zones configured, using placeholder data."}


def test_extract_profitability_midpoint() -> None:
    assert transformer.extract_profitability("$2,000 - $5,000/acre") == 3500
    assert transformer.extract_profitability("$1,500-$4,001 per acre") == 2751
    assert transformer.extract_profitability("Approximate") == 0
    assert transformer.extract_profitability(None) == 0


# ── Suitability ─────────────────────────────────────────────────────────────


def test_suitability_scores_follow_rank(composite_record: dict[str, Any]) -> None:
    ranked = transformer.transform_suitability(composite_record)

    assert [item.crop for item in ranked] == ["Almonds", "Grapes", "Tomatoes"]
    assert [item.score for item in ranked] == [95, 90, 85]
    assert ranked[0].sub_scores.model_dump() == {"soil": 95, "climate": 92, "water": 88, "market": 95}
    assert ranked[2].sub_scores.model_dump() == {"soil": 85, "climate": 82, "water": 78, "market": 85}
    assert ranked[0].profitability == "$2,000 - $5,000/acre"
    assert "subScores" in ranked[0].model_dump(by_alias=True)


def test_suitability_is_monotonic_with_floor() -> None:
    record = {"cropData": {"top_crops": [{"crop": f"crop-{index}"} for index in range(12)]}}
    scores = [item.score for item in transformer.transform_suitability(record)]

    assert all(earlier >= later for earlier, later in zip(scores, scores[1:]))
    assert min(scores) == 60
    assert transformer.transform_suitability(record)[-1].sub_scores.soil == 75


def test_suitability_reads_legacy_crops_slot() -> None:
    record = {"cropsData": {"top_crops": [{"crop": "Wheat"}]}}
    assert [item.crop for item in transformer.transform_suitability(record)] == ["Wheat"]
    assert transformer.transform_suitability({}) == []


# ── Rainfall ────────────────────────────────────────────────────────────────


def test_rainfall_converts_inches_to_millimetres(composite_record: dict[str, Any], rng: random.Random) -> None:
    series = transformer.transform_rainfall(composite_record, rng)

    assert series.shape == "monthly"
    assert [month.month for month in series.months][:3] == ["Jan", "Feb", "Mar"]
    assert len(series.months) == 12
    assert series.months[0].mm == 130
    assert series.annual_total_mm == 292
    assert series.key_findings[1] == "Summers are nearly rainless."


def test_rainfall_yield_index_bands(rng: random.Random) -> None:
    for _ in range(50):
        assert 90 <= transformer.rainfall_yield_index(75, rng) <= 100
        assert 80 <= transformer.rainfall_yield_index(130, rng) <= 90
        assert 60 <= transformer.rainfall_yield_index(10, rng) <= 80


def test_annual_only_rainfall_is_spread_with_variation(rng: random.Random) -> None:
    series = transformer.transform_rainfall({"rainfallData": {"annual_rainfall": "30 inches"}}, rng)

    assert series.shape == "annual"
    assert series.annual_total_mm == 762
    for month in series.months:
        assert 50 <= month.mm <= 77


def test_missing_rainfall_uses_default_total(rng: random.Random) -> None:
    series = transformer.transform_rainfall({"rainfallData": PLACEHOLDER}, rng)
    assert series.shape == "missing"
    assert series.annual_total_mm == 762
    assert series.key_findings == []


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ({"monthly_rainfall": {"january": "40 mm"}}, MonthlyRainfall),
        ({"annual_rainfall": 12}, AnnualRainfall),
        ({"monthly_rainfall": {"Smarch": "1"}}, MissingRainfall),
        ("not a dict", MissingRainfall),
    ],
)
def test_rainfall_shape_detection(raw: Any, expected: type) -> None:
    assert isinstance(detect_rainfall_shape(raw), expected)


def test_millimetre_values_are_not_converted(rng: random.Random) -> None:
    record = {"rainfallData": {"monthly_rainfall": {"January": "40 mm"}}}
    series = transformer.transform_rainfall(record, rng)
    assert series.months[0].mm == 40
    assert series.months[1].mm == 0


# ── Soil ────────────────────────────────────────────────────────────────────


def test_soil_profile_from_properties(composite_record: dict[str, Any]) -> None:
    soil = transformer.transform_soil(composite_record)

    assert soil.location == "Fresno County, California"
    assert soil.ph == 7.2
    assert soil.texture == "Sandy Loam"
    assert soil.organic_matter == "1.5%"
    assert soil.composition.model_dump() == {"sand": 60.0, "silt": 30.0, "clay": 10.0, "estimated": True}
    assert soil.sources == ["https://websoilsurvey.nrcs.usda.gov"]
    assert soil.model_dump(by_alias=True)["pH"] == 7.2


def test_soil_profile_from_snake_case_bag() -> None:
    record = {
        "soilData": {
            "location": "Kern County",
            "soil_properties": {
                "ph": 5.6,
                "texture": "Clay",
                "sand_content": "22%",
                "silt_content": "30%",
                "clay_content": "48%",
                "organic_matter": 3,
            },
            "key_insights": "Heavy soil.",
        }
    }
    soil = transformer.transform_soil(record)

    assert soil.location == "Kern County"
    assert soil.ph == 5.6
    assert soil.organic_matter == "3%"
    assert soil.composition.model_dump() == {"sand": 22.0, "silt": 30.0, "clay": 48.0, "estimated": False}
    assert soil.insights == "Heavy soil."


def test_soil_defaults_without_data() -> None:
    soil = transformer.transform_soil({"soilData": PLACEHOLDER})

    assert soil.ph == 6.5
    assert soil.texture == "Loam"
    assert soil.drainage == "Well drained"
    assert soil.organic_matter == "2%"
    assert soil.composition.sand == 40.0


@pytest.mark.parametrize(
    ("texture", "sand"),
    [("Silty Clay Loam", 10.0), ("Loamy sand", 80.0), ("Clay", 20.0), ("Peat", 40.0)],
)
def test_composition_estimated_from_texture(texture: str, sand: float) -> None:
    assert transformer.estimate_composition(texture).sand == sand


# ── Insights ────────────────────────────────────────────────────────────────


@pytest.mark.parametrize("seed", range(10))
def test_insights_always_four_with_at_most_two_warnings(composite_record: dict[str, Any], seed: int) -> None:
    insights = transformer.transform_insights(composite_record, random.Random(seed), user_crops=["Almonds", "Cotton"])

    assert len(insights) == 4
    assert [item.id for item in insights] == ["1", "2", "3", "4"]
    assert sum(item.severity != Severity.info for item in insights) == 2


def test_insights_for_empty_record_still_four(rng: random.Random) -> None:
    insights = transformer.transform_insights({}, rng)
    assert len(insights) == 4
    assert sum(item.severity == Severity.critical for item in insights) == 1


def test_insight_pool_flags_conditions(composite_record: dict[str, Any]) -> None:
    pool = transformer.build_insight_pool(composite_record, user_crops=["Almonds", "Cotton"])
    texts = {item.severity: [] for item in pool}
    for item in pool:
        texts[item.severity].append(item.text)

    assert any("below optimal" in text for text in texts[Severity.warn])
    assert any(text.startswith("Cotton may have lower profitability") for text in texts[Severity.warn])
    assert any("organic matter (1.5%) is low" in text for text in texts[Severity.warn])
    assert any(text.startswith("The driest months are July") for text in texts[Severity.critical])
    assert any("pH (7.2) is optimal" in text for text in texts[Severity.info])


def test_acidic_soil_is_a_warning() -> None:
    record = {"soilData": {"properties": {"pH": 5.2}}}
    pool = transformer.build_insight_pool(record)
    assert any(item.severity == Severity.warn and "acidic" in item.text for item in pool)


# ── KPI & revenue ───────────────────────────────────────────────────────────


def test_kpi_projection(composite_record: dict[str, Any]) -> None:
    kpi = transformer.transform_kpi(composite_record)

    assert kpi.weather.temp == 88.5
    assert kpi.weather.condition == "Clear"
    assert kpi.soil_ph == 7.2
    assert kpi.estimated_revenue == 0
    dumped = kpi.model_dump(by_alias=True)
    assert dumped["soilpH"] == 7.2
    assert dumped["weather"]["windSpeed"] == 6.3


def test_kpi_revenue_from_first_crop(composite_record: dict[str, Any]) -> None:
    assert transformer.transform_kpi(composite_record, 50).estimated_revenue == 14583


def test_kpi_default_weather() -> None:
    kpi = transformer.transform_kpi({"weather": {"temp": None}})
    assert kpi.weather.model_dump(by_alias=True) == {
        "temp": 72.0,
        "condition": "Partly Cloudy",
        "humidity": 65.0,
        "windSpeed": 8.0,
        "icon": "partly-cloudy",
    }


def test_revenue_per_month_and_crop(composite_record: dict[str, Any], rng: random.Random) -> None:
    revenue = transformer.transform_revenue(composite_record, 50, rng)

    assert len(revenue) == 36
    assert {item.crop for item in revenue} == {"Almonds", "Grapes", "Tomatoes"}
    for item in revenue:
        if item.crop == "Almonds":
            assert 11666 <= item.revenue <= 17500
        if item.crop == "Tomatoes":
            assert item.revenue == 0

"""Pydantic schemas for the standalone search→scrape pipeline."""

from __future__ import annotations

from pydantic import Field

from farmeasy.schemas.profile import CamelModel


class ScrapedSource(CamelModel):
	url: str
	domain: str
	content_length: int


class ScrapedContent(CamelModel):
	url: str
	domain: str
	content: str


class LegacyQueryResult(CamelModel):
	query: str
	sources_analyzed: int
	sources: list[ScrapedSource] = Field(default_factory=list)
	raw_content: list[ScrapedContent] = Field(default_factory=list)


class LegacyLocation(CamelModel):
	lat: str
	lon: str


class LegacyResponse(CamelModel):
	success: bool
	location: LegacyLocation
	execution_time: int
	timestamp: str
	results: dict[str, LegacyQueryResult] = Field(default_factory=dict)

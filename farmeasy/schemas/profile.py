"""Pydantic schemas for the farm profile and onboarding payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Location(CamelModel):
	lat: float
	lon: float
	place: str = ""


class FarmSize(CamelModel):
	value: float = Field(default=0, ge=0)
	unit: str = "ac"


class Profile(CamelModel):
	name: str = ""
	email: str = ""
	phone: str = ""
	location: Location | None = None
	language: str = ""
	soil: str = ""
	irrigation: str = ""
	farm_size: FarmSize | None = None
	crops: list[str] = Field(default_factory=list)
	selected_crop: str = ""


class ProfileUpdate(CamelModel):
	"""Partial profile; only fields present in the request body are merged."""

	name: str | None = None
	email: str | None = None
	phone: str | None = None
	location: Location | None = None
	language: str | None = None
	soil: str | None = None
	irrigation: str | None = None
	farm_size: FarmSize | None = None
	crops: list[str] | None = None
	selected_crop: str | None = None


class SetupLocation(CamelModel):
	lat: float | None = None
	lon: float | None = None
	county: str | None = None
	place: str | None = None


class SetupRequest(CamelModel):
	name: str | None = None
	email: str | None = None
	phone: str | None = None
	location: SetupLocation | None = None
	crops: list[str] | None = None
	preferred_crops: list[str] | None = None
	soil_type: str | None = None
	soil: str | None = None
	irrigation_type: str | None = None
	irrigation: str | None = None
	farm_size: FarmSize | None = None
	language: str | None = None


class SetupResponse(CamelModel):
	success: bool
	profile: Profile

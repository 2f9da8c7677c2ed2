"""Application settings loaded from environment variables via pydantic-settings."""

from enum import StrEnum
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class LogFormat(StrEnum):
	json = "json"
	console = "console"


class Settings(BaseSettings):
	"""Settings sourced from environment variables or a .env file."""

	model_config = SettingsConfigDict(
		env_file=".env",
		env_file_encoding="utf-8",
		case_sensitive=False,
	)

	# ── Search / unlock provider ────────────────────────────────────────────
	brightdata_api_key: str = ""
	serp_zone: str = ""
	unlocker_zone: str = ""
	brightdata_endpoint: str = "https://api.brightdata.com/request"
	provider_timeout_seconds: float | None = None

	# ── Weather ─────────────────────────────────────────────────────────────
	open_meteo_url: str = "https://api.open-meteo.com/v1/forecast"

	# ── Chat agent ──────────────────────────────────────────────────────────
	letta_api_key: str = ""
	letta_base_url: str = "https://api.letta.com"
	letta_agent_id: str = ""
	chat_verify_timeout_seconds: float = 30.0
	chat_message_timeout_seconds: float = 45.0

	# ── HTTP ────────────────────────────────────────────────────────────────
	cors_origin: str = "http://localhost:5137"
	auth_token: str = ""
	port: int = 3001

	# ── Storage ─────────────────────────────────────────────────────────────
	data_dir: Path = Path("data")
	snapshot_dir: Path | None = None
	profile_path: Path | None = None
	legacy_output_dir: Path | None = None

	# ── Derivations ─────────────────────────────────────────────────────────
	default_farm_size_acres: float = 50.0

	# ── Observability ───────────────────────────────────────────────────────
	log_level: str = "info"
	log_format: LogFormat = LogFormat.console

	@property
	def resolved_snapshot_dir(self) -> Path:
		return self.snapshot_dir or self.data_dir / "snapshots"

	@property
	def resolved_profile_path(self) -> Path:
		return self.profile_path or self.data_dir / "profile.json"

	@property
	def resolved_legacy_output_dir(self) -> Path:
		return self.legacy_output_dir or self.data_dir / "legacy"

	@property
	def search_zones_configured(self) -> bool:
		return bool(self.serp_zone and self.unlocker_zone)

	@property
	def chat_configured(self) -> bool:
		return bool(self.letta_api_key and self.letta_agent_id)


@lru_cache
def get_settings() -> Settings:
	"""Singleton settings instance (cached after first call)."""
	return Settings()

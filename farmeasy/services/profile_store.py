"""Durable single-tenant profile record, kept apart from the snapshot timeline."""

from __future__ import annotations

import json
import os
import threading
from pathlib import Path
from typing import Any

import structlog
from pydantic import ValidationError as PydanticValidationError

from farmeasy.errors import PersistenceError
from farmeasy.schemas.profile import Profile, ProfileUpdate

logger = structlog.get_logger("farmeasy.profile_store")


class ProfileStore:
	"""Owns the one Profile of a running instance.

	Writes are awaited by the caller and replace the file atomically. A
	failed write is logged and swallowed: the in-memory profile stays
	authoritative and the HTTP caller never sees the persistence error.
	Callers hand writes to worker threads, so merge and write run under
	one lock and land on disk in the order they were applied.
	"""

	def __init__(self, path: Path | str):
		self.path = Path(path)
		self._profile = Profile()
		self._lock = threading.Lock()

	def load(self) -> Profile:
		try:
			with self.path.open(encoding="utf-8") as handle:
				raw = json.load(handle)
			self._profile = Profile.model_validate(raw)
			logger.info("profile_loaded", path=str(self.path))
		except FileNotFoundError:
			self._profile = Profile()
			logger.info("profile_initialized_empty", path=str(self.path))
		except (OSError, ValueError, PydanticValidationError) as exc:
			self._profile = Profile()
			logger.warning("profile_unreadable", path=str(self.path), error=str(exc))
		return self._profile

	def get(self) -> Profile:
		return self._profile

	def replace(self, profile: Profile) -> Profile:
		with self._lock:
			self._profile = profile
			self._persist_quietly()
			return self._profile

	def update(self, changes: ProfileUpdate | dict[str, Any]) -> Profile:
		"""Shallow-merge the fields present in `changes` into the profile."""
		if isinstance(changes, dict):
			changes = ProfileUpdate.model_validate(changes)
		updates = changes.model_dump(exclude_unset=True)
		logger.info("profile_updating", fields=sorted(updates))
		with self._lock:
			merged = self._profile.model_dump()
			merged.update(updates)
			self._profile = Profile.model_validate(merged)
			self._persist_quietly()
			return self._profile

	def persist(self) -> None:
		payload = json.dumps(self._profile.model_dump(mode="json", by_alias=True), indent=2)
		tmp_path = self.path.with_name(f"{self.path.name}.tmp")
		try:
			self.path.parent.mkdir(parents=True, exist_ok=True)
			with tmp_path.open("w", encoding="utf-8") as handle:
				handle.write(payload)
			os.replace(tmp_path, self.path)
		except OSError as exc:
			raise PersistenceError(f"Failed to persist profile: {exc}", path=str(self.path)) from exc

	def _persist_quietly(self) -> None:
		try:
			self.persist()
		except PersistenceError as exc:
			logger.error("profile_persist_failed", path=str(self.path), error=exc.message)

"""Append-only, location-keyed JSON snapshot files with an in-memory coordinate index."""

from __future__ import annotations

import bisect
import json
import math
import re
import threading
import time
from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Any

import structlog

from farmeasy.errors import PersistenceError

logger = structlog.get_logger("farmeasy.snapshot_store")

LOCATION_TOLERANCE = 0.0001

_KEY_PATTERN = re.compile(r"^(?P<lat>[0-9.-]+)_(?P<lon>[0-9.-]+)_(?P<ts>\d+)\.json$")
_UNSAFE_COORDINATE_CHARS = re.compile(r"[^0-9.-]")


def sanitize_coordinate(value: str | float) -> str:
	"""Render a coordinate for a file name: digits/dot/minus only.

	Floats use their shortest round-trip form written out positionally, so
	the coordinate parsed back from the name is the one that was saved.
	"""
	if isinstance(value, (int, float)) and not isinstance(value, bool):
		text = format(Decimal(repr(float(value))), "f")
		if "." in text:
			text = text.rstrip("0").rstrip(".")
	else:
		text = str(value)
	return _UNSAFE_COORDINATE_CHARS.sub("", text)


@dataclass(frozen=True, slots=True)
class SnapshotKey:
	filename: str
	lat: float
	lon: float
	timestamp_ms: int

	@property
	def sort_key(self) -> tuple[int, str]:
		return (self.timestamp_ms, self.filename)


def parse_snapshot_key(filename: str) -> SnapshotKey | None:
	match = _KEY_PATTERN.match(filename)
	if match is None:
		return None
	try:
		lat = float(match.group("lat"))
		lon = float(match.group("lon"))
	except ValueError:
		return None
	return SnapshotKey(filename=filename, lat=lat, lon=lon, timestamp_ms=int(match.group("ts")))


def _bucket(lat: float, lon: float) -> tuple[int, int]:
	return (math.floor(lat / LOCATION_TOLERANCE), math.floor(lon / LOCATION_TOLERANCE))


class SnapshotStore:
	"""Persist composite records as `{lat}_{lon}_{epochMillis}.json` units.

	File names are the only persisted index. The in-memory bucket index is
	rebuilt from the directory listing by `rebuild_index` and kept current
	by `save`/`delete`, so reads never re-list the directory. Keys issued by
	one store are strictly increasing: a save landing on an already used
	millisecond is moved to the next free one.

	Methods may be called from worker threads; the index and the key clock
	are guarded by one lock.
	"""

	def __init__(self, directory: Path | str):
		self.directory = Path(directory)
		self._index: dict[tuple[int, int], list[SnapshotKey]] = defaultdict(list)
		self._last_timestamp_ms = 0
		self._lock = threading.RLock()

	def rebuild_index(self) -> int:
		keys = [key for key in map(parse_snapshot_key, self.list_all()) if key is not None]
		with self._lock:
			self._index.clear()
			for key in keys:
				self._add_to_index(key)
				self._last_timestamp_ms = max(self._last_timestamp_ms, key.timestamp_ms)
		indexed = len(keys)
		logger.info("snapshot_index_rebuilt", directory=str(self.directory), indexed=indexed)
		return indexed

	def save(self, record: Any, lat: str | float, lon: str | float) -> str:
		lat_token = sanitize_coordinate(lat)
		lon_token = sanitize_coordinate(lon)
		try:
			content = json.dumps(record, indent=2, ensure_ascii=False)
		except (TypeError, ValueError) as exc:
			raise PersistenceError(f"Failed to save data: {exc}") from exc

		with self._lock:
			try:
				self.directory.mkdir(parents=True, exist_ok=True)
				timestamp = max(int(time.time() * 1000), self._last_timestamp_ms + 1)
				while True:
					filename = f"{lat_token}_{lon_token}_{timestamp}.json"
					try:
						with (self.directory / filename).open("x", encoding="utf-8") as handle:
							handle.write(content)
						break
					except FileExistsError:
						timestamp += 1
			except OSError as exc:
				logger.error("snapshot_save_failed", lat=lat_token, lon=lon_token, error=str(exc))
				raise PersistenceError(f"Failed to save data: {exc}") from exc

			self._last_timestamp_ms = timestamp
			key = parse_snapshot_key(filename)
			if key is not None:
				self._add_to_index(key)
		logger.info("snapshot_saved", filename=filename, size=len(content))
		return filename

	def list_all(self) -> list[str]:
		try:
			self.directory.mkdir(parents=True, exist_ok=True)
			return sorted(path.name for path in self.directory.iterdir() if path.suffix == ".json")
		except OSError as exc:
			raise PersistenceError(f"Failed to list data files: {exc}") from exc

	def read(self, key: str) -> Any:
		path = self._resolve(key)
		try:
			with path.open(encoding="utf-8") as handle:
				return json.load(handle)
		except FileNotFoundError as exc:
			raise PersistenceError(f"Snapshot {key} not found", key=key) from exc
		except (OSError, ValueError) as exc:
			raise PersistenceError(f"Failed to read data: {exc}", key=key) from exc

	def delete(self, key: str) -> None:
		path = self._resolve(key)
		try:
			path.unlink()
		except OSError as exc:
			raise PersistenceError(f"Failed to delete data file: {exc}", key=key) from exc
		parsed = parse_snapshot_key(key)
		if parsed is not None:
			self._remove_from_index(parsed)
		logger.info("snapshot_deleted", filename=key)

	def get_latest_for_location(self, lat: float, lon: float) -> Any | None:
		"""Newest readable snapshot within tolerance of (lat, lon), or None."""
		for key in self.keys_for_location(lat, lon):
			try:
				record = self.read(key.filename)
			except PersistenceError as exc:
				logger.warning("snapshot_skipped", filename=key.filename, error=exc.message)
				self._remove_from_index(key)
				continue
			logger.info("snapshot_latest", lat=lat, lon=lon, filename=key.filename)
			return record
		logger.info("snapshot_missing", lat=lat, lon=lon)
		return None

	def keys_for_location(self, lat: float, lon: float) -> list[SnapshotKey]:
		"""Indexed keys matching (lat, lon) within tolerance, newest first."""
		lat_bucket, lon_bucket = _bucket(lat, lon)
		matches: list[SnapshotKey] = []
		with self._lock:
			for d_lat in (-1, 0, 1):
				for d_lon in (-1, 0, 1):
					for key in self._index.get((lat_bucket + d_lat, lon_bucket + d_lon), ()):
						if abs(key.lat - lat) < LOCATION_TOLERANCE and abs(key.lon - lon) < LOCATION_TOLERANCE:
							matches.append(key)
		matches.sort(key=lambda item: item.sort_key, reverse=True)
		return matches

	def _resolve(self, key: str) -> Path:
		if not key or Path(key).name != key or key in {".", ".."}:
			raise PersistenceError(f"Invalid snapshot key: {key!r}", key=key)
		return self.directory / key

	def _add_to_index(self, key: SnapshotKey) -> None:
		with self._lock:
			entries = self._index[_bucket(key.lat, key.lon)]
			if key not in entries:
				bisect.insort(entries, key, key=lambda item: item.sort_key)

	def _remove_from_index(self, key: SnapshotKey) -> None:
		bucket = _bucket(key.lat, key.lon)
		with self._lock:
			entries = self._index.get(bucket)
			if not entries or key not in entries:
				return
			entries.remove(key)
			if not entries:
				del self._index[bucket]

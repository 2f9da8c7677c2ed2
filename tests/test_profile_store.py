from __future__ import annotations

import json
from pathlib import Path

from farmeasy.schemas.profile import Location, Profile, ProfileUpdate
from farmeasy.services.profile_store import ProfileStore


def test_missing_file_loads_empty_profile(tmp_path: Path) -> None:
    store = ProfileStore(tmp_path / "profile.json")
    profile = store.load()
    assert profile == Profile()
    assert profile.location is None
    assert profile.crops == []


def test_update_merges_only_present_fields_and_persists(tmp_path: Path) -> None:
    path = tmp_path / "profile.json"
    store = ProfileStore(path)
    store.load()
    store.update({"name": "Ana", "crops": ["Almonds"], "location": {"lat": 36.7, "lon": -119.8, "place": "Fresno"}})
    store.update(ProfileUpdate(language="es"))

    profile = store.get()
    assert profile.name == "Ana"
    assert profile.language == "es"
    assert profile.location == Location(lat=36.7, lon=-119.8, place="Fresno")

    on_disk = json.loads(path.read_text(encoding="utf-8"))
    assert on_disk["language"] == "es"
    assert on_disk["selectedCrop"] == ""
    assert ProfileStore(path).load() == profile


def test_camel_case_update_payload(tmp_path: Path) -> None:
    store = ProfileStore(tmp_path / "profile.json")
    store.update({"selectedCrop": "Grapes", "farmSize": {"value": 40, "unit": "ac"}})
    assert store.get().selected_crop == "Grapes"
    assert store.get().farm_size is not None
    assert store.get().farm_size.value == 40


def test_corrupt_file_loads_empty_profile(tmp_path: Path) -> None:
    path = tmp_path / "profile.json"
    path.write_text("[1, 2", encoding="utf-8")
    assert ProfileStore(path).load() == Profile()


def test_failed_write_keeps_in_memory_profile(tmp_path: Path) -> None:
    blocker = tmp_path / "not-a-directory"
    blocker.write_text("", encoding="utf-8")
    store = ProfileStore(blocker / "profile.json")

    profile = store.update({"name": "Ana"})

    assert profile.name == "Ana"
    assert store.get().name == "Ana"
    assert not (blocker / "profile.json").exists()


def test_replace_overwrites_every_field(tmp_path: Path) -> None:
    store = ProfileStore(tmp_path / "profile.json")
    store.update({"name": "Ana", "phone": "555"})
    store.replace(Profile(name="Ben"))
    assert store.get().phone == ""
    assert store.get().name == "Ben"

from __future__ import annotations

import json

from pathlib import Path

import pytest

from facematch.face.profiles import Profile, ProfileBook


def test_default_profiles_cover_reference_labels():
    book = ProfileBook.default()
    assert sorted(book) == ["user1", "user2", "user3", "user4"]
    assert book["user2"] == Profile(name="Deepak", email="jane@example.com", id="2")


def test_load_without_path_gives_defaults():
    assert dict(ProfileBook.load(None)) == dict(ProfileBook.default())


def test_load_from_json_replaces_defaults(tmp_path: Path):
    fp = tmp_path / "profiles.json"
    fp.write_text(
        json.dumps({"alice": {"name": "Alice", "email": "alice@example.com", "id": 7}}),
        encoding="utf-8",
    )
    book = ProfileBook.load(str(fp))
    assert list(book) == ["alice"]
    assert book["alice"].id == "7"
    assert book.to_dict("alice") == {"name": "Alice", "email": "alice@example.com", "id": "7"}
    assert book.to_dict("user1") is None


@pytest.mark.parametrize("payload", ['["user1"]', '{"user1": "Bob"}'])
def test_malformed_profiles_are_rejected(tmp_path: Path, payload: str):
    fp = tmp_path / "profiles.json"
    fp.write_text(payload, encoding="utf-8")
    with pytest.raises(ValueError):
        ProfileBook.load(str(fp))

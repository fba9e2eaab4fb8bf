from __future__ import annotations

import json

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, Mapping, Optional

from facematch.config import DEFAULT_PROFILES
from facematch.utils.log import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Profile:
    name: str
    email: str
    id: str


class ProfileBook(Mapping[str, Profile]):
    """Read-only label -> profile mapping shown when a label matches."""

    def __init__(self, profiles: Mapping[str, Profile]):
        self._profiles: Dict[str, Profile] = dict(profiles)

    def __getitem__(self, label: str) -> Profile:
        return self._profiles[label]

    def __iter__(self) -> Iterator[str]:
        return iter(self._profiles)

    def __len__(self) -> int:
        return len(self._profiles)

    @classmethod
    def from_dict(cls, data: Mapping[str, Mapping]) -> "ProfileBook":
        profiles: Dict[str, Profile] = {}
        for label, rec in data.items():
            if not isinstance(rec, Mapping):
                raise ValueError(f"profile for '{label}' must be an object, got {type(rec).__name__}")
            profiles[str(label)] = Profile(
                name=str(rec.get("name", "")),
                email=str(rec.get("email", "")),
                id=str(rec.get("id", "")),
            )
        return cls(profiles)

    @classmethod
    def default(cls) -> "ProfileBook":
        return cls.from_dict(DEFAULT_PROFILES)

    @classmethod
    def load(cls, path: Optional[str]) -> "ProfileBook":
        """Load profiles from a JSON file; falls back to the built-in defaults when path is None."""
        if not path:
            return cls.default()
        fp = Path(path)
        data = json.loads(fp.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"profiles file must contain a JSON object: {fp}")
        book = cls.from_dict(data)
        logger.info(f"Loaded {len(book)} profiles from {fp}")
        return book

    def to_dict(self, label: str) -> Optional[dict]:
        profile = self._profiles.get(label)
        if profile is None:
            return None
        return {"name": profile.name, "email": profile.email, "id": profile.id}

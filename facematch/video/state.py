from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class MatchState:
    """What the panel shows: a matched label and/or the no-match banner."""

    matched_label: Optional[str] = None
    no_match: bool = False

    def set_matched(self, label: str) -> None:
        self.matched_label = label
        self.no_match = False

    def set_no_match(self) -> None:
        self.matched_label = None
        self.no_match = True

    def as_dict(self) -> dict:
        return {"matched_label": self.matched_label, "no_match": bool(self.no_match)}


class CancellationToken:
    """One-way flag shared by a session and every tick it spawns."""

    def __init__(self):
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

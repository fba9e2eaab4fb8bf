"""Rendering of the video surface, the overlay canvas and the match panel."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import cv2
import numpy as np

from facematch.face.types import Box
from facematch.utils.draw import draw_labeled_box, draw_texts, measure_text

TITLE = "Face Recognition System"
MATCH_TITLE = "✅ Match Found"
NO_MATCH_TEXT = "😕 No match found yet. Make sure your face is clearly visible and matches the known photos."

PANEL_BG = (248, 249, 250)
TITLE_COLOR = (33, 37, 41)
SUCCESS_COLOR = (84, 135, 25)
WARNING_COLOR = (7, 100, 133)
BODY_COLOR = (33, 37, 41)


@dataclass
class Overlay:
    """Canvas over the video: labelled boxes in display coordinates."""

    size: Tuple[int, int]
    items: List[Tuple[Box, str]] = field(default_factory=list)

    def clear(self) -> None:
        self.items = []

    def draw_box(self, box: Box, label: str) -> None:
        self.items.append((box, str(label)))

    def paint(self, image: np.ndarray) -> None:
        for box, label in self.items:
            draw_labeled_box(image, box.xyxy, label)


def panel_lines(state, profiles) -> List[Tuple[str, str]]:
    """Panel content as (text, kind) pairs; kind is 'title', 'success', 'warning' or 'body'."""
    lines: List[Tuple[str, str]] = []
    label = state.matched_label
    if label and label in profiles:
        profile = profiles[label]
        lines.append((MATCH_TITLE, "success"))
        lines.append((f"Name: {profile.name}", "body"))
        lines.append((f"Email: {profile.email}", "body"))
        lines.append((f"User ID: {profile.id}", "body"))
    if state.no_match:
        lines.append((NO_MATCH_TEXT, "warning"))
    return lines


def wrap_text(text: str, font_size: int, max_width: int) -> List[str]:
    words = text.split()
    if not words:
        return []
    out: List[str] = []
    cur = words[0]
    for word in words[1:]:
        candidate = f"{cur} {word}"
        if measure_text(candidate, font_size)[0] <= max_width:
            cur = candidate
        else:
            out.append(cur)
            cur = word
    out.append(cur)
    return out


_KIND_COLORS = {
    "title": TITLE_COLOR,
    "success": SUCCESS_COLOR,
    "warning": WARNING_COLOR,
    "body": BODY_COLOR,
}


def render(
    frame: Optional[np.ndarray],
    overlay: Optional[Overlay],
    state,
    profiles,
    display_size: Tuple[int, int],
    font_size: int = 13,
) -> np.ndarray:
    """Compose title, video (with overlay) and panel into one BGR image."""
    dw, dh = int(display_size[0]), int(display_size[1])
    if frame is None:
        video = np.zeros((dh, dw, 3), dtype=np.uint8)
    else:
        video = cv2.resize(frame, (dw, dh), interpolation=cv2.INTER_LINEAR)
    if overlay is not None:
        overlay.paint(video)

    margin = 8
    line_gap = 6
    rows: List[Tuple[str, str]] = [(TITLE, "title")]
    for text, kind in panel_lines(state, profiles):
        for part in wrap_text(text, font_size, dw - 2 * margin):
            rows.append((part, kind))

    line_h = measure_text("Ag", font_size)[1] + line_gap
    header_h = line_h + 2 * margin
    panel_h = max(0, len(rows) - 1) * line_h + (2 * margin if len(rows) > 1 else 0)

    canvas = np.full((header_h + dh + panel_h, dw, 3), PANEL_BG, dtype=np.uint8)
    canvas[header_h : header_h + dh, :] = video

    items = [(rows[0][0], (margin, margin), font_size + 2, _KIND_COLORS["title"])]
    y = header_h + dh + margin
    for text, kind in rows[1:]:
        items.append((text, (margin, y), font_size, _KIND_COLORS[kind]))
        y += line_h
    draw_texts(canvas, items)
    return canvas

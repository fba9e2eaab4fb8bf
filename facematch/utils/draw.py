from __future__ import annotations

from functools import lru_cache
from typing import Sequence, Tuple

import cv2
import numpy as np
from PIL import Image, ImageDraw, ImageFont

from facematch.config import FONT_LIST

BOX_COLOR = (255, 144, 30)  # BGR, the blue of a default face box
TEXT_COLOR = (255, 255, 255)


@lru_cache(maxsize=128)
def _load_font(font_path: str, font_size: int) -> ImageFont.FreeTypeFont:
    return ImageFont.truetype(font_path, font_size)


@lru_cache(maxsize=64)
def _get_best_font(font_size: int) -> ImageFont.ImageFont:
    """Return the first loadable font from FONT_LIST (cached), else PIL's default."""
    for p in FONT_LIST:
        try:
            return _load_font(p, int(font_size))
        except Exception:
            continue
    return ImageFont.load_default()


def draw_texts(
    img: np.ndarray,
    items: Sequence[Tuple[str, Tuple[int, int], int, Tuple[int, int, int]]],
) -> None:
    """Draw several unicode texts onto one frame with a single PIL conversion.

    Args:
        img: OpenCV BGR image, modified in-place.
        items: sequence of (text, (x, y), font_size_px, bgr_color)
    """
    if img is None or len(items) == 0:
        return

    try:
        pil_img = Image.fromarray(cv2.cvtColor(img, cv2.COLOR_BGR2RGB))
        draw = ImageDraw.Draw(pil_img)
        for text, org, font_size, bgr in items:
            font = _get_best_font(int(font_size))
            rgb_color = (int(bgr[2]), int(bgr[1]), int(bgr[0]))
            draw.text(tuple(org), str(text), font=font, fill=rgb_color)
        img[:] = cv2.cvtColor(np.array(pil_img), cv2.COLOR_RGB2BGR)
    except Exception:
        # PIL unavailable for this frame: plain OpenCV text (no emoji/unicode)
        for text, org, font_size, bgr in items:
            font_scale = max(0.3, int(font_size) / 24.0)
            x, y = int(org[0]), int(org[1]) + int(font_size)
            cv2.putText(
                img,
                str(text).encode("ascii", "ignore").decode("ascii"),
                (x, y),
                cv2.FONT_HERSHEY_SIMPLEX,
                font_scale,
                (int(bgr[0]), int(bgr[1]), int(bgr[2])),
                1,
                cv2.LINE_AA,
            )


def draw_text(img: np.ndarray, text: str, org: Tuple[int, int], font_size: int = 14, color=TEXT_COLOR):
    draw_texts(img, [(str(text), tuple(org), int(font_size), tuple(int(c) for c in color))])


@lru_cache(maxsize=4096)
def measure_text(text: str, font_size: int = 14) -> Tuple[int, int]:
    """Pixel (width, height) of a text; OpenCV estimate when PIL measuring fails."""
    try:
        font = _get_best_font(int(font_size))
        dummy = Image.new("RGB", (10, 10))
        bbox = ImageDraw.Draw(dummy).textbbox((0, 0), text, font=font)
        return int(bbox[2] - bbox[0]), int(bbox[3] - bbox[1])
    except Exception:
        font_scale = max(0.3, float(font_size) / 24.0)
        (w, h), _ = cv2.getTextSize(text, cv2.FONT_HERSHEY_SIMPLEX, font_scale, 1)
        return int(w), int(h)


def draw_labeled_box(
    img: np.ndarray,
    xyxy: Tuple[int, int, int, int],
    label: str,
    color: Tuple[int, int, int] = BOX_COLOR,
    font_size: int = 12,
) -> None:
    """Box outline with its label on a filled strip just below the bottom-left corner."""
    x1, y1, x2, y2 = [int(v) for v in xyxy]
    cv2.rectangle(img, (x1, y1), (x2, y2), color, 2)
    if not label:
        return

    text_w, text_h = measure_text(label, font_size)
    pad = 3
    h = img.shape[0]
    bg_y1 = y2
    if bg_y1 + text_h + pad * 2 > h:
        bg_y1 = max(0, y1 - text_h - pad * 2)
    bg_y2 = bg_y1 + text_h + pad * 2
    cv2.rectangle(img, (x1, bg_y1), (x1 + text_w + pad * 2, bg_y2), color, -1)
    draw_text(img, label, (x1 + pad, bg_y1 + pad), font_size=font_size, color=TEXT_COLOR)

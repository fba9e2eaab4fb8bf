from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np

from facematch.config import UNKNOWN_LABEL
from facematch.utils.math import l2_normalize


@dataclass(frozen=True)
class Box:
    x: float
    y: float
    width: float
    height: float

    @classmethod
    def from_xyxy(cls, x1: float, y1: float, x2: float, y2: float) -> "Box":
        return cls(float(x1), float(y1), float(max(0.0, x2 - x1)), float(max(0.0, y2 - y1)))

    @property
    def xyxy(self) -> Tuple[int, int, int, int]:
        return (
            int(round(self.x)),
            int(round(self.y)),
            int(round(self.x + self.width)),
            int(round(self.y + self.height)),
        )

    def scale(self, sx: float, sy: float) -> "Box":
        return Box(self.x * sx, self.y * sy, self.width * sx, self.height * sy)

    def clip(self, width: int, height: int) -> "Box":
        x1, y1 = max(0.0, self.x), max(0.0, self.y)
        x2 = min(float(width), self.x + self.width)
        y2 = min(float(height), self.y + self.height)
        return Box.from_xyxy(x1, y1, max(x1, x2), max(y1, y2))


@dataclass
class FaceDetection:
    """One detected face: box, descriptor and optional landmarks (N, 2)."""

    box: Box
    descriptor: np.ndarray
    score: float = 1.0
    landmarks: Optional[np.ndarray] = None


@dataclass(frozen=True)
class LabeledDescriptor:
    """Reference descriptors for one identity, stored as a (K, D) normalized matrix."""

    label: str
    descriptors: np.ndarray = field(repr=False)

    def __post_init__(self):
        mat = np.asarray(self.descriptors, dtype=np.float32)
        if mat.ndim == 1:
            mat = mat.reshape(1, -1)
        if mat.size == 0:
            raise ValueError(f"LabeledDescriptor '{self.label}' needs at least one descriptor")
        mat = l2_normalize(mat)
        mat.setflags(write=False)
        object.__setattr__(self, "descriptors", mat)

    @property
    def dim(self) -> int:
        return int(self.descriptors.shape[1])


@dataclass(frozen=True)
class FaceMatch:
    label: str
    distance: float

    @property
    def is_unknown(self) -> bool:
        return self.label == UNKNOWN_LABEL

    def __str__(self) -> str:
        return f"{self.label} ({self.distance:.2f})"


def resize_results(
    detections: Sequence[FaceDetection],
    from_size: Tuple[int, int],
    to_size: Tuple[int, int],
) -> List[FaceDetection]:
    """Scale detections from frame size (w, h) to display size (w, h)."""
    fw, fh = from_size
    tw, th = to_size
    if fw <= 0 or fh <= 0:
        return list(detections)
    sx = float(tw) / float(fw)
    sy = float(th) / float(fh)
    out: List[FaceDetection] = []
    for det in detections:
        landmarks = None
        if det.landmarks is not None:
            landmarks = np.asarray(det.landmarks, dtype=np.float32) * np.array([sx, sy], dtype=np.float32)
        out.append(
            FaceDetection(
                box=det.box.scale(sx, sy),
                descriptor=det.descriptor,
                score=det.score,
                landmarks=landmarks,
            )
        )
    return out

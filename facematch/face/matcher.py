from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from facematch.config import DISTANCE_THRESHOLD, UNKNOWN_LABEL
from facematch.face.types import FaceMatch, LabeledDescriptor
from facematch.utils.math import euclidean_distances, l2_normalize


@dataclass
class MatcherConfig:
    # Best match at or beyond this distance is reported as unknown.
    distance_threshold: float = DISTANCE_THRESHOLD


class FaceMatcher:
    """Nearest-label matcher over a small reference set.

    The distance to a label is the mean Euclidean distance to each of that label's
    reference descriptors. The label with the lowest mean wins only when it is below
    the threshold.
    """

    def __init__(self, references: Sequence[LabeledDescriptor], config: Optional[MatcherConfig] = None):
        self.config = config or MatcherConfig()
        refs = list(references)
        if not refs:
            raise ValueError("FaceMatcher needs at least one labeled descriptor")

        dim = refs[0].dim
        for ref in refs:
            if ref.dim != dim:
                raise ValueError(f"Descriptor length mismatch for '{ref.label}': {ref.dim} != {dim}")

        # Flattened index: matrix (N, D), label_ids (N,) row -> label index, counts (L,)
        self._labels: List[str] = [ref.label for ref in refs]
        self._matrix = np.ascontiguousarray(np.concatenate([ref.descriptors for ref in refs], axis=0))
        self._label_ids = np.concatenate(
            [np.full((ref.descriptors.shape[0],), i, dtype=np.int32) for i, ref in enumerate(refs)]
        )
        self._counts = np.bincount(self._label_ids, minlength=len(refs)).astype(np.float32)
        self._dim = dim

    @property
    def labels(self) -> List[str]:
        return list(self._labels)

    def distances(self, descriptor: np.ndarray) -> List[Tuple[str, float]]:
        """Mean distance per label, in reference order."""
        q = l2_normalize(np.asarray(descriptor, dtype=np.float32).reshape(-1))
        if q.shape[0] != self._dim:
            raise ValueError(f"Descriptor length mismatch: {q.shape[0]} != {self._dim}")

        dists = euclidean_distances(q, self._matrix)
        sums = np.zeros((len(self._labels),), dtype=np.float32)
        np.add.at(sums, self._label_ids, dists.astype(np.float32, copy=False))
        means = sums / self._counts
        return [(label, float(means[i])) for i, label in enumerate(self._labels)]

    def find_best_match(self, descriptor: np.ndarray) -> FaceMatch:
        per_label = self.distances(descriptor)
        best_label, best_dist = min(per_label, key=lambda item: item[1])
        if best_dist >= float(self.config.distance_threshold):
            return FaceMatch(UNKNOWN_LABEL, best_dist)
        return FaceMatch(best_label, best_dist)

from __future__ import annotations

import numpy as np


def l2_normalize(vec: np.ndarray, eps: float = 1e-12) -> np.ndarray:
    """L2-normalize a vector (or 2D array row-wise) safely."""
    arr = np.asarray(vec, dtype=np.float32)
    if arr.ndim == 1:
        denom = float(np.linalg.norm(arr))
        if denom < eps:
            return arr
        return arr / denom
    if arr.ndim == 2:
        norms = np.linalg.norm(arr, axis=1, keepdims=True)
        norms = np.maximum(norms, eps)
        return arr / norms
    raise ValueError(f"Unsupported ndim={arr.ndim}")


def euclidean_distances(query: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """Distances from one query vector to every row of an (N, D) matrix."""
    q = np.asarray(query, dtype=np.float32).reshape(1, -1)
    mat = np.asarray(matrix, dtype=np.float32)
    if mat.ndim == 1:
        mat = mat.reshape(1, -1)
    if mat.shape[1] != q.shape[1]:
        raise ValueError(f"Descriptor length mismatch: {q.shape[1]} != {mat.shape[1]}")
    return np.linalg.norm(mat - q, axis=1)

"""
Descriptor distance metrics.

Each metric maps a query vector (D,) and an index matrix (N, D) to a
vector of N non-negative distances, smaller meaning more similar.

    - euclidean: L2 distance (128-d dlib-style descriptors typically use 0.6)
    - cosine: 1 - cosine similarity, in [0, 2] (ArcFace style embeddings)
"""

import logging
from typing import Callable, Dict

import numpy as np

logger = logging.getLogger(__name__)

DistanceFn = Callable[[np.ndarray, np.ndarray], np.ndarray]


def euclidean_distances(query: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """L2 distance from query to every row of matrix."""
    diff = matrix - query[np.newaxis, :]
    return np.sqrt(np.einsum("ij,ij->i", diff, diff))


def cosine_distances(query: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """
    1 - cosine similarity from query to every row of matrix.

    Zero-norm vectors are treated as maximally dissimilar to everything
    (similarity 0, distance 1).
    """
    query_norm = float(np.linalg.norm(query))
    row_norms = np.linalg.norm(matrix, axis=1)

    if query_norm < 1e-8:
        logger.warning("Zero-norm query descriptor")
        return np.ones(matrix.shape[0], dtype=np.float32)

    safe_norms = np.where(row_norms < 1e-8, 1.0, row_norms)
    sims = (matrix @ query) / (safe_norms * query_norm)
    sims = np.where(row_norms < 1e-8, 0.0, sims)

    # Clamp to [-1, 1] for numerical stability
    sims = np.clip(sims, -1.0, 1.0)
    return (1.0 - sims).astype(np.float32)


METRICS: Dict[str, DistanceFn] = {
    "euclidean": euclidean_distances,
    "cosine": cosine_distances,
}


def get_metric(name: str) -> DistanceFn:
    """
    Look up a metric by name.

    Raises:
        ValueError: If the metric is unknown.
    """
    try:
        return METRICS[name]
    except KeyError:
        raise ValueError(
            f"Unknown distance metric '{name}'. Available: {sorted(METRICS)}"
        ) from None

"""
Matching Module for Face Recognition

Components:
    - metrics: Descriptor distance functions (euclidean, cosine)
    - face_matcher: Nearest enrolled descriptor lookup with a threshold

Usage:
    from facerec.matching import FaceMatcher
"""

from facerec.matching.metrics import (
    METRICS,
    cosine_distances,
    euclidean_distances,
    get_metric,
)
from facerec.matching.face_matcher import FaceMatcher

__all__ = [
    "METRICS",
    "cosine_distances",
    "euclidean_distances",
    "get_metric",
    "FaceMatcher",
]

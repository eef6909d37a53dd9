"""
Face Matcher: nearest enrolled descriptor by vector distance.

The matcher is rebuilt from the full enrolled set whenever the set changes
instead of being updated incrementally. Enrolled sets are small (a handful
to a few dozen identities), so a linear rebuild is negligible.

Usage:
    from facerec.matching import FaceMatcher

    matcher = FaceMatcher(metric="euclidean")
    matcher.build(store.faces())
    result = matcher.find_best_match(query, threshold=0.6)
"""

import logging
from typing import List, Optional, Sequence

import numpy as np

from facerec.exceptions import InvalidInput
from facerec.matching.metrics import get_metric
from facerec.models import MAX_DISTANCE, UNKNOWN_LABEL, EnrolledFace, RecognitionResult

logger = logging.getLogger(__name__)


class FaceMatcher:
    """
    Linear-scan matcher over a (N, D) descriptor matrix.

    Args:
        metric: Distance metric name ("euclidean" or "cosine").
        unknown_label: Label reported when nothing matches.
        max_distance: Distance reported when the matcher is empty.

    Note:
        When several enrolled descriptors share the minimum distance the
        first one in enrollment order wins. This is an implementation
        detail, not a guarantee.
    """

    def __init__(
        self,
        metric: str = "euclidean",
        unknown_label: str = UNKNOWN_LABEL,
        max_distance: float = MAX_DISTANCE,
    ):
        self.metric = metric
        self._distance_fn = get_metric(metric)
        self.unknown_label = unknown_label
        self.max_distance = float(max_distance)

        self._labels: List[str] = []
        self._matrix: Optional[np.ndarray] = None

    @property
    def labels(self) -> List[str]:
        return list(self._labels)

    @property
    def size(self) -> int:
        return len(self._labels)

    @property
    def is_empty(self) -> bool:
        return self._matrix is None

    @property
    def dimension(self) -> Optional[int]:
        return None if self._matrix is None else int(self._matrix.shape[1])

    def build(self, faces: Sequence[EnrolledFace]) -> None:
        """
        Replace the index with the given faces.

        Raises:
            InvalidInput: If the descriptors do not share one dimension.
        """
        if not faces:
            self._labels = []
            self._matrix = None
            logger.debug("Face matcher cleared")
            return

        dim = faces[0].dimension
        for face in faces:
            if face.dimension != dim:
                raise InvalidInput(
                    f"Descriptor dimension mismatch for '{face.label}': "
                    f"{face.dimension} != {dim}"
                )

        self._labels = [face.label for face in faces]
        self._matrix = np.ascontiguousarray(
            np.stack([face.descriptor for face in faces]).astype(np.float32, copy=False)
        )
        logger.info(f"Face matcher updated with {len(self._labels)} enrolled faces")

    def distances(self, query) -> np.ndarray:
        """Distance from query to every enrolled descriptor, in enrollment order."""
        if self._matrix is None:
            return np.empty((0,), dtype=np.float32)

        q = np.asarray(query, dtype=np.float32).ravel()
        if q.shape[0] != self._matrix.shape[1]:
            raise InvalidInput(
                f"Query descriptor dimension mismatch: expected {self._matrix.shape[1]}, "
                f"got {q.shape[0]}"
            )
        if not np.all(np.isfinite(q)):
            raise InvalidInput("Query descriptor contains non-finite values")
        return self._distance_fn(q, self._matrix)

    def find_best_match(self, query, threshold: float) -> RecognitionResult:
        """
        Find the closest enrolled label.

        Args:
            query: Query descriptor (D,).
            threshold: Maximum distance accepted as a match (inclusive).

        Returns:
            RecognitionResult. When the nearest distance exceeds the threshold
            the label is unknown and the distance is that nearest distance.
            An empty matcher answers unknown with max_distance without scanning.

        Raises:
            InvalidInput: On a negative threshold or mismatched query dimension.
        """
        if threshold < 0:
            raise InvalidInput(f"Threshold must be non-negative, got {threshold}")

        if self._matrix is None:
            return RecognitionResult.unknown(self.max_distance, self.unknown_label)

        dists = self.distances(query)
        best_idx = int(np.argmin(dists))
        best_distance = float(dists[best_idx])

        if best_distance <= threshold:
            return RecognitionResult(
                label=self._labels[best_idx],
                distance=best_distance,
                is_match=True,
            )
        return RecognitionResult.unknown(best_distance, self.unknown_label)

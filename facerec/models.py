"""
Data classes shared by the store, matcher, recognizer and detector.

    - EnrolledFace: one enrolled identity (label + descriptor)
    - BoundingBox / DetectionResult: output of the external face detector
    - RecognitionResult: outcome of matching one detection
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

import numpy as np

UNKNOWN_LABEL = "unknown"
MAX_DISTANCE = 1.0


def _now_iso() -> str:
    return datetime.now().isoformat()


@dataclass
class EnrolledFace:
    """
    An enrolled identity.

    Attributes:
        label: Unique, case-sensitive name of the identity.
        descriptor: Face embedding, shape (D,), dtype float32.
        enrolled_at: ISO-8601 enrollment timestamp. Informational only.
    """

    label: str
    descriptor: np.ndarray
    enrolled_at: str = field(default_factory=_now_iso)

    def __post_init__(self):
        self.descriptor = np.asarray(self.descriptor, dtype=np.float32).ravel()

    @property
    def dimension(self) -> int:
        """Return the descriptor length."""
        return int(self.descriptor.shape[0])

    def to_record(self) -> Dict[str, Any]:
        """Serialize to the persisted record layout."""
        return {
            "descriptor": [float(v) for v in self.descriptor],
            "label": self.label,
            "enrolledAt": self.enrolled_at,
        }

    @classmethod
    def from_record(cls, label: str, record: Dict[str, Any]) -> "EnrolledFace":
        """
        Build an EnrolledFace from a persisted record.

        Raises:
            ValueError / TypeError / KeyError: If the record is malformed.
        """
        if not isinstance(record, dict):
            raise TypeError(f"Record for '{label}' is not an object")
        descriptor = np.asarray(record["descriptor"], dtype=np.float32)
        if descriptor.ndim != 1 or descriptor.size == 0:
            raise ValueError(f"Record for '{label}' has an invalid descriptor")
        if not np.all(np.isfinite(descriptor)):
            raise ValueError(f"Record for '{label}' has non-finite values")
        enrolled_at = record.get("enrolledAt") or _now_iso()
        return cls(label=str(label), descriptor=descriptor, enrolled_at=str(enrolled_at))


@dataclass(frozen=True)
class BoundingBox:
    """Face region in source image coordinates (pixels)."""

    x: float
    y: float
    width: float
    height: float

    @classmethod
    def from_corners(cls, x1: float, y1: float, x2: float, y2: float) -> "BoundingBox":
        return cls(x=float(x1), y=float(y1), width=float(x2 - x1), height=float(y2 - y1))

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


@dataclass(frozen=True)
class DetectionResult:
    """
    A single face found by the external detector.

    Attributes:
        bounding_box: Face region in frame coordinates.
        score: Detector confidence in [0, 1].
        descriptor: Embedding (D,) float32, or None when not computed.
        landmarks: (K, 2) facial points, or None. Presentation only.
    """

    bounding_box: BoundingBox
    score: float = 1.0
    descriptor: Optional[np.ndarray] = None
    landmarks: Optional[np.ndarray] = None

    @property
    def has_descriptor(self) -> bool:
        return self.descriptor is not None and np.asarray(self.descriptor).size > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bounding_box": self.bounding_box.to_dict(),
            "score": float(self.score),
            "has_descriptor": self.has_descriptor,
            "landmarks": self.landmarks.tolist() if self.landmarks is not None else None,
        }


@dataclass(frozen=True)
class RecognitionResult:
    """
    Outcome of matching one query descriptor.

    Attributes:
        label: Matched label, or UNKNOWN_LABEL.
        distance: Distance to the nearest enrolled descriptor (smaller = closer).
        is_match: True iff a label matched within the threshold.
    """

    label: str
    distance: float
    is_match: bool

    @classmethod
    def unknown(cls, distance: float = MAX_DISTANCE, label: str = UNKNOWN_LABEL) -> "RecognitionResult":
        return cls(label=label, distance=float(distance), is_match=False)

    @property
    def confidence(self) -> float:
        """Display confidence, 1 - distance clamped to [0, 1]."""
        return max(0.0, min(1.0, 1.0 - self.distance))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "distance": self.distance,
            "is_match": self.is_match,
            "confidence": self.confidence,
        }


class DuplicateAction(str, Enum):
    """Decision returned by a duplicate-label policy."""

    OVERWRITE = "overwrite"
    ABORT = "abort"

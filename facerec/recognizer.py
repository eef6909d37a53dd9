"""
Face Recognizer: enrollment and recognition over a DescriptorStore.

The recognizer owns a FaceMatcher and rebuilds it synchronously whenever the
store changes, so a recognition issued after enroll()/remove() returns always
sees the new enrolled set.

Overwriting an existing label goes through a duplicate-label policy
(`label -> DuplicateAction`). Interactive front ends pass a policy that asks
the user; the default overwrites.

Usage:
    from facerec.descriptor_store import DescriptorStore
    from facerec.recognizer import FaceRecognizer

    store = DescriptorStore(backend).open()
    recognizer = FaceRecognizer(store, threshold=0.6)

    recognizer.enroll_from_detection(detections[0], "Alice")
    results = recognizer.recognize_all(detections)
"""

import logging
import random
import time
from typing import Any, Callable, Dict, List, Optional, Sequence

import numpy as np

from facerec.config import DEFAULT_CONFIG
from facerec.descriptor_store import DescriptorStore, validate_descriptor, validate_label
from facerec.exceptions import EnrollmentAborted, InvalidInput, MissingDescriptor
from facerec.matching import FaceMatcher
from facerec.models import (
    DetectionResult,
    DuplicateAction,
    EnrolledFace,
    RecognitionResult,
)

logger = logging.getLogger(__name__)

DuplicateLabelPolicy = Callable[[str], DuplicateAction]

DEFAULT_THRESHOLD = 0.6


def always_overwrite(label: str) -> DuplicateAction:
    return DuplicateAction.OVERWRITE


def never_overwrite(label: str) -> DuplicateAction:
    return DuplicateAction.ABORT


class FaceRecognizer:
    """
    Coordinates the descriptor store and the matcher.

    Args:
        store: An explicitly constructed (and opened) DescriptorStore.
        matcher: Matcher to keep in sync with the store. A euclidean
                 FaceMatcher is created if omitted.
        threshold: Default maximum distance for a match.
        on_duplicate_label: Policy consulted before overwriting a label.
    """

    def __init__(
        self,
        store: DescriptorStore,
        matcher: Optional[FaceMatcher] = None,
        threshold: float = DEFAULT_THRESHOLD,
        on_duplicate_label: Optional[DuplicateLabelPolicy] = None,
    ):
        self.store = store
        self.matcher = matcher if matcher is not None else FaceMatcher()
        self.threshold = threshold
        self.on_duplicate_label = on_duplicate_label or always_overwrite

        self.matcher.build(self.store.faces())
        self.store.add_listener(self._on_store_changed)

    @classmethod
    def from_config(cls, store: DescriptorStore, recognition_config: Dict[str, Any]) -> "FaceRecognizer":
        """
        Build a recognizer from the `recognition` configuration section.

        Keys missing from the section take their DEFAULT_CONFIG values.
        """
        settings = {**DEFAULT_CONFIG["recognition"], **recognition_config}
        matcher = FaceMatcher(
            metric=settings["metric"],
            unknown_label=settings["unknown_label"],
            max_distance=settings["max_distance"],
        )
        return cls(store, matcher=matcher, threshold=settings["threshold"])

    def close(self) -> None:
        """Stop tracking store changes."""
        self.store.remove_listener(self._on_store_changed)

    def _on_store_changed(self, store: DescriptorStore) -> None:
        self.matcher.build(store.faces())

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    @property
    def threshold(self) -> float:
        return self._threshold

    @threshold.setter
    def threshold(self, value: float) -> None:
        value = float(value)
        if value < 0:
            raise InvalidInput(f"Threshold must be non-negative, got {value}")
        self._threshold = value

    # ------------------------------------------------------------------
    # Enrollment
    # ------------------------------------------------------------------

    def enroll(
        self,
        label: str,
        descriptor,
        on_duplicate: Optional[DuplicateLabelPolicy] = None,
    ) -> EnrolledFace:
        """
        Enroll a descriptor under a label.

        Raises:
            InvalidInput: Empty label or invalid descriptor.
            EnrollmentAborted: The label exists and the policy said ABORT.
            PersistenceError: The store could not be written.
        """
        validate_label(label)
        validate_descriptor(descriptor)

        if label in self.store:
            policy = on_duplicate or self.on_duplicate_label
            action = DuplicateAction(policy(label))
            if action is DuplicateAction.ABORT:
                logger.info(f"Enrollment of existing label '{label}' cancelled")
                raise EnrollmentAborted(label)

        return self.store.enroll(label, descriptor)

    def enroll_from_detection(
        self,
        detection: DetectionResult,
        label: str,
        on_duplicate: Optional[DuplicateLabelPolicy] = None,
    ) -> EnrolledFace:
        """
        Enroll the descriptor of a detection.

        The label is stripped of surrounding whitespace first.

        Raises:
            MissingDescriptor: If the detection carries no descriptor.
            InvalidInput / EnrollmentAborted / PersistenceError: As enroll().
        """
        if not detection.has_descriptor:
            raise MissingDescriptor("Face descriptor not available. Please try again.")

        if label is None or not label.strip():
            raise InvalidInput("Name is required for face enrollment")

        return self.enroll(label.strip(), detection.descriptor, on_duplicate=on_duplicate)

    def remove(self, label: str) -> bool:
        """Remove a label. Returns False if it was not enrolled."""
        return self.store.remove(label)

    def clear_all(self) -> None:
        self.store.clear_all()

    # ------------------------------------------------------------------
    # Recognition
    # ------------------------------------------------------------------

    def recognize(self, descriptor, threshold: Optional[float] = None) -> RecognitionResult:
        """Match a single descriptor. A missing or empty descriptor is unknown at max distance."""
        if descriptor is None or np.asarray(descriptor).size == 0:
            return RecognitionResult.unknown(self.matcher.max_distance, self.matcher.unknown_label)
        if threshold is None:
            threshold = self.threshold
        return self.matcher.find_best_match(descriptor, threshold)

    def recognize_all(
        self,
        detections: Sequence[DetectionResult],
        threshold: Optional[float] = None,
    ) -> List[RecognitionResult]:
        """
        Match every detection.

        Returns:
            One RecognitionResult per detection, in the same order. Detections
            without a descriptor are reported unknown at max distance without
            consulting the matcher.
        """
        if threshold is None:
            threshold = self.threshold

        results = []
        for detection in detections:
            if detection.has_descriptor:
                results.append(self.matcher.find_best_match(detection.descriptor, threshold))
            else:
                results.append(
                    RecognitionResult.unknown(self.matcher.max_distance, self.matcher.unknown_label)
                )
        return results

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def list_labels(self) -> List[str]:
        return self.store.list_labels()

    @property
    def enrollment_count(self) -> int:
        return self.store.count

    @property
    def has_enrolled_faces(self) -> bool:
        return self.store.count > 0

    def get_stats(self) -> Dict[str, Any]:
        """Summary used by status displays and the /stats endpoint."""
        return {
            "enrolled_count": self.enrollment_count,
            "has_enrolled_faces": self.has_enrolled_faces,
            "enrolled_labels": self.list_labels(),
            "threshold": self.threshold,
            "metric": self.matcher.metric,
        }

    @staticmethod
    def generate_label() -> str:
        """Default name suggested for a new face, e.g. "Person_1767268800000_42"."""
        timestamp = int(time.time() * 1000)
        return f"Person_{timestamp}_{random.randint(0, 999)}"

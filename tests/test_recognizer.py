"""
Tests for the FaceRecognizer.

This test suite verifies:
- Enrollment through the recognizer and the duplicate-label policy
- Recognition of single descriptors and whole detection lists
- Matcher rebuild after every store change
- Label generation and statistics

Run with: pytest tests/test_recognizer.py -v
"""

import os
import re
import sys
from unittest.mock import MagicMock

import numpy as np
import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from facerec.config import DEFAULT_CONFIG
from facerec.descriptor_store import DescriptorStore
from facerec.exceptions import EnrollmentAborted, InvalidInput, MissingDescriptor
from facerec.kv_backends import MemoryKeyValueStore
from facerec.matching import FaceMatcher
from facerec.models import BoundingBox, DetectionResult, DuplicateAction
from facerec.recognizer import (
    DEFAULT_THRESHOLD,
    FaceRecognizer,
    always_overwrite,
    never_overwrite,
)


def unit(index: int, dim: int = 128) -> np.ndarray:
    vec = np.zeros(dim, dtype=np.float32)
    vec[index] = 1.0
    return vec


def detection(descriptor=None, x: float = 0.0) -> DetectionResult:
    return DetectionResult(
        bounding_box=BoundingBox(x=x, y=0.0, width=100.0, height=100.0),
        score=0.9,
        descriptor=descriptor,
    )


@pytest.fixture
def store():
    s = DescriptorStore(MemoryKeyValueStore()).open()
    yield s
    s.close()


@pytest.fixture
def recognizer(store):
    r = FaceRecognizer(store)
    yield r
    r.close()


# ============================================================
# Enrollment
# ============================================================

class TestEnrollment:
    """Tests for enrolling through the recognizer."""

    def test_enroll_from_detection(self, recognizer):
        face = recognizer.enroll_from_detection(detection(unit(0)), "Alice")

        assert face.label == "Alice"
        assert recognizer.enrollment_count == 1
        assert recognizer.has_enrolled_faces

    def test_enroll_from_detection_strips_label(self, recognizer):
        recognizer.enroll_from_detection(detection(unit(0)), "  Alice  ")
        assert recognizer.list_labels() == ["Alice"]

    def test_enroll_from_detection_without_descriptor(self, recognizer):
        with pytest.raises(MissingDescriptor):
            recognizer.enroll_from_detection(detection(None), "Alice")
        assert recognizer.enrollment_count == 0

    @pytest.mark.parametrize("label", ["", "   ", None])
    def test_enroll_from_detection_empty_label(self, recognizer, label):
        with pytest.raises(InvalidInput):
            recognizer.enroll_from_detection(detection(unit(0)), label)

    def test_default_policy_overwrites(self, recognizer):
        recognizer.enroll("Alice", unit(0))
        recognizer.enroll("Alice", unit(1))

        assert recognizer.enrollment_count == 1
        np.testing.assert_allclose(recognizer.store.get("Alice").descriptor, unit(1))
        assert recognizer.recognize(unit(0)).label == "unknown"
        assert recognizer.recognize(unit(1)).label == "Alice"

    def test_invalid_descriptor_rejected_before_policy(self, recognizer):
        recognizer.enroll("Alice", unit(0))
        policy = MagicMock(return_value=DuplicateAction.OVERWRITE)

        bad = unit(1)
        bad[3] = np.nan
        with pytest.raises(InvalidInput):
            recognizer.enroll("Alice", bad, on_duplicate=policy)
        with pytest.raises(InvalidInput):
            recognizer.enroll("Alice", [], on_duplicate=policy)

        policy.assert_not_called()
        np.testing.assert_allclose(recognizer.store.get("Alice").descriptor, unit(0))

    def test_abort_policy_keeps_existing(self, recognizer):
        recognizer.enroll("Alice", unit(0))

        with pytest.raises(EnrollmentAborted) as exc_info:
            recognizer.enroll("Alice", unit(1), on_duplicate=never_overwrite)

        assert exc_info.value.label == "Alice"
        np.testing.assert_allclose(recognizer.store.get("Alice").descriptor, unit(0))

    def test_policy_only_consulted_for_existing_label(self, recognizer):
        policy = MagicMock(return_value=DuplicateAction.ABORT)

        recognizer.enroll("Alice", unit(0), on_duplicate=policy)
        policy.assert_not_called()

        with pytest.raises(EnrollmentAborted):
            recognizer.enroll("Alice", unit(1), on_duplicate=policy)
        policy.assert_called_once_with("Alice")

    def test_constructor_policy_used_by_default(self, store):
        recognizer = FaceRecognizer(store, on_duplicate_label=never_overwrite)
        recognizer.enroll("Alice", unit(0))

        with pytest.raises(EnrollmentAborted):
            recognizer.enroll("Alice", unit(1))

        # A per-call policy takes precedence
        recognizer.enroll("Alice", unit(1), on_duplicate=always_overwrite)
        np.testing.assert_allclose(store.get("Alice").descriptor, unit(1))

    def test_policy_may_return_plain_string(self, recognizer):
        recognizer.enroll("Alice", unit(0))
        with pytest.raises(EnrollmentAborted):
            recognizer.enroll("Alice", unit(1), on_duplicate=lambda label: "abort")

    def test_remove_and_clear(self, recognizer):
        recognizer.enroll("Alice", unit(0))
        recognizer.enroll("Bob", unit(1))

        assert recognizer.remove("Alice") is True
        assert recognizer.remove("Alice") is False
        recognizer.clear_all()
        assert not recognizer.has_enrolled_faces


# ============================================================
# Recognition
# ============================================================

class TestRecognition:
    """Tests for recognize / recognize_all."""

    def test_alice_and_bob(self, recognizer):
        recognizer.enroll("Alice", unit(0))
        recognizer.enroll("Bob", unit(1))

        near_alice = unit(0) * 0.95 + unit(2) * 0.05
        stranger = unit(5)

        results = recognizer.recognize_all([
            detection(near_alice, x=10),
            detection(unit(1), x=200),
            detection(stranger, x=400),
        ])

        assert [r.label for r in results] == ["Alice", "Bob", "unknown"]
        assert [r.is_match for r in results] == [True, True, False]
        assert results[2].distance == pytest.approx(np.sqrt(2), rel=1e-5)

    def test_detection_without_descriptor_skips_matcher(self, store):
        matcher = FaceMatcher()
        recognizer = FaceRecognizer(store, matcher=matcher)
        recognizer.enroll("Alice", unit(0))
        matcher.find_best_match = MagicMock(side_effect=AssertionError("should not be called"))

        results = recognizer.recognize_all([detection(None)])

        assert len(results) == 1
        assert results[0].label == "unknown"
        assert results[0].distance == 1.0
        assert results[0].is_match is False

    def test_recognize_all_empty_store_keeps_length(self, recognizer):
        results = recognizer.recognize_all([detection(unit(0)), detection(None)])

        assert len(results) == 2
        assert all(r.label == "unknown" and r.distance == 1.0 for r in results)

    def test_recognize_all_no_detections(self, recognizer):
        assert recognizer.recognize_all([]) == []

    def test_recognize_none_descriptor(self, recognizer):
        result = recognizer.recognize(None)
        assert result.label == "unknown"
        assert result.distance == 1.0

    def test_recognize_empty_descriptor(self, recognizer):
        recognizer.enroll("Alice", unit(0))

        result = recognizer.recognize([])
        assert result.label == "unknown"
        assert result.distance == 1.0
        assert result.is_match is False

    def test_threshold_override(self, recognizer):
        recognizer.enroll("Alice", unit(0))
        query = unit(0) * 0.8 + unit(1) * 0.2

        assert recognizer.recognize(query).is_match is True
        assert recognizer.recognize(query, threshold=0.1).is_match is False

    def test_threshold_property(self, recognizer):
        assert recognizer.threshold == DEFAULT_THRESHOLD
        recognizer.threshold = 0.4
        assert recognizer.threshold == 0.4

        with pytest.raises(InvalidInput):
            recognizer.threshold = -1

    def test_enrollment_visible_to_next_recognition(self, recognizer):
        query = unit(3)
        assert recognizer.recognize(query).label == "unknown"

        recognizer.enroll("Dana", unit(3))
        assert recognizer.recognize(query).label == "Dana"

        recognizer.remove("Dana")
        assert recognizer.recognize(query).label == "unknown"

    def test_changes_made_directly_on_store_are_tracked(self, store, recognizer):
        store.enroll("Eve", unit(4))
        assert recognizer.recognize(unit(4)).label == "Eve"

    def test_recognizer_built_over_populated_store(self, store):
        store.enroll("Alice", unit(0))
        recognizer = FaceRecognizer(store)
        assert recognizer.recognize(unit(0)).label == "Alice"

    def test_close_stops_tracking(self, store, recognizer):
        recognizer.close()
        store.enroll("Alice", unit(0))
        assert recognizer.matcher.is_empty


# ============================================================
# Configuration / introspection
# ============================================================

class TestIntrospection:
    """Tests for from_config, stats and label generation."""

    def test_from_config(self, store):
        recognizer = FaceRecognizer.from_config(store, {
            "threshold": 0.35,
            "metric": "cosine",
            "unknown_label": "stranger",
            "max_distance": 2.0,
        })

        assert recognizer.threshold == 0.35
        assert recognizer.matcher.metric == "cosine"
        result = recognizer.recognize(unit(0))
        assert result.label == "stranger"
        assert result.distance == 2.0

    def test_from_empty_config_uses_defaults(self, store):
        recognizer = FaceRecognizer.from_config(store, {})
        assert recognizer.threshold == DEFAULT_THRESHOLD
        assert recognizer.matcher.metric == "cosine"

    def test_default_config_matches_similar_unit_vectors(self, store):
        rng = np.random.default_rng(7)
        enrolled = rng.normal(size=512)
        enrolled /= np.linalg.norm(enrolled)

        other = rng.normal(size=512)
        other -= other.dot(enrolled) * enrolled
        other /= np.linalg.norm(other)

        # Same person seen twice: cosine similarity 0.7
        query = 0.7 * enrolled + np.sqrt(1 - 0.7 ** 2) * other

        store.enroll("Alice", enrolled)
        recognizer = FaceRecognizer.from_config(store, DEFAULT_CONFIG["recognition"])

        result = recognizer.recognize(query)
        assert result.label == "Alice"
        assert result.is_match is True
        assert result.distance == pytest.approx(0.3, abs=1e-4)

    def test_get_stats(self, recognizer):
        recognizer.enroll("Alice", unit(0))
        recognizer.enroll("Bob", unit(1))

        stats = recognizer.get_stats()
        assert stats == {
            "enrolled_count": 2,
            "has_enrolled_faces": True,
            "enrolled_labels": ["Alice", "Bob"],
            "threshold": DEFAULT_THRESHOLD,
            "metric": "euclidean",
        }

    def test_generate_label_format(self):
        label = FaceRecognizer.generate_label()
        match = re.fullmatch(r"Person_(\d+)_(\d{1,3})", label)

        assert match is not None
        assert 0 <= int(match.group(2)) <= 999

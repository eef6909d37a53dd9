"""
Tests for image decoding / upload validation and the drawing helpers.

Run with: pytest tests/test_image_io_overlay.py -v
"""

import base64
import os
import sys

import cv2
import numpy as np
import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from facerec.exceptions import InvalidInput, InvalidUpload
from facerec.image_io import (
    decode_base64_bytes,
    decode_base64_image,
    decode_image,
    encode_frame_base64,
    validate_upload,
)
from facerec.models import BoundingBox, DetectionResult, RecognitionResult
from facerec.overlay import draw_detections, draw_status


@pytest.fixture
def png_bytes():
    image = np.zeros((60, 80, 3), dtype=np.uint8)
    image[:, :, 2] = 255
    ok, buffer = cv2.imencode(".png", image)
    assert ok
    return buffer.tobytes()


class TestValidateUpload:
    """Tests for upload checks."""

    def test_accepts_image(self, png_bytes):
        validate_upload(png_bytes, "image/png")

    def test_accepts_unknown_content_type(self, png_bytes):
        validate_upload(png_bytes, None)

    def test_rejects_non_image(self, png_bytes):
        with pytest.raises(InvalidUpload, match="valid image"):
            validate_upload(png_bytes, "application/pdf")

    def test_rejects_empty(self):
        with pytest.raises(InvalidUpload):
            validate_upload(b"", "image/jpeg")

    def test_rejects_too_large(self):
        with pytest.raises(InvalidUpload, match="smaller than 10MB"):
            validate_upload(b"x" * (10 * 1024 * 1024 + 1), "image/jpeg")

    def test_exact_limit_accepted(self):
        validate_upload(b"x" * 100, "image/jpeg", max_bytes=100)

    def test_invalid_upload_is_invalid_input(self):
        assert issubclass(InvalidUpload, InvalidInput)


class TestDecoding:
    """Tests for decoding raw and base64 images."""

    def test_decode_image(self, png_bytes):
        frame = decode_image(png_bytes)
        assert frame.shape == (60, 80, 3)
        assert frame[0, 0, 2] == 255

    def test_decode_garbage(self):
        with pytest.raises(InvalidUpload, match="Failed to load image"):
            decode_image(b"definitely not an image")

    def test_decode_base64_image(self, png_bytes):
        b64 = base64.b64encode(png_bytes).decode("ascii")
        assert decode_base64_image(b64).shape == (60, 80, 3)

    def test_decode_data_url(self, png_bytes):
        b64 = "data:image/png;base64," + base64.b64encode(png_bytes).decode("ascii")
        assert decode_base64_bytes(b64) == png_bytes

    def test_invalid_base64(self):
        with pytest.raises(InvalidUpload, match="base64"):
            decode_base64_bytes("@@@not base64@@@")

    def test_encode_frame_base64(self):
        frame = np.full((32, 32, 3), 128, dtype=np.uint8)
        for fmt in ("jpeg", "png"):
            decoded = decode_base64_image(encode_frame_base64(frame, format=fmt))
            assert decoded.shape == (32, 32, 3)


class TestOverlay:
    """Tests for drawing detections and status banners."""

    @pytest.fixture
    def frame(self):
        return np.zeros((240, 320, 3), dtype=np.uint8)

    @pytest.fixture
    def detections(self):
        return [
            DetectionResult(BoundingBox(20, 40, 80, 80), score=0.97,
                            landmarks=np.array([[50.0, 70.0], [70.0, 70.0]])),
            DetectionResult(BoundingBox(180, 40, 80, 80), score=0.6),
        ]

    def test_no_detections_leaves_frame(self, frame):
        out = draw_detections(frame, [])
        assert out is frame
        assert not frame.any()

    def test_draws_in_place(self, frame, detections):
        out = draw_detections(frame, detections)
        assert out is frame
        assert frame.any()

    def test_with_recognition_results(self, frame, detections):
        results = [
            RecognitionResult("Alice", 0.2, True),
            RecognitionResult.unknown(0.9),
        ]
        draw_detections(frame, detections, recognition_results=results)
        assert frame.any()

    def test_fewer_results_than_detections(self, frame, detections):
        draw_detections(frame, detections, recognition_results=[RecognitionResult("Alice", 0.2, True)])
        assert frame.any()

    def test_landmarks_toggle(self, detections):
        with_points = draw_detections(np.zeros((240, 320, 3), np.uint8), detections[:1])
        without = draw_detections(np.zeros((240, 320, 3), np.uint8), detections[:1], show_landmarks=False)
        assert with_points[70, 50].any()
        assert not without[70, 50].any()

    def test_tags_clamped_to_frame(self, frame):
        edge = [DetectionResult(BoundingBox(0, 0, 40, 40), score=0.5)]
        draw_detections(frame, edge, recognition_results=[RecognitionResult.unknown()])
        assert frame.shape == (240, 320, 3)

    def test_draw_status(self, frame):
        out = draw_status(frame, "Recognition active")
        assert out is frame
        assert frame[:28].any()
        assert not frame[40:].any()


class TestRecognitionResult:
    """Display helpers on RecognitionResult."""

    def test_confidence_clamped(self):
        assert RecognitionResult("a", 0.25, True).confidence == pytest.approx(0.75)
        assert RecognitionResult("a", 1.4, False).confidence == 0.0
        assert RecognitionResult("a", -0.1, True).confidence == 1.0

    def test_unknown_defaults(self):
        result = RecognitionResult.unknown()
        assert result.to_dict() == {
            "label": "unknown",
            "distance": 1.0,
            "is_match": False,
            "confidence": 0.0,
        }

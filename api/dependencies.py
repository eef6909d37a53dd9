"""
FastAPI dependencies giving routes access to the components held on
app.state, plus converters from core objects to response schemas.
"""

import threading

from fastapi import Request

from api.schemas import BoundingBoxModel, DetectionModel, FaceInfo, RecognitionModel
from facerec.descriptor_store import DescriptorStore
from facerec.face_detector import FaceDetector
from facerec.models import DetectionResult, EnrolledFace, RecognitionResult
from facerec.recognizer import FaceRecognizer


def get_recognizer(request: Request) -> FaceRecognizer:
    return request.app.state.recognizer


def get_store(request: Request) -> DescriptorStore:
    return request.app.state.store


def get_detector(request: Request) -> FaceDetector:
    """Return the detector, loading the model on first use."""
    detector: FaceDetector = request.app.state.detector
    detector.init()
    return detector


def get_store_lock(request: Request) -> threading.Lock:
    return request.app.state.store_lock


def get_max_upload_bytes(request: Request) -> int:
    return request.app.state.max_upload_bytes


def to_detection_model(detection: DetectionResult) -> DetectionModel:
    box = detection.bounding_box
    return DetectionModel(
        bounding_box=BoundingBoxModel(x=box.x, y=box.y, width=box.width, height=box.height),
        score=detection.score,
        has_descriptor=detection.has_descriptor,
        landmarks=detection.landmarks.tolist() if detection.landmarks is not None else None,
    )


def to_recognition_model(result: RecognitionResult) -> RecognitionModel:
    return RecognitionModel(
        label=result.label,
        distance=result.distance,
        is_match=result.is_match,
        confidence=result.confidence,
    )


def to_face_info(face: EnrolledFace) -> FaceInfo:
    return FaceInfo(label=face.label, enrolled_at=face.enrolled_at, descriptor_dim=face.dimension)

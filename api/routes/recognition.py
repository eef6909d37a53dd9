"""
Recognition API Routes

This module provides the detection and recognition endpoints:
- POST /detect: Faces in an image, no matching
- POST /recognize: Faces in an image matched against enrolled faces
- POST /recognize/descriptors: Match precomputed descriptors
"""

import logging
import threading

from fastapi import APIRouter, Depends

from api.dependencies import (
    get_detector,
    get_recognizer,
    get_store_lock,
    to_detection_model,
    to_recognition_model,
)
from api.schemas import (
    DetectResponse,
    ImageRequest,
    RecognizeDescriptorsRequest,
    RecognizeDescriptorsResponse,
    RecognizeRequest,
    RecognizeResponse,
)
from facerec.face_detector import FaceDetector
from facerec.image_io import decode_base64_image
from facerec.recognizer import FaceRecognizer

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(tags=["recognition"])


@router.post("/detect", response_model=DetectResponse)
def detect_faces(
    request: ImageRequest,
    detector: FaceDetector = Depends(get_detector),
):
    """Detect faces (boxes, landmarks) without recognizing them."""
    image = decode_base64_image(request.image)
    detections = detector.detect_faces(image, with_landmarks=True, with_descriptors=False)

    if not detections:
        message = "No faces detected"
    elif len(detections) == 1:
        message = "1 face detected"
    else:
        message = f"{len(detections)} faces detected"

    return DetectResponse(
        detections=[to_detection_model(d) for d in detections],
        face_count=len(detections),
        message=message,
    )


@router.post("/recognize", response_model=RecognizeResponse)
def recognize_faces(
    request: RecognizeRequest,
    recognizer: FaceRecognizer = Depends(get_recognizer),
    detector: FaceDetector = Depends(get_detector),
    lock: threading.Lock = Depends(get_store_lock),
):
    """
    Detect faces and match each against the enrolled faces.

    The response lists recognitions aligned with detections by index.
    """
    threshold = request.threshold if request.threshold is not None else recognizer.threshold

    image = decode_base64_image(request.image)
    detections = detector.detect_faces(image, with_landmarks=True, with_descriptors=True)
    with lock:
        results = recognizer.recognize_all(detections, threshold=threshold)

    matched = sum(1 for r in results if r.is_match)
    logger.info(f"Recognized {matched}/{len(results)} faces (threshold={threshold})")

    return RecognizeResponse(
        detections=[to_detection_model(d) for d in detections],
        recognitions=[to_recognition_model(r) for r in results],
        threshold=threshold,
    )


@router.post("/recognize/descriptors", response_model=RecognizeDescriptorsResponse)
def recognize_descriptors(
    request: RecognizeDescriptorsRequest,
    recognizer: FaceRecognizer = Depends(get_recognizer),
    lock: threading.Lock = Depends(get_store_lock),
):
    """Match precomputed descriptors; null entries are reported unknown."""
    threshold = request.threshold if request.threshold is not None else recognizer.threshold
    with lock:
        results = [recognizer.recognize(d, threshold=threshold) for d in request.descriptors]

    return RecognizeDescriptorsResponse(
        recognitions=[to_recognition_model(r) for r in results],
        threshold=threshold,
    )

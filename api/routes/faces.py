"""
Face Management API Routes

This module provides REST endpoints for enrolling and managing faces:
- GET /faces: List enrolled faces
- GET /faces/{label}: Get one enrolled face
- POST /faces: Enroll a face from an uploaded image
- POST /faces/descriptor: Enroll a precomputed descriptor
- DELETE /faces/{label}: Remove a face
- DELETE /faces: Remove every face
"""

import logging
import threading

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import (
    get_detector,
    get_max_upload_bytes,
    get_recognizer,
    get_store_lock,
    to_face_info,
)
from api.schemas import (
    ClearFacesResponse,
    DeleteFaceResponse,
    EnrollDescriptorRequest,
    EnrollImageRequest,
    EnrollResponse,
    FaceDetailResponse,
    FaceListResponse,
)
from facerec.exceptions import InvalidInput
from facerec.face_detector import FaceDetector
from facerec.image_io import decode_base64_bytes
from facerec.recognizer import FaceRecognizer, always_overwrite, never_overwrite
from facerec.upload_session import UploadSession

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(tags=["faces"])


@router.get("/faces", response_model=FaceListResponse)
def list_faces(recognizer: FaceRecognizer = Depends(get_recognizer)):
    """List enrolled faces in enrollment order."""
    faces = recognizer.store.faces()
    return FaceListResponse(faces=[to_face_info(f) for f in faces], total=len(faces))


@router.get("/faces/{label}", response_model=FaceDetailResponse)
def get_face(label: str, recognizer: FaceRecognizer = Depends(get_recognizer)):
    """
    Get one enrolled face including its descriptor.

    Raises:
        404: If the label is not enrolled.
    """
    face = recognizer.store.get(label)
    if face is None:
        raise HTTPException(status_code=404, detail=f"Face '{label}' not found")

    info = to_face_info(face)
    return FaceDetailResponse(**info.model_dump(), descriptor=face.descriptor.tolist())


@router.post("/faces", response_model=EnrollResponse)
def enroll_face_from_image(
    request: EnrollImageRequest,
    recognizer: FaceRecognizer = Depends(get_recognizer),
    detector: FaceDetector = Depends(get_detector),
    lock: threading.Lock = Depends(get_store_lock),
    max_upload_bytes: int = Depends(get_max_upload_bytes),
):
    """
    Detect faces in an image and enroll the one at face_index.

    Raises:
        409: If the label exists and overwrite is false.
        422: Invalid image, no face, face_index out of range, or no descriptor.
    """
    session = UploadSession(detector, recognizer, max_file_size=max_upload_bytes)
    session.handle_file(decode_base64_bytes(request.image), "image/*")

    if session.current_detections and request.face_index >= len(session.current_detections):
        raise InvalidInput(
            f"face_index {request.face_index} out of range "
            f"({len(session.current_detections)} faces detected)"
        )
    if session.current_detections:
        session.selected_face_index = request.face_index

    policy = always_overwrite if request.overwrite else never_overwrite
    with lock:
        overwritten = request.label.strip() in recognizer.store
        face = session.enroll_selected(request.label, on_duplicate=policy)

    return EnrollResponse(
        success=True,
        label=face.label,
        enrolled_at=face.enrolled_at,
        overwritten=overwritten,
        message=session.status_message,
    )


@router.post("/faces/descriptor", response_model=EnrollResponse)
def enroll_descriptor(
    request: EnrollDescriptorRequest,
    recognizer: FaceRecognizer = Depends(get_recognizer),
    lock: threading.Lock = Depends(get_store_lock),
):
    """Enroll a precomputed descriptor under a label."""
    policy = always_overwrite if request.overwrite else never_overwrite
    label = request.label.strip()
    with lock:
        overwritten = label in recognizer.store
        face = recognizer.enroll(label, request.descriptor, on_duplicate=policy)

    return EnrollResponse(
        success=True,
        label=face.label,
        enrolled_at=face.enrolled_at,
        overwritten=overwritten,
        message=f'Face enrolled successfully as "{face.label}"!',
    )


@router.delete("/faces/{label}", response_model=DeleteFaceResponse)
def delete_face(
    label: str,
    recognizer: FaceRecognizer = Depends(get_recognizer),
    lock: threading.Lock = Depends(get_store_lock),
):
    """
    Remove an enrolled face.

    Raises:
        404: If the label is not enrolled.
    """
    with lock:
        removed = recognizer.remove(label)

    if not removed:
        raise HTTPException(status_code=404, detail=f"Face '{label}' not found")

    return DeleteFaceResponse(success=True, label=label, message=f"Face '{label}' removed")


@router.delete("/faces", response_model=ClearFacesResponse)
def clear_faces(
    recognizer: FaceRecognizer = Depends(get_recognizer),
    lock: threading.Lock = Depends(get_store_lock),
):
    """Remove every enrolled face."""
    with lock:
        removed = recognizer.enrollment_count
        recognizer.clear_all()

    return ClearFacesResponse(success=True, removed=removed)

"""
Pydantic Schemas for API Request/Response Models

This module defines the data models used by the face enrollment and
recognition API.

These schemas provide:
- Type validation
- Automatic documentation in OpenAPI/Swagger
- Clear interface contracts

Images travel as base64-encoded JPEG/PNG strings (data: URLs accepted).
"""

from typing import List, Optional
from pydantic import BaseModel, Field


# ============================================================
# Detection / Recognition Schemas
# ============================================================

class BoundingBoxModel(BaseModel):
    """Face region in image pixel coordinates."""
    x: float
    y: float
    width: float
    height: float


class DetectionModel(BaseModel):
    """A face found by the detector."""
    bounding_box: BoundingBoxModel
    score: float = Field(..., description="Detector confidence (0-1)")
    has_descriptor: bool = Field(..., description="Whether an embedding was computed")
    landmarks: Optional[List[List[float]]] = Field(None, description="Facial landmark points [[x, y], ...]")


class RecognitionModel(BaseModel):
    """Recognition outcome for one detection."""
    label: str = Field(..., description="Matched label or 'unknown'")
    distance: float = Field(..., description="Distance to the nearest enrolled descriptor")
    is_match: bool = Field(..., description="True if the distance is within the threshold")
    confidence: float = Field(..., description="1 - distance, clamped to [0, 1]")


class ImageRequest(BaseModel):
    """Request carrying a single image."""
    image: str = Field(..., description="Base64-encoded image data")


class DetectResponse(BaseModel):
    """Faces detected in an image."""
    detections: List[DetectionModel] = Field(default_factory=list)
    face_count: int = 0
    message: str = ""


class RecognizeRequest(ImageRequest):
    """Request for recognizing every face in an image."""
    threshold: Optional[float] = Field(None, ge=0.0, description="Override the default threshold")


class RecognizeResponse(BaseModel):
    """Detections with their recognition results, aligned by index."""
    detections: List[DetectionModel] = Field(default_factory=list)
    recognitions: List[RecognitionModel] = Field(default_factory=list)
    threshold: float


class RecognizeDescriptorsRequest(BaseModel):
    """Recognize raw descriptors (null entries stand for faces without one)."""
    descriptors: List[Optional[List[float]]] = Field(..., description="Query descriptors")
    threshold: Optional[float] = Field(None, ge=0.0)


class RecognizeDescriptorsResponse(BaseModel):
    recognitions: List[RecognitionModel] = Field(default_factory=list)
    threshold: float


# ============================================================
# Enrollment Schemas
# ============================================================

class EnrollImageRequest(ImageRequest):
    """Enroll a face found in an uploaded image."""
    label: str = Field(..., description="Name for the face")
    face_index: int = Field(0, ge=0, description="Which detected face to enroll (left to right)")
    overwrite: bool = Field(False, description="Replace an existing face with the same name")


class EnrollDescriptorRequest(BaseModel):
    """Enroll a precomputed descriptor."""
    label: str = Field(..., description="Name for the face")
    descriptor: List[float] = Field(..., min_length=1, description="Face descriptor")
    overwrite: bool = Field(False, description="Replace an existing face with the same name")


class EnrollResponse(BaseModel):
    """Result of an enrollment."""
    success: bool
    label: str
    enrolled_at: str
    overwritten: bool = False
    message: str


# ============================================================
# Face Management Schemas
# ============================================================

class FaceInfo(BaseModel):
    """Summary of an enrolled face."""
    label: str = Field(..., description="Enrolled name")
    enrolled_at: str = Field(..., description="ISO timestamp of enrollment")
    descriptor_dim: int = Field(..., description="Descriptor length")


class FaceListResponse(BaseModel):
    """Response containing the enrolled faces."""
    faces: List[FaceInfo] = Field(default_factory=list)
    total: int = Field(0, description="Total number of enrolled faces")


class FaceDetailResponse(FaceInfo):
    """Enrolled face including its descriptor."""
    descriptor: List[float] = Field(default_factory=list)


class DeleteFaceResponse(BaseModel):
    """Response from removing a face."""
    success: bool
    label: str
    message: str


class ClearFacesResponse(BaseModel):
    """Response from clearing all faces."""
    success: bool
    removed: int


class StatsResponse(BaseModel):
    """Enrollment statistics."""
    enrolled_count: int
    has_enrolled_faces: bool
    enrolled_labels: List[str] = Field(default_factory=list)
    threshold: float
    metric: str


# ============================================================
# Health Check Schemas
# ============================================================

class HealthResponse(BaseModel):
    """System health check response."""
    model_config = {"protected_namespaces": ()}  # Allow 'model_' prefix in field names

    status: str = Field(..., description="Overall status: 'healthy' or 'degraded'")
    model_loaded: bool = Field(..., description="Whether the face model is loaded")
    providers: List[str] = Field(default_factory=list, description="ONNX Runtime execution providers")
    enrolled_faces: int = Field(..., description="Number of enrolled faces")

"""
Face Enrollment & Recognition

This package contains the enrollment store, the descriptor matcher, and the
glue around the external face model package.

Main components:
    - config: Configuration loading and management
    - descriptor_store: Enrolled faces with write-through persistence
    - matching: Nearest-descriptor lookup by distance threshold
    - recognizer: Enrollment / recognition coordinator
    - face_detector: InsightFace adapter producing DetectionResult objects
    - camera, upload_session, live_session: capture flows

Usage:
    from facerec import DescriptorStore, FaceRecognizer, create_backend
    from facerec.config import get_storage_config

    store = DescriptorStore(create_backend(get_storage_config())).open()
    recognizer = FaceRecognizer(store)
"""

from facerec.config import (
    get_config,
    get_section,
    get_recognition_config,
    get_detection_config,
    get_storage_config,
    get_upload_config,
    get_camera_config,
    get_api_config,
    get_server_config,
)

from facerec.exceptions import (
    FaceRecError,
    InvalidInput,
    InvalidUpload,
    MissingDescriptor,
    NoFaceDetected,
    MultipleFacesDetected,
    EnrollmentAborted,
    PersistenceError,
    PersistenceCorrupt,
    DetectorError,
    CameraError,
)

from facerec.models import (
    UNKNOWN_LABEL,
    MAX_DISTANCE,
    BoundingBox,
    DetectionResult,
    DuplicateAction,
    EnrolledFace,
    RecognitionResult,
)

from facerec.kv_backends import (
    KeyValueStore,
    MemoryKeyValueStore,
    JsonFileKeyValueStore,
    SQLiteKeyValueStore,
    create_backend,
)

from facerec.descriptor_store import DescriptorStore
from facerec.matching import FaceMatcher
from facerec.recognizer import FaceRecognizer

__all__ = [
    # Configuration
    "get_config",
    "get_section",
    "get_recognition_config",
    "get_detection_config",
    "get_storage_config",
    "get_upload_config",
    "get_camera_config",
    "get_api_config",
    "get_server_config",
    # Errors
    "FaceRecError",
    "InvalidInput",
    "InvalidUpload",
    "MissingDescriptor",
    "NoFaceDetected",
    "MultipleFacesDetected",
    "EnrollmentAborted",
    "PersistenceError",
    "PersistenceCorrupt",
    "DetectorError",
    "CameraError",
    # Data model
    "UNKNOWN_LABEL",
    "MAX_DISTANCE",
    "BoundingBox",
    "DetectionResult",
    "DuplicateAction",
    "EnrolledFace",
    "RecognitionResult",
    # Storage
    "KeyValueStore",
    "MemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "SQLiteKeyValueStore",
    "create_backend",
    "DescriptorStore",
    # Matching
    "FaceMatcher",
    "FaceRecognizer",
]
